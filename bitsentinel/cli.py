"""
Command-line entry point.

Loads a bit file, runs one engine operation and prints the report as JSON.
FILE holds '0'/'1' text (line breaks are ignored) or, with --binary, raw bytes
expanded MSB-first.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional, Tuple

from dotenv import load_dotenv

from bitsentinel.analysis import calculate_ideality, find_all_patterns
from bitsentinel.anomaly import AnomalyEngine
from bitsentinel.core.config import config
from bitsentinel.core.exceptions import BitSentinelError
from bitsentinel.core.logging_config import setup_logging
from bitsentinel.data.bitstring import BitString, coerce_bits
from bitsentinel.metrics import MetricsCalculator

logger = logging.getLogger("bitsentinel.cli")


def _parse_range(value: str) -> Tuple[int, int]:
    try:
        start, end = value.split(":", 1)
        return int(start), int(end)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Range must look like START:END, got {value!r}")


def _load_bits(path: Path, binary: bool) -> BitString:
    if binary:
        return BitString.from_bytes(path.read_bytes())
    text = path.read_text(encoding="utf-8")
    # line breaks are layout, not content
    return coerce_bits("".join(text.split()), config.input.policy)


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2))


def _cmd_metrics(args: argparse.Namespace, bits: BitString) -> None:
    calculator = MetricsCalculator()
    if args.range:
        bits = bits.slice(*args.range)
    _emit(calculator.calculate_all_metrics(bits).model_dump())


def _cmd_anomalies(args: argparse.Namespace, bits: BitString) -> None:
    report = AnomalyEngine().run_all_detections(bits)
    _emit(report.model_dump(mode="json"))


def _cmd_ideality(args: argparse.Namespace, bits: BitString) -> None:
    start, end = args.range if args.range else (0, None)
    _emit(calculate_ideality(bits, args.window, start, end).model_dump())


def _cmd_patterns(args: argparse.Namespace, bits: BitString) -> None:
    matches = find_all_patterns(bits, args.window, args.min_count)
    _emit([m.model_dump() for m in matches])


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bitsentinel", description="Bitstream statistics and anomaly detection")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("file", type=Path, help="Bit file ('0'/'1' text, or raw bytes with --binary)")
        p.add_argument("--binary", action="store_true", help="Read FILE as raw bytes")

    p = sub.add_parser("metrics", help="Compute the full metric catalog")
    add_common(p)
    p.add_argument("--range", type=_parse_range, help="Half-open bit range START:END")
    p.set_defaults(handler=_cmd_metrics)

    p = sub.add_parser("anomalies", help="Run every enabled detector")
    add_common(p)
    p.set_defaults(handler=_cmd_anomalies)

    p = sub.add_parser("ideality", help="Score block repetition for one window size")
    add_common(p)
    p.add_argument("--window", type=int, required=True)
    p.add_argument("--range", type=_parse_range, help="Inclusive bit range START:END")
    p.set_defaults(handler=_cmd_ideality)

    p = sub.add_parser("patterns", help="Frequency table of fixed-width patterns")
    add_common(p)
    p.add_argument("--window", type=int, required=True)
    p.add_argument("--min-count", type=int, default=2)
    p.set_defaults(handler=_cmd_patterns)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    setup_logging()
    args = build_parser().parse_args(argv)

    try:
        bits = _load_bits(args.file, args.binary)
        args.handler(args, bits)
    except (BitSentinelError, OSError) as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
