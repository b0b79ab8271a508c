"""
Built-in anomaly detectors.

Each factory takes its thresholds and returns a detect(BitString) callable
producing Detection objects. Scans are vectorized over the cached uint8 view:
- runs and alternations come from change-point masks
- windowed density, entropy and transition rates come from prefix sums
- tandem repeats of period p come from the mask bits[i] == bits[i + p]

Findings are maximal segments rather than every overlapping start, except for
palindromes, which are reported once per center as in the classic catalog.
"""

from __future__ import annotations

import math
from typing import Dict, List, Optional, Tuple

import numpy as np

from bitsentinel.analysis import statistics as stats
from bitsentinel.core.config import DetectorThresholds, config
from bitsentinel.data.bitstring import BitString

from .schema import AnomalyDefinition, AnomalySeverity, DetectFn, Detection

# Byte signatures of common file formats, MSB-first
FILE_SIGNATURES: Dict[str, bytes] = {
    "jpeg": bytes.fromhex("FFD8FF"),
    "png": bytes.fromhex("89504E470D0A1A0A"),
    "gif": b"GIF8",
    "zip": bytes.fromhex("504B0304"),
    "pdf": b"%PDF",
}


def _true_runs(mask: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Start and length of every maximal run of True in a boolean array."""
    if mask.size == 0:
        empty = np.zeros(0, dtype=np.int64)
        return empty, empty
    padded = np.concatenate(([False], mask, [False])).astype(np.int8)
    edges = np.diff(padded)
    starts = np.flatnonzero(edges == 1)
    ends = np.flatnonzero(edges == -1)
    return starts, ends - starts


def _is_primitive(pattern: str) -> bool:
    return pattern not in (pattern + pattern)[1:-1]


def palindrome_detector(min_length: int = 5) -> DetectFn:
    """Odd-length palindromes, one finding per center whose radius qualifies."""

    def detect(bits: BitString) -> List[Detection]:
        text = bits.bits
        n = len(text)
        radius = [0] * n
        left, right = 0, -1
        for i in range(n):
            k = 1 if i > right else min(radius[left + right - i], right - i + 1)
            while i - k >= 0 and i + k < n and text[i - k] == text[i + k]:
                k += 1
            radius[i] = k
            if i + k - 1 > right:
                left, right = i - k + 1, i + k - 1
        radii = np.asarray(radius, dtype=np.int64)
        centers = np.flatnonzero(2 * radii - 1 >= min_length)
        return [
            Detection(position=int(c - radii[c] + 1), length=int(2 * radii[c] - 1))
            for c in centers
        ]

    return detect


def repeating_pattern_detector(
    min_length: int = 4, max_length: int = 20, min_repeats: int = 3
) -> DetectFn:
    """
    Blocks of min_length..max_length bits repeated back to back.

    Only primitive blocks are reported; '0101' is left to the period-2 scan.
    """

    def detect(bits: BitString) -> List[Detection]:
        arr = bits.array
        n = arr.size
        found: List[Detection] = []
        for period in range(min_length, min(max_length, n // min_repeats) + 1):
            same = arr[period:] == arr[:-period]
            starts, lengths = _true_runs(same)
            for start, length in zip(starts, lengths):
                repeats = (int(length) + period) // period
                if repeats < min_repeats:
                    continue
                pattern = bits.bits[start:start + period]
                if not _is_primitive(pattern):
                    continue
                found.append(
                    Detection(
                        position=int(start),
                        length=repeats * period,
                        details={"pattern": pattern, "repeats": repeats},
                    )
                )
        return found

    return detect


def alternating_detector(min_length: int = 8) -> DetectFn:
    """Maximal 0101... / 1010... stretches."""

    def detect(bits: BitString) -> List[Detection]:
        arr = bits.array
        starts, lengths = _true_runs(arr[1:] != arr[:-1])
        keep = lengths + 1 >= min_length
        return [
            Detection(position=int(s), length=int(l) + 1)
            for s, l in zip(starts[keep], lengths[keep])
        ]

    return detect


def long_run_detector(min_length: int = 10, symbol: Optional[int] = None) -> DetectFn:
    """Maximal runs of identical bits (of one symbol when given)."""

    def detect(bits: BitString) -> List[Detection]:
        starts, lengths, symbols = stats.run_bounds(bits)
        keep = lengths >= min_length
        if symbol is not None:
            keep &= symbols == symbol
        return [
            Detection(position=int(s), length=int(l), details={"bit": str(int(v))})
            for s, l, v in zip(starts[keep], lengths[keep], symbols[keep])
        ]

    return detect


def sparse_region_detector(
    window: int = 64, low_percent: float = 15.0, high_percent: float = 85.0
) -> DetectFn:
    """Windows (step window/2) whose ones density falls outside [low, high]."""

    def detect(bits: BitString) -> List[Detection]:
        starts, ones = stats.window_counts(bits, window, max(1, window // 2))
        density = ones / window * 100.0
        keep = (density < low_percent) | (density > high_percent)
        return [
            Detection(position=int(s), length=window, details={"density": float(d)})
            for s, d in zip(starts[keep], density[keep])
        ]

    return detect


def byte_misalignment_detector() -> DetectFn:
    """The trailing partial byte, if any."""

    def detect(bits: BitString) -> List[Detection]:
        tail = len(bits) % 8
        if not tail:
            return []
        return [Detection(position=len(bits) - tail, length=tail)]

    return detect


def header_signature_detector(signatures: Optional[Dict[str, bytes]] = None) -> DetectFn:
    """First occurrence of each known file signature, at any bit offset."""
    table = {
        name: BitString.from_bytes(sig).bits
        for name, sig in (signatures or FILE_SIGNATURES).items()
    }

    def detect(bits: BitString) -> List[Detection]:
        found = []
        for name, pattern in table.items():
            index = bits.bits.find(pattern)
            if index != -1:
                found.append(
                    Detection(
                        position=index,
                        length=len(pattern),
                        details={"type": "file_header", "format": name},
                    )
                )
        return found

    return detect


def entropy_spike_detector(window: int = 64, delta: float = 0.3) -> DetectFn:
    """Windows whose entropy differs from the previous window by more than delta."""

    def detect(bits: BitString) -> List[Detection]:
        starts, ones = stats.window_counts(bits, window, max(1, window // 2))
        entropies = stats.binary_entropy_array(ones / window)
        change = np.diff(entropies)
        hits = np.flatnonzero(np.abs(change) > delta)
        return [
            Detection(
                position=int(starts[k + 1]),
                length=window,
                details={"entropy_change": float(change[k])},
            )
            for k in hits
        ]

    return detect


def nibble_repeat_detector(min_length: int = 16) -> DetectFn:
    """Aligned 4-bit groups repeated back to back for at least min_length bits."""
    min_repeats = max(2, math.ceil(min_length / 4))

    def detect(bits: BitString) -> List[Detection]:
        arr = bits.array
        count = arr.size // 4
        if count < min_repeats:
            return []
        codes = arr[: count * 4].reshape(count, 4) @ np.array([8, 4, 2, 1])
        same = codes[1:] == codes[:-1]
        starts, lengths = _true_runs(same)
        keep = lengths + 1 >= min_repeats
        return [
            Detection(
                position=int(s) * 4,
                length=(int(l) + 1) * 4,
                details={"nibble": format(int(codes[s]), "04b"), "repeats": int(l) + 1},
            )
            for s, l in zip(starts[keep], lengths[keep])
        ]

    return detect


def transition_burst_detector(window: int = 32, rate: float = 0.8) -> DetectFn:
    """Windows (step window/2) where more than `rate` of adjacent pairs differ."""

    def detect(bits: BitString) -> List[Detection]:
        arr = bits.array
        n = arr.size
        if window < 2 or n < window:
            return []
        changes = np.concatenate(([0], np.cumsum(arr[1:] != arr[:-1], dtype=np.int64)))
        starts = np.arange(0, n - window + 1, max(1, window // 2))
        rates = (changes[starts + window - 1] - changes[starts]) / (window - 1)
        keep = rates > rate
        return [
            Detection(position=int(s), length=window, details={"transition_rate": float(r)})
            for s, r in zip(starts[keep], rates[keep])
        ]

    return detect


def default_definitions(thresholds: Optional[DetectorThresholds] = None) -> List[AnomalyDefinition]:
    """The built-in detector catalog, configured from thresholds."""
    t = thresholds or config.anomaly.thresholds
    low, medium, high = AnomalySeverity.LOW, AnomalySeverity.MEDIUM, AnomalySeverity.HIGH
    return [
        AnomalyDefinition(
            id="palindrome",
            name="Palindrome",
            category="Pattern",
            severity=medium,
            detect=palindrome_detector(t.palindrome_min_length),
            description="Detects palindromic bit sequences",
        ),
        AnomalyDefinition(
            id="repeating_pattern",
            name="Repeating Pattern",
            category="Pattern",
            severity=medium,
            detect=repeating_pattern_detector(
                t.repeating_min_length, t.repeating_max_length, t.repeating_min_repeats
            ),
            description="Detects blocks that repeat consecutively",
        ),
        AnomalyDefinition(
            id="alternating",
            name="Alternating Sequence",
            category="Pattern",
            severity=low,
            detect=alternating_detector(t.alternating_min_length),
            description="Detects alternating 0101... or 1010... stretches",
        ),
        AnomalyDefinition(
            id="long_run",
            name="Long Run",
            category="Run",
            severity=high,
            detect=long_run_detector(t.long_run_min_length),
            description="Detects long runs of identical bits",
        ),
        AnomalyDefinition(
            id="sparse_region",
            name="Sparse Region",
            category="Density",
            severity=medium,
            detect=sparse_region_detector(
                t.density_window, t.density_low_percent, t.density_high_percent
            ),
            description="Detects windows with extremely low or high bit density",
        ),
        AnomalyDefinition(
            id="byte_misalignment",
            name="Byte Misalignment",
            category="Structure",
            severity=low,
            detect=byte_misalignment_detector(),
            description="Detects data not aligned to byte boundaries",
        ),
        AnomalyDefinition(
            id="zero_block",
            name="Zero Block",
            category="Run",
            severity=medium,
            detect=long_run_detector(t.block_min_length, symbol=0),
            description="Detects large blocks of consecutive zeros",
        ),
        AnomalyDefinition(
            id="one_block",
            name="One Block",
            category="Run",
            severity=medium,
            detect=long_run_detector(t.block_min_length, symbol=1),
            description="Detects large blocks of consecutive ones",
        ),
        AnomalyDefinition(
            id="header_signature",
            name="Header Signature",
            category="Structure",
            severity=low,
            detect=header_signature_detector(),
            description="Detects common file header signatures",
        ),
        AnomalyDefinition(
            id="entropy_spike",
            name="Entropy Spike",
            category="Entropy",
            severity=high,
            detect=entropy_spike_detector(t.entropy_window, t.entropy_delta),
            description="Detects sudden changes in local entropy",
        ),
        AnomalyDefinition(
            id="nibble_repeat",
            name="Nibble Repeat",
            category="Pattern",
            severity=low,
            detect=nibble_repeat_detector(t.nibble_min_length),
            description="Detects repeating aligned 4-bit groups",
        ),
        AnomalyDefinition(
            id="transition_burst",
            name="Transition Burst",
            category="Transitions",
            severity=medium,
            detect=transition_burst_detector(t.transition_window, t.transition_rate),
            description="Detects windows with unusually many bit transitions",
        ),
    ]
