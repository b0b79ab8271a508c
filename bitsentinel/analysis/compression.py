"""
Compressibility estimators.

These are heuristics, not compressors. Each returns an estimated ratio
original_bits / encoded_bits (>= 1 means compressible). The one guarantee is
directional: lower entropy never yields a lower estimated ratio.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from bitsentinel.core.config import config
from bitsentinel.data.bitstring import BitsLike, coerce_bits

from .patterns import lz_phrase_count
from .statistics import entropy, run_count


@dataclass(frozen=True)
class CompressionEstimates:
    rle: float
    huffman: float
    lz: float
    theoretical: float


def rle_ratio(bits: BitsLike, per_run_overhead_bits: Optional[int] = None) -> float:
    """n / (runs * per-run cost); 0 for empty input."""
    b = coerce_bits(bits)
    overhead = per_run_overhead_bits or config.metrics.rle_run_overhead_bits
    runs = run_count(b)
    if runs == 0:
        return 0.0
    return len(b) / (runs * overhead)


def huffman_ratio(bits: BitsLike) -> float:
    """Entropy-bound approximation n / ceil(H * n)."""
    b = coerce_bits(bits)
    n = len(b)
    if n == 0:
        return 0.0
    return n / max(1, math.ceil(entropy(b) * n))


def lz_ratio(bits: BitsLike) -> float:
    """
    LZ78-style estimate: c phrases cost c * (ceil(log2 c) + 1) bits
    (a back-reference to an earlier phrase plus one literal bit).
    """
    b = coerce_bits(bits)
    n = len(b)
    if n == 0:
        return 0.0
    phrases = lz_phrase_count(b)
    cost = phrases * (math.ceil(math.log2(phrases)) + 1) if phrases > 1 else 1
    return n / cost


def theoretical_ratio(bits: BitsLike) -> float:
    """Shannon bound 1 / H, capped at n for constant input."""
    b = coerce_bits(bits)
    n = len(b)
    if n == 0:
        return 0.0
    h = entropy(b)
    return min(float(n), 1.0 / h) if h > 0 else float(n)


def kolmogorov_estimate(bits: BitsLike) -> int:
    """Estimated compressed size in bits: whole bytes of H * n bits."""
    b = coerce_bits(bits)
    return math.ceil(entropy(b) * len(b) / 8) * 8


def compression_ratio(bits: BitsLike) -> float:
    """Raw bytes / estimated compressed bytes; constant input scores its byte count."""
    b = coerce_bits(bits)
    if len(b) == 0:
        return 0.0
    raw_bytes = math.ceil(len(b) / 8)
    compressed_bytes = kolmogorov_estimate(b) // 8
    return raw_bytes / compressed_bytes if compressed_bytes else float(raw_bytes)


def estimate_compression(bits: BitsLike) -> CompressionEstimates:
    b = coerce_bits(bits)
    return CompressionEstimates(
        rle=rle_ratio(b),
        huffman=huffman_ratio(b),
        lz=lz_ratio(b),
        theoretical=theoretical_ratio(b),
    )
