"""
Ideality scoring: how much of a range is an exact repetition of a block.

The range is cut into window-aligned chunks starting at `start`. A chunk
repeats when it equals the chunk right before it; both chunks of such a pair
count as ideal bits. A trailing partial chunk is scored as non-repeating but
still counts toward total_bits.

On random input two adjacent w-bit chunks match with probability 2**-w, so
small windows score high even without structure: about 75% at w=1 and 44% at
w=2. Scores near 0 for random data are expected only from w >= 8.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

import numpy as np

from bitsentinel.core.config import config
from bitsentinel.data.bitstring import BitsLike, coerce_bits
from bitsentinel.data.schema import IdealityResult


def _repeating_mask(section: np.ndarray, window_size: int) -> np.ndarray:
    chunk_count = section.size // window_size
    mask = np.zeros(section.size, dtype=bool)
    if chunk_count < 2:
        return mask
    chunks = section[: chunk_count * window_size].reshape(chunk_count, window_size)
    equal_to_previous = np.all(chunks[1:] == chunks[:-1], axis=1)
    repeating = np.zeros(chunk_count, dtype=bool)
    repeating[1:] |= equal_to_previous
    repeating[:-1] |= equal_to_previous
    mask[: chunk_count * window_size] = np.repeat(repeating, window_size)
    return mask


def _score(section: np.ndarray, window_size: int, start: int) -> IdealityResult:
    mask = _repeating_mask(section, window_size)
    repeating_count = int(np.count_nonzero(mask))
    total_bits = int(section.size)
    return IdealityResult(
        window_size=window_size,
        ideality_percentage=repeating_count / total_bits * 100.0 if total_bits else 0.0,
        repeating_count=repeating_count,
        total_bits=total_bits,
        ideal_bit_indices=(np.flatnonzero(mask) + start).tolist(),
    )


def _section(bits: BitsLike, start: int, end: Optional[int]):
    b = coerce_bits(bits)
    n = len(b)
    end = n - 1 if end is None else min(int(end), n - 1)
    start = max(0, int(start))
    if start >= end:
        return None, start
    return b.array[start:end + 1], start


def calculate_ideality(
    bits: BitsLike,
    window_size: int,
    start: int = 0,
    end: Optional[int] = None,
) -> IdealityResult:
    """
    Score the inclusive range [start, end] for one window size.

    Returns a zeroed result (no error) when start >= end or window_size < 1.
    end defaults to, and is clamped at, the last index.
    """
    section, start = _section(bits, start, end)
    if section is None or window_size < 1:
        return IdealityResult(window_size=max(0, int(window_size)))
    return _score(section, int(window_size), start)


def calculate_all_idealities(
    bits: BitsLike,
    start: int = 0,
    end: Optional[int] = None,
    window_sizes: Optional[Iterable[int]] = None,
) -> List[IdealityResult]:
    """
    Score the range for every window size of the catalog, ascending.

    The range is extracted once and shared by all window sizes.
    """
    sizes = sorted(set(window_sizes)) if window_sizes is not None else config.ideality.window_sizes
    section, start = _section(bits, start, end)
    if section is None:
        return [IdealityResult(window_size=w) for w in sizes if w >= 1]
    return [_score(section, w, start) for w in sizes if w >= 1]


def top_ideality_windows(
    bits: BitsLike,
    top_n: int = 10,
    start: int = 0,
    end: Optional[int] = None,
) -> List[IdealityResult]:
    """Catalog results with the highest ideality first (smaller window wins ties)."""
    results = calculate_all_idealities(bits, start, end)
    results.sort(key=lambda r: (-r.ideality_percentage, r.window_size))
    return results[:top_n]
