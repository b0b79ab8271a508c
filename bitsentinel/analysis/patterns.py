"""
Pattern analysis: n-gram frequency, repeated substrings, transitions.

Windows of up to 63 bits are integer-packed into uint64 codes so frequency
tables never compare substrings. Codes for a window of w bits are assembled by
binary doubling (codes of length 2k come from two shifted codes of length k),
which costs O(n log w) vectorized work. Longer windows fall back to hashing
substrings.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Dict, List, Optional

import numpy as np

from bitsentinel.data.bitstring import BitString, BitsLike, coerce_bits
from bitsentinel.data.schema import PatternMatch, SequenceMatch

logger = logging.getLogger(__name__)

PACKED_MAX_WINDOW = 63


def packed_codes(bits: BitsLike, window: int) -> np.ndarray:
    """
    Integer code of every window [i, i + window), MSB first.

    Returns an array of n - window + 1 uint64 codes (empty if window > n).

    Raises:
        ValueError: if window is outside [1, PACKED_MAX_WINDOW]
    """
    if window < 1 or window > PACKED_MAX_WINDOW:
        raise ValueError(f"Packed window must be in [1, {PACKED_MAX_WINDOW}], got {window}")
    arr = coerce_bits(bits).array
    n = arr.size
    if window > n:
        return np.zeros(0, dtype=np.uint64)

    result: Optional[np.ndarray] = None
    result_len = 0
    power = arr.astype(np.uint64)
    power_len = 1
    remaining = window
    while True:
        if remaining & 1:
            if result is None:
                result, result_len = power, power_len
            else:
                count = n - (result_len + power_len) + 1
                result = (result[:count] << np.uint64(power_len)) | power[result_len:result_len + count]
                result_len += power_len
        remaining >>= 1
        if not remaining:
            break
        count = n - 2 * power_len + 1
        power = (power[:count] << np.uint64(power_len)) | power[power_len:power_len + count]
        power_len *= 2
    return result[: n - window + 1]


def _format_code(code: int, window: int) -> str:
    return format(int(code), f"0{window}b")


def _substring_table(text: str, window: int) -> Dict[str, List[int]]:
    table: Dict[str, List[int]] = {}
    for i in range(len(text) - window + 1):
        table.setdefault(text[i:i + window], []).append(i)
    return table


def find_all_patterns(bits: BitsLike, window_size: int, min_count: int = 2) -> List[PatternMatch]:
    """
    Frequency table of every window of window_size bits (step 1).

    Args:
        bits: sequence to scan
        window_size: pattern length in bits
        min_count: minimum occurrences to report (values below 1 act as 1)

    Returns:
        PatternMatch list sorted by count descending, ties broken by earliest
        first occurrence; positions inside each match are ascending
    """
    b = coerce_bits(bits)
    n = len(b)
    if window_size < 1 or window_size > n:
        return []
    min_count = max(1, int(min_count))

    if window_size > PACKED_MAX_WINDOW:
        table = _substring_table(b.bits, window_size)
        kept = [(p, pos) for p, pos in table.items() if len(pos) >= min_count]
        # dict order is first-occurrence order, so a stable sort keeps the tie-break
        kept.sort(key=lambda item: -len(item[1]))
        return [PatternMatch(pattern=p, count=len(pos), positions=pos) for p, pos in kept]

    codes = packed_codes(b, window_size)
    uniq, first, inverse, counts = np.unique(
        codes, return_index=True, return_inverse=True, return_counts=True
    )
    keep = np.flatnonzero(counts >= min_count)
    if keep.size == 0:
        return []
    order = keep[np.lexsort((first[keep], -counts[keep].astype(np.int64)))]

    grouped = np.argsort(inverse.ravel(), kind="stable")
    offsets = np.concatenate(([0], np.cumsum(counts)))
    return [
        PatternMatch(
            pattern=_format_code(uniq[k], window_size),
            count=int(counts[k]),
            positions=grouped[offsets[k]:offsets[k + 1]].tolist(),
        )
        for k in order
    ]


def pattern_frequency(bits: BitsLike, window_size: int) -> Dict[str, int]:
    """Overlapping n-gram histogram, keys in first-occurrence order."""
    b = coerce_bits(bits)
    if window_size < 1 or window_size > len(b):
        return {}
    if window_size > PACKED_MAX_WINDOW:
        return {p: len(pos) for p, pos in _substring_table(b.bits, window_size).items()}
    uniq, first, counts = np.unique(
        packed_codes(b, window_size), return_index=True, return_counts=True
    )
    order = np.argsort(first, kind="stable")
    return {_format_code(uniq[k], window_size): int(counts[k]) for k in order}


def chunk_distribution(bits: BitsLike, chunk_size: int) -> Dict[str, int]:
    """Histogram of complete, non-overlapping chunks (e.g. 2/3/4/8-bit)."""
    b = coerce_bits(bits)
    m = len(b) // chunk_size if chunk_size >= 1 else 0
    if m == 0:
        return {}
    if chunk_size > PACKED_MAX_WINDOW:
        counts: Dict[str, int] = {}
        for i in range(m):
            chunk = b.bits[i * chunk_size:(i + 1) * chunk_size]
            counts[chunk] = counts.get(chunk, 0) + 1
        return counts
    chunks = b.array[: m * chunk_size].reshape(m, chunk_size).astype(np.uint64)
    shifts = np.arange(chunk_size - 1, -1, -1, dtype=np.uint64)
    codes = np.bitwise_or.reduce(chunks << shifts, axis=1)
    uniq, first, counts_arr = np.unique(codes, return_index=True, return_counts=True)
    order = np.argsort(first, kind="stable")
    return {_format_code(uniq[k], chunk_size): int(counts_arr[k]) for k in order}


def unique_ngrams(bits: BitsLike, window_size: int) -> int:
    """Number of distinct overlapping windows of window_size bits."""
    b = coerce_bits(bits)
    if window_size < 1 or window_size > len(b):
        return 0
    if window_size > PACKED_MAX_WINDOW:
        return len(_substring_table(b.bits, window_size))
    return int(np.unique(packed_codes(b, window_size)).size)


def pattern_diversity(bits: BitsLike, window_size: int = 8) -> float:
    """distinct patterns / total patterns for overlapping windows."""
    b = coerce_bits(bits)
    total = len(b) - window_size + 1
    if window_size < 1 or total <= 0:
        return 0.0
    return unique_ngrams(b, window_size) / total


def _has_repeat(b: BitString, length: int) -> bool:
    total = len(b) - length + 1
    if total < 2:
        return False
    if length > PACKED_MAX_WINDOW:
        return len(_substring_table(b.bits, length)) < total
    return int(np.unique(packed_codes(b, length)).size) < total


def find_longest_repeated_substring(bits: BitsLike, max_len: int = 64) -> Optional[PatternMatch]:
    """
    Longest substring (length <= max_len) that occurs at least twice.

    Occurrences may overlap. If a length repeats, every shorter length
    repeats too, so the length is found by binary search. Among candidates
    of the winning length the one with the earliest start is returned.
    """
    b = coerce_bits(bits)
    hi = min(int(max_len), len(b) - 1)
    if hi < 1 or not _has_repeat(b, 1):
        return None
    lo = 1
    while lo < hi:
        mid = (lo + hi + 1) // 2
        if _has_repeat(b, mid):
            lo = mid
        else:
            hi = mid - 1
    matches = find_all_patterns(b, lo, min_count=2)
    return min(matches, key=lambda m: m.positions[0])


def transition_matrix(bits: BitsLike) -> Dict[str, int]:
    """Counts of adjacent pairs 00, 01, 10 and 11."""
    b = coerce_bits(bits)
    keys = ("00", "01", "10", "11")
    if len(b) < 2:
        return {k: 0 for k in keys}
    counts = np.bincount(packed_codes(b, 2).astype(np.int64), minlength=4)
    return {k: int(c) for k, c in zip(keys, counts)}


def search_sequence(bits: BitsLike, sequence: str) -> SequenceMatch:
    """
    Every (overlapping) occurrence of a literal sequence plus gap statistics.
    """
    text = coerce_bits(bits).bits
    needle = BitString(sequence).bits
    positions: List[int] = []
    if needle:
        index = text.find(needle)
        while index != -1:
            positions.append(index)
            index = text.find(needle, index + 1)

    gaps = np.diff(np.asarray(positions, dtype=np.float64))
    return SequenceMatch(
        sequence=needle,
        count=len(positions),
        positions=positions,
        mean_distance=float(gaps.mean()) if gaps.size else 0.0,
        variance_distance=float(gaps.var()) if gaps.size else 0.0,
    )


def lz_phrase_count(bits: BitsLike) -> int:
    """
    Number of phrases in the LZ78 incremental parse.

    Each phrase is the longest previously seen phrase extended by one bit; a
    trailing partial phrase counts as one more. Several complexity metrics
    share one parse per sequence through a small memo.
    """
    return _lz78_phrases(coerce_bits(bits).bits)


@lru_cache(maxsize=4)
def _lz78_phrases(text: str) -> int:
    trie: Dict[tuple, int] = {}
    node = 0
    next_id = 1
    phrases = 0
    for symbol in text:
        child = trie.get((node, symbol))
        if child is None:
            trie[(node, symbol)] = next_id
            next_id += 1
            phrases += 1
            node = 0
        else:
            node = child
    if node:
        phrases += 1
    return phrases
