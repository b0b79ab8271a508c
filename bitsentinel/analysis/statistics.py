"""
Statistical primitives over bit strings.

Every function accepts a BitString (or text, coerced with the configured input
policy) and returns a defined neutral value for empty or single-bit input
instead of raising. Bits are treated as 0/1 numeric samples where a numeric
interpretation is needed.

Design:
- Counts come from the cached BitString views (ones, uint8 array)
- Moments of a 0/1 sample have closed forms in p = ones / n
- Run and transition scans are vectorized change-point detection, O(n)
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

import numpy as np

from bitsentinel.core.config import config
from bitsentinel.data.bitstring import BitsLike, coerce_bits

# 95% critical value of the chi-square distribution with one degree of freedom
CHI_SQUARE_CRITICAL_95 = 3.841


@dataclass(frozen=True)
class ChiSquareResult:
    value: float
    p_value: float
    is_random: bool


@dataclass(frozen=True)
class RunsTestResult:
    runs: int
    expected: float
    is_random: bool


@dataclass(frozen=True)
class TransitionStats:
    """Adjacent-pair changes; rate = total / (n - 1)."""

    zero_to_one: int
    one_to_zero: int
    total: int
    rate: float
    entropy: float


@dataclass(frozen=True)
class RunSpan:
    start: int
    length: int

    @property
    def end(self) -> int:
        """Inclusive index of the last bit."""
        return self.start + self.length - 1


@dataclass(frozen=True)
class BiasRegion:
    start: int
    end: int
    bias: float


@dataclass(frozen=True)
class BiasResult:
    percentage: float
    direction: str
    local_regions: List[BiasRegion] = field(default_factory=list)


def shannon_entropy(counts: Iterable[int]) -> float:
    """
    Shannon entropy (bits) of a histogram.

    Zero counts contribute nothing (0 * log2(0) is taken as 0).
    """
    counts = [c for c in counts if c > 0]
    total = sum(counts)
    if total == 0:
        return 0.0
    h = -sum((c / total) * math.log2(c / total) for c in counts)
    return max(0.0, h)


def binary_entropy_array(p: np.ndarray) -> np.ndarray:
    """Elementwise binary entropy H(p) with H(0) = H(1) = 0."""
    p = np.asarray(p, dtype=np.float64)
    out = np.zeros_like(p)
    mask = (p > 0.0) & (p < 1.0)
    q = p[mask]
    out[mask] = -(q * np.log2(q) + (1.0 - q) * np.log2(1.0 - q))
    return out


def entropy(bits: BitsLike) -> float:
    """Shannon entropy per symbol over {0, 1}, in [0, 1]."""
    b = coerce_bits(bits)
    return shannon_entropy((b.zeros, b.ones))


def balance(bits: BitsLike) -> float:
    """Fraction of ones (0 for empty input)."""
    b = coerce_bits(bits)
    return b.ones / len(b) if len(b) else 0.0


def chi_square(bits: BitsLike) -> ChiSquareResult:
    """
    Goodness of fit of the 0/1 counts against a uniform 50/50 expectation.

    One degree of freedom, so the p-value is the exact tail erfc(sqrt(x / 2)).
    """
    b = coerce_bits(bits)
    n = len(b)
    if n == 0:
        return ChiSquareResult(value=0.0, p_value=1.0, is_random=True)
    value = (b.ones - b.zeros) ** 2 / n
    p_value = math.erfc(math.sqrt(value / 2.0))
    return ChiSquareResult(
        value=value,
        p_value=p_value,
        is_random=value < CHI_SQUARE_CRITICAL_95,
    )


def _moments(bits: BitsLike) -> Tuple[int, float]:
    b = coerce_bits(bits)
    n = len(b)
    return n, (b.ones / n if n else 0.0)


def variance(bits: BitsLike) -> float:
    """Population variance of the bits as 0/1 samples: p(1 - p)."""
    n, p = _moments(bits)
    return p * (1.0 - p) if n else 0.0


def std_dev(bits: BitsLike) -> float:
    return math.sqrt(variance(bits))


def skewness(bits: BitsLike) -> float:
    """Moment skewness m3 / m2^1.5; 0 for constant input."""
    n, p = _moments(bits)
    m2 = p * (1.0 - p)
    if n == 0 or m2 == 0.0:
        return 0.0
    return (1.0 - 2.0 * p) / math.sqrt(m2)


def kurtosis(bits: BitsLike) -> float:
    """Excess kurtosis m4 / m2^2 - 3; 0 for constant input."""
    n, p = _moments(bits)
    m2 = p * (1.0 - p)
    if n == 0 or m2 == 0.0:
        return 0.0
    return (1.0 - 3.0 * p + 3.0 * p * p) / m2 - 3.0


def autocorrelation(bits: BitsLike, lag: int = 1) -> float:
    """
    Correlation of the sequence with itself shifted by lag positions.

    Normalized by the full-sequence sum of squared deviations, so lag 0 is 1
    for any non-constant input. Returns 0 when the variance is 0 or lag >= n.
    """
    b = coerce_bits(bits)
    n = len(b)
    lag = abs(int(lag))
    if n == 0 or lag >= n:
        return 0.0
    x = b.array.astype(np.float64)
    x -= x.mean()
    denom = float(np.dot(x, x))
    if denom == 0.0:
        return 0.0
    if lag == 0:
        return 1.0
    return float(np.dot(x[:-lag], x[lag:])) / denom


def autocorrelation_series(bits: BitsLike, max_lag: Optional[int] = None) -> List[float]:
    """
    Autocorrelation for lags 0..min(max_lag, n - 1).

    max_lag defaults to config.metrics.autocorrelation_max_lag.
    """
    if max_lag is None:
        max_lag = config.metrics.autocorrelation_max_lag
    b = coerce_bits(bits)
    return [autocorrelation(b, lag) for lag in range(min(max_lag, len(b) - 1) + 1)]


def serial_correlation(bits: BitsLike) -> float:
    return autocorrelation(bits, 1)


def run_bounds(bits: BitsLike) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Vectorized run decomposition.

    Returns:
        (starts, lengths, symbols) arrays, one entry per maximal run
    """
    arr = coerce_bits(bits).array
    n = arr.size
    if n == 0:
        empty = np.zeros(0, dtype=np.int64)
        return empty, empty, empty.astype(np.uint8)
    change = np.flatnonzero(arr[1:] != arr[:-1]) + 1
    starts = np.concatenate(([0], change)).astype(np.int64)
    ends = np.concatenate((change, [n])).astype(np.int64)
    return starts, ends - starts, arr[starts]


def run_lengths(bits: BitsLike) -> List[Tuple[int, int]]:
    """
    Run-length decomposition as (symbol, length) pairs, left to right.

    Concatenating str(symbol) * length over the pairs reproduces the input.
    """
    _, lengths, symbols = run_bounds(bits)
    return [(int(s), int(l)) for s, l in zip(symbols, lengths)]


def run_count(bits: BitsLike) -> int:
    return int(run_bounds(bits)[0].size)


def mean_run_length(bits: BitsLike) -> float:
    b = coerce_bits(bits)
    runs = run_count(b)
    return len(b) / runs if runs else 0.0


def longest_run(bits: BitsLike, symbol: Optional[int] = None) -> Optional[RunSpan]:
    """
    Longest run of symbol (either symbol if None); earliest wins ties.
    """
    starts, lengths, symbols = run_bounds(bits)
    if symbol is not None:
        mask = symbols == int(symbol)
        starts, lengths = starts[mask], lengths[mask]
    if lengths.size == 0:
        return None
    idx = int(np.argmax(lengths))
    return RunSpan(start=int(starts[idx]), length=int(lengths[idx]))


def transitions(bits: BitsLike) -> TransitionStats:
    """Counts of 0->1 and 1->0 adjacent changes plus transition entropy."""
    arr = coerce_bits(bits).array
    n = arr.size
    if n < 2:
        return TransitionStats(0, 0, 0, 0.0, 0.0)
    prev, nxt = arr[:-1], arr[1:]
    zero_to_one = int(np.count_nonzero((prev == 0) & (nxt == 1)))
    one_to_zero = int(np.count_nonzero((prev == 1) & (nxt == 0)))
    total = zero_to_one + one_to_zero
    pairs = n - 1
    return TransitionStats(
        zero_to_one=zero_to_one,
        one_to_zero=one_to_zero,
        total=total,
        rate=total / pairs,
        entropy=shannon_entropy((zero_to_one, one_to_zero, pairs - total)),
    )


def runs_test(bits: BitsLike) -> RunsTestResult:
    """Wald-Wolfowitz style runs count against its expectation (20% tolerance)."""
    b = coerce_bits(bits)
    n = len(b)
    if n < 2:
        return RunsTestResult(runs=0, expected=0.0, is_random=True)
    runs = run_count(b)
    expected = (2.0 * b.ones * b.zeros) / n + 1.0
    return RunsTestResult(
        runs=runs,
        expected=expected,
        is_random=abs(runs - expected) / expected < 0.2,
    )


def monobit_statistic(bits: BitsLike) -> float:
    """NIST frequency (monobit) statistic |S_n| / sqrt(n)."""
    b = coerce_bits(bits)
    n = len(b)
    return abs(b.ones - b.zeros) / math.sqrt(n) if n else 0.0


def window_counts(bits: BitsLike, window: int, step: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Ones per window for windows [i, i + window) with i = 0, step, 2*step, ...

    Only complete windows are returned.
    """
    arr = coerce_bits(bits).array
    n = arr.size
    if window < 1 or step < 1 or n < window:
        empty = np.zeros(0, dtype=np.int64)
        return empty, empty
    cumulative = np.concatenate(([0], np.cumsum(arr, dtype=np.int64)))
    starts = np.arange(0, n - window + 1, step, dtype=np.int64)
    return starts, cumulative[starts + window] - cumulative[starts]


def detect_bias(bits: BitsLike, window: int = 64, local_threshold: float = 20.0) -> BiasResult:
    """
    Global bias away from 50% ones plus locally biased windows.

    Direction is '1' or '0' when the global bias exceeds 5 points, otherwise
    'balanced'. Windows step by half their size.
    """
    b = coerce_bits(bits)
    n = len(b)
    if n == 0:
        return BiasResult(percentage=0.0, direction="balanced")
    ones_percent = b.ones / n * 100.0
    bias = abs(ones_percent - 50.0)
    direction = "balanced"
    if bias > 5.0:
        direction = "1" if ones_percent > 50.0 else "0"

    starts, counts = window_counts(b, window, max(1, window // 2))
    local_bias = np.abs(counts / window * 100.0 - 50.0) if counts.size else counts
    regions = [
        BiasRegion(start=int(s), end=int(s) + window, bias=float(v))
        for s, v in zip(starts, local_bias)
        if v > local_threshold
    ]
    return BiasResult(percentage=bias, direction=direction, local_regions=regions)


def block_entropies(bits: BitsLike, block_size: int) -> np.ndarray:
    """Binary entropy of every complete non-overlapping block."""
    arr = coerce_bits(bits).array
    if block_size < 1 or arr.size < block_size:
        return np.zeros(0, dtype=np.float64)
    blocks = arr[: (arr.size // block_size) * block_size].reshape(-1, block_size)
    return binary_entropy_array(blocks.sum(axis=1) / block_size)


def block_entropy(bits: BitsLike, block_size: int = 8) -> float:
    """Mean per-block binary entropy; 0 when no complete block exists."""
    values = block_entropies(bits, block_size)
    return float(values.mean()) if values.size else 0.0


def min_entropy(bits: BitsLike) -> float:
    b = coerce_bits(bits)
    n = len(b)
    if n == 0:
        return 0.0
    return max(0.0, -math.log2(max(b.ones, b.zeros) / n))


def collision_entropy(bits: BitsLike) -> float:
    """Renyi entropy of order 2: -log2(p0^2 + p1^2)."""
    n, p = _moments(bits)
    if n == 0:
        return 0.0
    return max(0.0, -math.log2(p * p + (1.0 - p) ** 2))


def kl_divergence(bits: BitsLike) -> float:
    """KL divergence of the symbol distribution from uniform (1 - H for binary)."""
    b = coerce_bits(bits)
    if len(b) == 0:
        return 0.0
    return max(0.0, 1.0 - entropy(b))
