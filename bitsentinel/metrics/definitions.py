"""
Built-in metric catalog.

Each MetricDefinition maps a globally unique id to a pure compute function
BitString -> number. Adding a metric requires one entry in builtin_metrics();
the registry, calculator, and category grouping pick it up automatically.

Conventions:
- Every built-in reports 0 for an empty sequence
- Values are plain floats (counts are converted)
- Byte-level metrics pad a trailing partial byte with zeros
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, List

import numpy as np

from bitsentinel.analysis import compression, ideality, patterns
from bitsentinel.analysis import statistics as stats
from bitsentinel.core.config import config
from bitsentinel.data.bitstring import BitString

MetricFn = Callable[[BitString], float]

INFORMATION_THEORY = "Information Theory"
STATISTICS = "Statistics"
RANDOMNESS = "Randomness"
COMPRESSION = "Compression"
PATTERN_ANALYSIS = "Pattern Analysis"
TRANSITIONS = "Transitions"
STRUCTURE = "Structure"
COMPLEXITY = "Complexity"
CUSTOM = "Custom"


@dataclass(frozen=True)
class MetricDefinition:
    """
    A named, categorized metric.

    Fields:
    - id: globally unique key used in reports
    - display_name: human-readable label
    - category: grouping for presentation
    - compute: BitString -> number; may raise, failures are isolated per metric
    - description / unit: documentation only
    """

    id: str
    display_name: str
    category: str
    compute: MetricFn
    description: str = ""
    unit: str = ""


def _byte_values(b: BitString) -> np.ndarray:
    # packbits zero-pads the last partial byte on the right
    return np.packbits(b.array).astype(np.float64)


def _pair_counts(b: BitString) -> List[int]:
    return list(patterns.transition_matrix(b).values())


def _joint_entropy(b: BitString) -> float:
    return stats.shannon_entropy(_pair_counts(b))


def _conditional_entropy(b: BitString) -> float:
    if len(b) < 2:
        return 0.0
    c00, c01, c10, c11 = _pair_counts(b)
    # distribution of the second symbol of each pair
    second = stats.shannon_entropy((c00 + c10, c01 + c11))
    return max(0.0, _joint_entropy(b) - second)


def _mutual_info(b: BitString) -> float:
    if len(b) < 2:
        return 0.0
    return max(0.0, 2.0 * stats.entropy(b) - _joint_entropy(b))


def _histogram_entropy(values: np.ndarray) -> float:
    if values.size == 0:
        return 0.0
    return stats.shannon_entropy(np.bincount(values.astype(np.int64)).tolist())


def _nibble_entropy(b: BitString) -> float:
    arr = b.array
    padded = np.concatenate((arr, np.zeros((-arr.size) % 4, dtype=np.uint8)))
    nibbles = padded.reshape(-1, 4) @ np.array([8, 4, 2, 1])
    return _histogram_entropy(nibbles)


def _block_pattern_entropy(b: BitString, size: int = 8) -> float:
    return stats.shannon_entropy(patterns.chunk_distribution(b, size).values())


def _overlapping_block_entropy(b: BitString, size: int = 8) -> float:
    return stats.shannon_entropy(patterns.pattern_frequency(b, size).values())


def _median(b: BitString) -> float:
    return float(np.median(_byte_values(b)))


def _mode(b: BitString) -> float:
    return float(np.argmax(np.bincount(_byte_values(b).astype(np.int64))))


def _range(b: BitString) -> float:
    values = _byte_values(b)
    return float(values.max() - values.min())


def _iqr(b: BitString) -> float:
    values = np.sort(_byte_values(b))
    if values.size < 4:
        return 0.0
    return float(values[int(values.size * 0.75)] - values[int(values.size * 0.25)])


def _mad(b: BitString) -> float:
    values = _byte_values(b)
    return float(np.abs(values - values.mean()).mean())


def _cv(b: BitString) -> float:
    values = _byte_values(b)
    mean = values.mean()
    return float(values.std() / mean) if mean else 0.0


def _serial_test(b: BitString) -> float:
    pairs = len(b) - 1
    if pairs < 1:
        return 0.0
    counts = np.asarray(_pair_counts(b), dtype=np.float64)
    return float(4.0 / pairs * np.sum(counts ** 2) - 2.0 * pairs)


def _poker_test(b: BitString) -> float:
    m = len(b) // 4
    if m == 0:
        return 0.0
    counts = np.asarray(list(patterns.chunk_distribution(b, 4).values()), dtype=np.float64)
    return float(16.0 / m * np.sum(counts ** 2) - m)


def _approximate_entropy(b: BitString, m: int = 2) -> float:
    def phi(length: int) -> float:
        total = len(b) - length + 1
        if total <= 0:
            return 0.0
        p = np.asarray(list(patterns.pattern_frequency(b, length).values()), dtype=np.float64) / total
        return float(np.sum(p * np.log(p)))

    if len(b) <= m:
        return 0.0
    return phi(m) - phi(m + 1)


def _spectral_test(b: BitString, limit: int = 256) -> float:
    values = b.array[:limit].astype(np.float64) * 2.0 - 1.0
    n = values.size
    if n < 4:
        return 0.0
    magnitudes = np.abs(np.fft.fft(values))[1:(n + 1) // 2]
    if magnitudes.size == 0:
        return 0.0
    return float(magnitudes.max() / math.sqrt(n))


def _periodicity(b: BitString) -> float:
    """Smallest period p <= n/2 with b[i] == b[i - p] everywhere, else n."""
    text = b.bits
    n = len(text)
    border = [0] * n
    k = 0
    for i in range(1, n):
        while k and text[i] != text[k]:
            k = border[k - 1]
        if text[i] == text[k]:
            k += 1
        border[i] = k
    period = n - border[-1]
    return float(period if period <= n // 2 else n)


def _longest_repeat(b: BitString) -> float:
    match = patterns.find_longest_repeated_substring(b, config.metrics.lrs_max_length)
    return float(len(match.pattern)) if match else 0.0


def _symmetry_index(b: BitString) -> float:
    half = len(b) // 2
    if half == 0:
        return 0.0
    arr = b.array
    return float(np.count_nonzero(arr[:half] == arr[::-1][:half]) / half)


def _dominant_run_length(b: BitString) -> float:
    _, lengths, _ = stats.run_bounds(b)
    return float(np.argmax(np.bincount(lengths)))


def _rise_fall_ratio(b: BitString) -> float:
    t = stats.transitions(b)
    if t.one_to_zero == 0:
        return 999.0 if t.zero_to_one else 1.0
    return t.zero_to_one / t.one_to_zero


def _leading_zeros(b: BitString) -> float:
    index = b.bits.find("1")
    return float(len(b) if index == -1 else index)


def _trailing_zeros(b: BitString) -> float:
    index = b.bits.rfind("1")
    return float(len(b) if index == -1 else len(b) - 1 - index)


def _block_regularity(b: BitString, block_size: int = 64) -> float:
    arr = b.array
    starts = np.arange(0, arr.size, block_size)
    if starts.size < 2:
        return 1.0
    sizes = np.minimum(block_size, arr.size - starts)
    ones = np.add.reduceat(arr.astype(np.int64), starts)
    entropies = stats.binary_entropy_array(ones / sizes)
    return float(1.0 - entropies.std())


def _window_entropies(b: BitString, window: int, step: int):
    starts, counts = stats.window_counts(b, window, step)
    return starts, stats.binary_entropy_array(counts / window)


def _segment_count(b: BitString, window: int = 32, threshold: float = 0.2) -> float:
    _, entropies = _window_entropies(b, window, window)
    return float(np.count_nonzero(np.abs(np.diff(entropies)) > threshold) + 1)


def _header_size(b: BitString, window: int = 32, threshold: float = 0.3) -> float:
    starts, entropies = _window_entropies(b, window, 8)
    hits = np.flatnonzero(entropies > threshold)
    return float(starts[hits[0]]) if hits.size else 0.0


def _footer_size(b: BitString, window: int = 32, threshold: float = 0.3) -> float:
    n = len(b)
    if n < window:
        return 0.0
    # windows anchored at the end, stepping backwards by 8
    starts = np.arange(n - window, -1, -8)
    cumulative = np.concatenate(([0], np.cumsum(b.array, dtype=np.int64)))
    entropies = stats.binary_entropy_array((cumulative[starts + window] - cumulative[starts]) / window)
    hits = np.flatnonzero(entropies > threshold)
    return float(n - starts[hits[0]] - window) if hits.size else 0.0


def _hamming_distance_self(b: BitString) -> float:
    half = len(b) // 2
    arr = b.array
    return float(np.count_nonzero(arr[:half] != arr[half:2 * half]))


def _bit_reversal_distance(b: BitString) -> float:
    arr = b.array
    return float(np.count_nonzero(arr != arr[::-1]))


def _lempel_ziv(b: BitString) -> float:
    n = len(b)
    return patterns.lz_phrase_count(b) / (n / math.log2(n + 1))


def _logical_depth(b: BitString) -> float:
    n = len(b)
    return patterns.lz_phrase_count(b) * math.log2(n + 1) / n


def _effective_complexity(b: BitString) -> float:
    regularity = 1.0 - stats.run_count(b) / len(b)
    return stats.entropy(b) * regularity * 4.0


def _fractal_dimension(b: BitString) -> float:
    box_sizes = np.array([2, 4, 8, 16, 32])
    arr = b.array
    counts = []
    for size in box_sizes:
        starts = np.arange(0, arr.size, size)
        counts.append(np.count_nonzero(np.maximum.reduceat(arr, starts)))
    log_sizes = np.log(1.0 / box_sizes)
    log_counts = np.log(np.maximum(np.asarray(counts, dtype=np.float64), 1.0))
    slope = np.polyfit(log_sizes, log_counts, 1)[0]
    return float(abs(slope))


def _spectral_flatness(b: BitString) -> float:
    values = _byte_values(b)
    arithmetic = values.mean()
    if arithmetic == 0:
        return 0.0
    geometric = math.exp(np.log(values + 1.0).mean())
    return float(geometric / (arithmetic + 1.0))


def _spectral_centroid(b: BitString) -> float:
    values = _byte_values(b)
    total = values.sum()
    if total == 0:
        return 0.0
    return float(np.dot(np.arange(values.size), values) / total)


def _bandwidth(b: BitString) -> float:
    values = _byte_values(b)
    total = values.sum()
    if total == 0:
        return 0.0
    positions = np.arange(values.size)
    centroid = np.dot(positions, values) / total
    return float(math.sqrt(np.dot(values, (positions - centroid) ** 2) / total))


def _ideality(b: BitString) -> float:
    results = ideality.calculate_all_idealities(b)
    return max((r.ideality_percentage for r in results), default=0.0)


def _builtin(
    metric_id: str,
    display_name: str,
    category: str,
    fn: MetricFn,
    description: str = "",
    unit: str = "",
) -> MetricDefinition:
    def compute(b: BitString) -> float:
        if len(b) == 0:
            return 0.0
        return float(fn(b))

    compute.__name__ = f"metric_{metric_id}"
    return MetricDefinition(
        id=metric_id,
        display_name=display_name,
        category=category,
        compute=compute,
        description=description,
        unit=unit,
    )


def builtin_metrics() -> List[MetricDefinition]:
    """Fresh list of every built-in MetricDefinition, in catalog order."""
    m = _builtin
    return [
        # Information theory
        m("entropy", "Shannon Entropy", INFORMATION_THEORY, stats.entropy,
          "Information density per bit", "bits"),
        m("conditional_entropy", "Conditional Entropy", INFORMATION_THEORY, _conditional_entropy,
          "H(next | previous) over adjacent pairs", "bits"),
        m("joint_entropy", "Joint Entropy", INFORMATION_THEORY, _joint_entropy,
          "Entropy of adjacent bit pairs", "bits"),
        m("mutual_info", "Mutual Information", INFORMATION_THEORY, _mutual_info,
          "2H(X) - H(X, X+1)", "bits"),
        m("min_entropy", "Min-Entropy", INFORMATION_THEORY, stats.min_entropy, unit="bits"),
        m("collision_entropy", "Collision Entropy", INFORMATION_THEORY, stats.collision_entropy,
          "Renyi entropy of order 2", "bits"),
        m("byte_entropy", "Byte Entropy", INFORMATION_THEORY,
          lambda b: _histogram_entropy(_byte_values(b)), unit="bits"),
        m("nibble_entropy", "Nibble Entropy", INFORMATION_THEORY, _nibble_entropy, unit="bits"),
        m("block_entropy", "Block Entropy", INFORMATION_THEORY, _block_pattern_entropy,
          "Entropy of non-overlapping 8-bit blocks", "bits"),
        m("block_entropy_8", "Mean Block Entropy (8)", INFORMATION_THEORY,
          lambda b: stats.block_entropy(b, 8), unit="bits"),
        m("block_entropy_16", "Mean Block Entropy (16)", INFORMATION_THEORY,
          lambda b: stats.block_entropy(b, 16), unit="bits"),
        m("block_entropy_overlapping", "Overlapping Block Entropy", INFORMATION_THEORY,
          _overlapping_block_entropy, unit="bits"),
        m("cross_entropy", "Cross Entropy (uniform)", INFORMATION_THEORY, lambda b: 1.0, unit="bits"),
        m("kl_divergence", "KL Divergence (uniform)", INFORMATION_THEORY, stats.kl_divergence,
          unit="bits"),
        # Statistics
        m("hamming_weight", "Hamming Weight", STATISTICS, lambda b: b.ones,
          "Count of 1-bits", "count"),
        m("balance", "Bit Balance", STATISTICS, stats.balance, "Ratio of 1-bits", "ratio"),
        m("variance", "Variance", STATISTICS, stats.variance),
        m("standard_deviation", "Standard Deviation", STATISTICS, stats.std_dev),
        m("skewness", "Skewness", STATISTICS, stats.skewness),
        m("kurtosis", "Excess Kurtosis", STATISTICS, stats.kurtosis),
        m("autocorrelation", "Autocorrelation (lag 1)", STATISTICS,
          lambda b: stats.autocorrelation(b, 1), unit="coefficient"),
        m("autocorr_lag2", "Autocorrelation (lag 2)", STATISTICS,
          lambda b: stats.autocorrelation(b, 2), unit="coefficient"),
        m("byte_std_dev", "Byte Standard Deviation", STATISTICS, lambda b: _byte_values(b).std()),
        m("median", "Byte Median", STATISTICS, _median),
        m("mode", "Byte Mode", STATISTICS, _mode),
        m("range", "Byte Range", STATISTICS, _range),
        m("iqr", "Byte Interquartile Range", STATISTICS, _iqr),
        m("mad", "Byte Mean Absolute Deviation", STATISTICS, _mad),
        m("cv", "Byte Coefficient of Variation", STATISTICS, _cv),
        # Randomness
        m("chi_square", "Chi-Square Statistic", RANDOMNESS, lambda b: stats.chi_square(b).value,
          unit="statistic"),
        m("chi_square_p_value", "Chi-Square p-value", RANDOMNESS,
          lambda b: stats.chi_square(b).p_value, unit="probability"),
        m("monobit_test", "Monobit Statistic", RANDOMNESS, stats.monobit_statistic),
        m("runs_test", "Runs Count", RANDOMNESS, stats.run_count, unit="count"),
        m("serial_correlation", "Serial Correlation", RANDOMNESS, stats.serial_correlation),
        m("serial_test", "Serial Test", RANDOMNESS, _serial_test),
        m("poker_test", "Poker Test", RANDOMNESS, _poker_test),
        m("bias_percentage", "Bias Percentage", RANDOMNESS,
          lambda b: stats.detect_bias(b).percentage, unit="percent"),
        m("apen", "Approximate Entropy", RANDOMNESS, _approximate_entropy),
        m("spectral_test", "Spectral Peak", RANDOMNESS, _spectral_test),
        # Compression
        m("compression_ratio", "Compression Ratio", COMPRESSION, compression.compression_ratio,
          unit="ratio"),
        m("rle_ratio", "RLE Ratio", COMPRESSION, compression.rle_ratio, unit="ratio"),
        m("huffman_estimate", "Huffman Estimate", COMPRESSION, compression.huffman_ratio,
          unit="ratio"),
        m("lz_estimate", "LZ Estimate", COMPRESSION, compression.lz_ratio, unit="ratio"),
        m("theoretical_ratio", "Shannon Bound Ratio", COMPRESSION, compression.theoretical_ratio,
          unit="ratio"),
        m("kolmogorov_estimate", "Kolmogorov Estimate", COMPRESSION,
          compression.kolmogorov_estimate, unit="bits"),
        m("run_length_avg", "Average Run Length", COMPRESSION, stats.mean_run_length, unit="bits"),
        # Pattern analysis
        m("ideality", "File Ideality", PATTERN_ANALYSIS, _ideality,
          "Best repeating-block density over the window catalog", "percent"),
        m("pattern_diversity", "Pattern Diversity", PATTERN_ANALYSIS,
          lambda b: patterns.pattern_diversity(b, config.metrics.pattern_window), unit="ratio"),
        m("unique_ngrams_2", "Unique 2-grams", PATTERN_ANALYSIS,
          lambda b: patterns.unique_ngrams(b, 2), unit="count"),
        m("unique_ngrams_4", "Unique 4-grams", PATTERN_ANALYSIS,
          lambda b: patterns.unique_ngrams(b, 4), unit="count"),
        m("unique_ngrams_8", "Unique 8-grams", PATTERN_ANALYSIS,
          lambda b: patterns.unique_ngrams(b, 8), unit="count"),
        m("longest_repeat", "Longest Repeated Substring", PATTERN_ANALYSIS, _longest_repeat,
          unit="bits"),
        m("periodicity", "Smallest Period", PATTERN_ANALYSIS, _periodicity, unit="bits"),
        m("symmetry_index", "Symmetry Index", PATTERN_ANALYSIS, _symmetry_index, unit="ratio"),
        m("dominant_run_length", "Dominant Run Length", PATTERN_ANALYSIS, _dominant_run_length,
          unit="bits"),
        # Transitions
        m("transition_count", "Transition Count", TRANSITIONS, lambda b: stats.transitions(b).total,
          "Number of 0->1 and 1->0 changes", "count"),
        m("transition_rate", "Transition Rate", TRANSITIONS, lambda b: stats.transitions(b).rate,
          unit="ratio"),
        m("transition_entropy", "Transition Entropy", TRANSITIONS,
          lambda b: stats.transitions(b).entropy, unit="bits"),
        m("rise_count", "Rise Count", TRANSITIONS, lambda b: stats.transitions(b).zero_to_one,
          unit="count"),
        m("fall_count", "Fall Count", TRANSITIONS, lambda b: stats.transitions(b).one_to_zero,
          unit="count"),
        m("rise_fall_ratio", "Rise/Fall Ratio", TRANSITIONS, _rise_fall_ratio, unit="ratio"),
        # Structure
        m("longest_run_ones", "Longest Run of Ones", STRUCTURE,
          lambda b: getattr(stats.longest_run(b, 1), "length", 0), unit="bits"),
        m("longest_run_zeros", "Longest Run of Zeros", STRUCTURE,
          lambda b: getattr(stats.longest_run(b, 0), "length", 0), unit="bits"),
        m("max_stable_run", "Longest Run", STRUCTURE,
          lambda b: getattr(stats.longest_run(b), "length", 0), unit="bits"),
        m("leading_zeros", "Leading Zeros", STRUCTURE, _leading_zeros, unit="bits"),
        m("trailing_zeros", "Trailing Zeros", STRUCTURE, _trailing_zeros, unit="bits"),
        m("parity", "Parity", STRUCTURE, lambda b: b.ones % 2),
        m("byte_alignment", "Byte Aligned", STRUCTURE, lambda b: int(len(b) % 8 == 0)),
        m("word_alignment", "Word Aligned", STRUCTURE, lambda b: int(len(b) % 32 == 0)),
        m("block_regularity", "Block Regularity", STRUCTURE, _block_regularity),
        m("segment_count", "Entropy Segments", STRUCTURE, _segment_count, unit="count"),
        m("header_size", "Header Size", STRUCTURE, _header_size, unit="bits"),
        m("footer_size", "Footer Size", STRUCTURE, _footer_size, unit="bits"),
        m("hamming_distance_self", "Half-to-Half Hamming Distance", STRUCTURE,
          _hamming_distance_self, unit="bits"),
        m("bit_reversal_distance", "Bit Reversal Distance", STRUCTURE, _bit_reversal_distance,
          unit="bits"),
        # Complexity
        m("lempel_ziv", "Lempel-Ziv Complexity", COMPLEXITY, _lempel_ziv),
        m("t_complexity", "Phrase Density", COMPLEXITY,
          lambda b: patterns.lz_phrase_count(b) / len(b)),
        m("bit_complexity", "Phrase Complexity", COMPLEXITY,
          lambda b: patterns.lz_phrase_count(b) / math.log2(len(b) + 1)),
        m("logical_depth", "Logical Depth Estimate", COMPLEXITY, _logical_depth),
        m("effective_complexity", "Effective Complexity", COMPLEXITY, _effective_complexity),
        m("fractal_dimension", "Box-Counting Dimension", COMPLEXITY, _fractal_dimension),
        m("spectral_flatness", "Spectral Flatness", COMPLEXITY, _spectral_flatness),
        m("spectral_centroid", "Spectral Centroid", COMPLEXITY, _spectral_centroid),
        m("bandwidth", "Spectral Bandwidth", COMPLEXITY, _bandwidth),
    ]


def custom_metric(
    metric_id: str,
    compute: MetricFn,
    display_name: str = "",
    category: str = CUSTOM,
    description: str = "",
    unit: str = "",
) -> MetricDefinition:
    """Convenience constructor for runtime-registered metrics."""
    return MetricDefinition(
        id=metric_id,
        display_name=display_name or metric_id,
        category=category,
        compute=compute,
        description=description,
        unit=unit,
    )
