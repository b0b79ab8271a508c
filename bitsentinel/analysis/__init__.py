"""
Analysis module: statistical primitives, pattern analysis, compression
estimates, and ideality scoring over BitString inputs.
"""

from .compression import (
    CompressionEstimates,
    compression_ratio,
    estimate_compression,
    huffman_ratio,
    kolmogorov_estimate,
    lz_ratio,
    rle_ratio,
    theoretical_ratio,
)
from .ideality import calculate_all_idealities, calculate_ideality, top_ideality_windows
from .patterns import (
    chunk_distribution,
    find_all_patterns,
    find_longest_repeated_substring,
    lz_phrase_count,
    pattern_diversity,
    pattern_frequency,
    search_sequence,
    transition_matrix,
    unique_ngrams,
)
from .statistics import (
    ChiSquareResult,
    RunSpan,
    TransitionStats,
    autocorrelation,
    autocorrelation_series,
    chi_square,
    entropy,
    run_lengths,
    std_dev,
    transitions,
    variance,
)

__all__ = [
    "CompressionEstimates",
    "compression_ratio",
    "estimate_compression",
    "huffman_ratio",
    "kolmogorov_estimate",
    "lz_ratio",
    "rle_ratio",
    "theoretical_ratio",
    "calculate_all_idealities",
    "calculate_ideality",
    "top_ideality_windows",
    "chunk_distribution",
    "find_all_patterns",
    "find_longest_repeated_substring",
    "lz_phrase_count",
    "pattern_diversity",
    "pattern_frequency",
    "search_sequence",
    "transition_matrix",
    "unique_ngrams",
    "ChiSquareResult",
    "RunSpan",
    "TransitionStats",
    "autocorrelation",
    "autocorrelation_series",
    "chi_square",
    "entropy",
    "run_lengths",
    "std_dev",
    "transitions",
    "variance",
]
