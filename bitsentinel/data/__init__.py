"""
Data module: the BitString value type and report schemas.

    Raw text / bytes
        ↓
    coerce_bits (input policy) → BitString
        ↓
    Analysis, metrics, anomaly detection
        ↓
    MetricsReport / PatternMatch / IdealityResult
"""

from bitsentinel.data.bitstring import BitString, BitsLike, coerce_bits, sanitize_bits
from bitsentinel.data.schema import (
    IdealityResult,
    MetricError,
    MetricResult,
    MetricsReport,
    PatternMatch,
    SequenceMatch,
)

__all__ = [
    "BitString",
    "BitsLike",
    "coerce_bits",
    "sanitize_bits",
    "IdealityResult",
    "MetricError",
    "MetricResult",
    "MetricsReport",
    "PatternMatch",
    "SequenceMatch",
]
