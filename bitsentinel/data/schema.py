"""
Report schemas produced by the analysis engine.

All records are ephemeral: one per request, handed to presentation or export
collaborators and discarded. Field names are snake_case; model_dump() yields
plain JSON-compatible data.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class MetricResult(BaseModel):
    """
    Outcome of a single metric evaluation.

    Fields:
    - metric_id: registered id of the metric
    - success: False when compute raised or returned a non-finite value
    - value: computed value (0.0 on failure)
    - error: failure message, None on success
    """

    metric_id: str
    success: bool
    value: float = 0.0
    error: Optional[str] = None


class MetricError(BaseModel):
    """A single metric failure recorded inside a batch report."""

    metric_id: str
    message: str


class MetricsReport(BaseModel):
    """
    Result of a batch metric computation.

    Fields:
    - success: True when every core metric was computed
    - metrics: metric id -> value for every metric that succeeded
    - errors: one entry per failed metric
    - core_metrics_computed: whether the mandatory baseline subset succeeded
    """

    success: bool
    metrics: Dict[str, float] = Field(default_factory=dict)
    errors: List[MetricError] = Field(default_factory=list)
    core_metrics_computed: bool


class PatternMatch(BaseModel):
    """
    A fixed-length pattern and every position where it occurs.

    Positions are ascending; len(pattern) equals the window used for the scan.
    """

    pattern: str
    count: int = Field(ge=0)
    positions: List[int] = Field(default_factory=list)


class SequenceMatch(BaseModel):
    """
    Occurrences of a literal sequence with spacing statistics.

    Fields:
    - mean_distance: mean gap between consecutive occurrences (0 if < 2)
    - variance_distance: population variance of those gaps
    """

    sequence: str
    count: int = Field(ge=0)
    positions: List[int] = Field(default_factory=list)
    mean_distance: float = 0.0
    variance_distance: float = 0.0


class IdealityResult(BaseModel):
    """
    Repetition score of a bit range for one window size.

    Fields:
    - window_size: chunk size in bits
    - ideality_percentage: repeating_count / total_bits * 100, in [0, 100]
    - repeating_count: bits that belong to repeating chunks
    - total_bits: length of the scored range
    - ideal_bit_indices: global indices of the repeating bits, ascending
    """

    window_size: int
    ideality_percentage: float = Field(0.0, ge=0.0, le=100.0)
    repeating_count: int = Field(0, ge=0)
    total_bits: int = Field(0, ge=0)
    ideal_bit_indices: List[int] = Field(default_factory=list)
