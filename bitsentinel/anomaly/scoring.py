"""
Severity ordering and summaries for anomalies.
"""

from __future__ import annotations

from typing import Dict, Iterable, Optional

from .schema import Anomaly, AnomalySeverity

SEVERITY_ORDER = [
    AnomalySeverity.LOW,
    AnomalySeverity.MEDIUM,
    AnomalySeverity.HIGH,
]


def severity_rank(severity: AnomalySeverity) -> int:
    return SEVERITY_ORDER.index(AnomalySeverity(severity))


def overall_severity(*severities: AnomalySeverity) -> Optional[AnomalySeverity]:
    """
    Return the highest severity among inputs, or None when there are none.
    """

    if not severities:
        return None
    return max(severities, key=severity_rank)


def severity_counts(anomalies: Iterable[Anomaly]) -> Dict[str, int]:
    """Number of anomalies per severity level; every level is present."""
    counts = {s.value: 0 for s in SEVERITY_ORDER}
    for anomaly in anomalies:
        counts[AnomalySeverity(anomaly.severity).value] += 1
    return counts
