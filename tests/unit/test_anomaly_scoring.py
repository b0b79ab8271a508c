"""
Unit tests for severity ordering and summaries.
"""

from bitsentinel.anomaly.schema import Anomaly, AnomalySeverity
from bitsentinel.anomaly.scoring import overall_severity, severity_counts, severity_rank


def _anomaly(severity):
    return Anomaly(
        id="x-0-0",
        definition_id="x",
        name="X",
        category="Test",
        severity=severity,
        position=0,
        length=1,
    )


def test_overall_severity_picks_highest():
    assert overall_severity(AnomalySeverity.LOW, AnomalySeverity.HIGH, AnomalySeverity.MEDIUM) == AnomalySeverity.HIGH
    assert overall_severity(AnomalySeverity.LOW) == AnomalySeverity.LOW
    assert overall_severity() is None


def test_severity_rank_order():
    assert severity_rank(AnomalySeverity.LOW) < severity_rank(AnomalySeverity.MEDIUM) < severity_rank(AnomalySeverity.HIGH)
    assert severity_rank("high") == severity_rank(AnomalySeverity.HIGH)


def test_severity_counts():
    anomalies = [_anomaly("low"), _anomaly("high"), _anomaly("high")]
    assert severity_counts(anomalies) == {"low": 1, "medium": 0, "high": 2}
    assert severity_counts([]) == {"low": 0, "medium": 0, "high": 0}
