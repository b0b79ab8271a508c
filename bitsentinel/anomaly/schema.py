"""
Schema definitions for anomaly detection.

A detector reports raw Detections (position, length, free-form details). The
engine enriches every Detection with the static properties of the definition
that produced it, yielding an Anomaly. Severity is never derived from the
Detection itself.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from bitsentinel.data.bitstring import BitString


class AnomalySeverity(str, Enum):
    """Severity levels for anomaly definitions."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Detection(BaseModel):
    """
    A single finding reported by a detector.

    Fields:
    - position: index of the first flagged bit
    - length: number of flagged bits
    - details: detector-specific values (pattern, density, ...)
    """

    position: int = Field(ge=0)
    length: int = Field(ge=0)
    details: Dict[str, Any] = Field(default_factory=dict)

    @property
    def end(self) -> int:
        return self.position + self.length


DetectFn = Callable[[BitString], Sequence[Any]]


@dataclass(frozen=True)
class AnomalyDefinition:
    """
    A named detector plus the static metadata attached to its findings.

    Fields:
    - id: unique key, also the prefix of every Anomaly id
    - name / description / category: presentation metadata
    - severity: fixed severity of every finding
    - enabled: disabled definitions are skipped by detect_all
    - detect: BitString -> sequence of Detection (or mappings with
      position/length keys); may raise, failures are isolated
    """

    id: str
    name: str
    category: str
    severity: AnomalySeverity
    detect: DetectFn
    description: str = ""
    enabled: bool = True

    def with_enabled(self, enabled: bool) -> "AnomalyDefinition":
        return replace(self, enabled=enabled)


class Anomaly(BaseModel):
    """
    A Detection enriched with its definition's metadata.

    Fields:
    - id: synthetic '<definition_id>-<position>-<ordinal>', stable per input
    - definition_id / name / category / severity / description: copied from
      the definition
    - position / length / details: copied from the Detection
    """

    id: str
    definition_id: str
    name: str
    category: str
    severity: AnomalySeverity
    description: str = ""
    position: int = Field(ge=0)
    length: int = Field(ge=0)
    details: Dict[str, Any] = Field(default_factory=dict)


class DetectorFailure(BaseModel):
    """A definition that raised or returned malformed output during a batch."""

    definition_id: str
    message: str


class DetectionReport(BaseModel):
    """
    Result of running every enabled definition.

    Fields:
    - anomalies: all findings sorted ascending by position
    - groups: definition id -> its findings (only definitions with findings)
    - failures: one entry per definition that failed
    - severity: highest severity among the findings, None when there are none
    """

    anomalies: List[Anomaly] = Field(default_factory=list)
    groups: Dict[str, List[Anomaly]] = Field(default_factory=dict)
    failures: List[DetectorFailure] = Field(default_factory=list)
    severity: Optional[AnomalySeverity] = None
