"""
Capability boundary for user-supplied detectors and metrics.

Dynamically supplied logic never runs in the engine's process space directly.
A host provides a sandbox (restricted interpreter, subprocess, expression
language...) implementing one of the ABCs below. The sandbox receives only
the plain bit text plus parameters and must return plain data; the adapters
validate that data before it reaches the engine.

No concrete sandbox ships with bitsentinel.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from bitsentinel.data.bitstring import BitString
from bitsentinel.metrics.definitions import CUSTOM, MetricDefinition

from .schema import AnomalyDefinition, AnomalySeverity, Detection


class DetectorSandbox(ABC):
    """Executes detector source against bit text."""

    @abstractmethod
    def run_detector(self, source: str, bits: str, params: Dict[str, Any]) -> Any:
        """Return a list of mappings with integer 'position' and 'length' keys."""


class MetricSandbox(ABC):
    """Executes metric source against bit text."""

    @abstractmethod
    def run_metric(self, source: str, bits: str) -> Any:
        """Return a single finite number."""


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class SandboxedDetector:
    """detect(BitString) adapter over a DetectorSandbox."""

    sandbox: DetectorSandbox
    source: str
    params: Dict[str, Any] = field(default_factory=dict)

    def __call__(self, bits: BitString) -> List[Detection]:
        raw = self.sandbox.run_detector(self.source, bits.bits, dict(self.params))
        if not isinstance(raw, (list, tuple)):
            raise TypeError(f"sandbox returned {type(raw).__name__}, expected a list")
        detections = []
        for item in raw:
            if not isinstance(item, Mapping):
                raise TypeError(f"sandbox finding is {type(item).__name__}, expected a mapping")
            position, length = item.get("position"), item.get("length")
            if not (_is_int(position) and _is_int(length)):
                raise TypeError(f"sandbox finding needs integer position and length: {item!r}")
            details = {k: v for k, v in item.items() if k not in ("position", "length")}
            detections.append(Detection(position=position, length=length, details=details))
        return detections


@dataclass(frozen=True)
class SandboxedMetric:
    """compute(BitString) adapter over a MetricSandbox."""

    sandbox: MetricSandbox
    source: str

    def __call__(self, bits: BitString) -> float:
        value = self.sandbox.run_metric(self.source, bits.bits)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"sandbox returned {type(value).__name__}, expected a number")
        if not math.isfinite(value):
            raise ValueError(f"sandbox returned non-finite value {value}")
        return float(value)


def sandboxed_definition(
    definition_id: str,
    name: str,
    source: str,
    sandbox: DetectorSandbox,
    category: str = "Custom",
    severity: AnomalySeverity = AnomalySeverity.MEDIUM,
    description: str = "",
    params: Optional[Dict[str, Any]] = None,
    enabled: bool = True,
) -> AnomalyDefinition:
    return AnomalyDefinition(
        id=definition_id,
        name=name,
        category=category,
        severity=AnomalySeverity(severity),
        detect=SandboxedDetector(sandbox, source, dict(params or {})),
        description=description,
        enabled=enabled,
    )


def sandboxed_metric(
    metric_id: str,
    source: str,
    sandbox: MetricSandbox,
    display_name: str = "",
    category: str = CUSTOM,
    description: str = "",
    unit: str = "",
) -> MetricDefinition:
    return MetricDefinition(
        id=metric_id,
        display_name=display_name or metric_id,
        category=category,
        compute=SandboxedMetric(sandbox, source),
        description=description,
        unit=unit,
    )
