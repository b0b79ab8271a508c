"""
Anomaly detection engine.

Runs registered AnomalyDefinitions over a BitString, isolates detector
failures, validates raw findings, and assembles position-ordered Anomaly
records.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError

from bitsentinel.core.config import Config, config
from bitsentinel.core.exceptions import DetectorExecutionError, DetectorNotFoundError
from bitsentinel.core.registry import DefinitionRegistry
from bitsentinel.data.bitstring import BitString, BitsLike, coerce_bits

from .detectors import default_definitions
from .schema import (
    Anomaly,
    AnomalyDefinition,
    Detection,
    DetectionReport,
    DetectorFailure,
)
from .scoring import overall_severity

logger = logging.getLogger(__name__)


class AnomalyRegistry(DefinitionRegistry[AnomalyDefinition]):
    kind = "anomaly definition"

    def _missing(self, definition_id: str) -> Exception:
        return DetectorNotFoundError(definition_id)

    def set_enabled(self, definition_id: str, enabled: bool) -> AnomalyDefinition:
        return self._replace(
            definition_id,
            lambda d: d.with_enabled(enabled),
            "enabled" if enabled else "disabled",
        )


def _to_detection(item: Any) -> Detection:
    if isinstance(item, Detection):
        return item
    if isinstance(item, Mapping):
        data = dict(item)
        position = data.pop("position")
        length = data.pop("length")
        details = data.pop("details", {})
        # any other keys are detector-specific details
        return Detection(position=position, length=length, details={**data, **details})
    raise TypeError(f"unsupported finding type {type(item).__name__}")


class AnomalyEngine:
    """
    Deterministic anomaly detection engine.

    Notes:
    - Detectors are independent; none observes another's output.
    - A detector that raises contributes no findings and is logged.
    - Findings outside [0, n] are dropped.

    Args:
        registry: definition table; defaults to a fresh table with the
            built-in catalog configured from settings
        settings: configuration; defaults to the module-level config
    """

    def __init__(self, registry: Optional[AnomalyRegistry] = None, settings: Optional[Config] = None):
        self.settings = settings or config
        if registry is None:
            registry = AnomalyRegistry(default_definitions(self.settings.anomaly.thresholds))
        self.registry = registry

    # Registry operations

    def register(self, definition: AnomalyDefinition, replace: bool = False) -> AnomalyDefinition:
        return self.registry.register(definition, replace=replace)

    def unregister(self, definition_id: str) -> AnomalyDefinition:
        return self.registry.unregister(definition_id)

    def enable(self, definition_id: str) -> AnomalyDefinition:
        return self.registry.set_enabled(definition_id, True)

    def disable(self, definition_id: str) -> AnomalyDefinition:
        return self.registry.set_enabled(definition_id, False)

    def get(self, definition_id: str) -> AnomalyDefinition:
        return self.registry.get(definition_id)

    def definitions(self) -> Tuple[AnomalyDefinition, ...]:
        return self.registry.definitions()

    def enabled_definitions(self) -> List[AnomalyDefinition]:
        return [d for d in self.registry.definitions() if d.enabled]

    def categories(self) -> List[str]:
        """Distinct categories in first-registration order."""
        return list(dict.fromkeys(d.category for d in self.registry.definitions()))

    def subscribe(self, listener: Callable[[str, str], None]) -> Callable[[], None]:
        return self.registry.subscribe(listener)

    # Detection

    def _run(self, definition: AnomalyDefinition, bits: BitString) -> List[Detection]:
        try:
            raw = definition.detect(bits)
            # drain lazy output here so a generator that raises counts as a failure
            iterable = raw is not None and not isinstance(raw, (str, bytes, Mapping))
            if iterable and hasattr(raw, "__iter__"):
                raw = list(raw)
        except Exception as exc:
            raise DetectorExecutionError(definition.id, f"{type(exc).__name__}: {exc}") from exc
        if raw is None:
            return []
        if isinstance(raw, (str, bytes, Mapping)) or not hasattr(raw, "__iter__"):
            raise DetectorExecutionError(
                definition.id, f"expected a sequence of findings, got {type(raw).__name__}"
            )

        n = len(bits)
        detections: List[Detection] = []
        for item in raw:
            try:
                detection = _to_detection(item)
            except (KeyError, TypeError, ValidationError) as exc:
                logger.debug("Dropping malformed finding from %s: %s", definition.id, exc)
                continue
            if detection.end > n:
                logger.debug(
                    "Dropping out-of-range finding from %s: %d+%d > %d",
                    definition.id,
                    detection.position,
                    detection.length,
                    n,
                )
                continue
            detections.append(detection)
        return detections

    def _safe_run(
        self, definition: AnomalyDefinition, bits: BitString
    ) -> Tuple[List[Detection], Optional[DetectorFailure]]:
        try:
            return self._run(definition, bits), None
        except DetectorExecutionError as exc:
            logger.warning("%s", exc)
            return [], DetectorFailure(definition_id=definition.id, message=exc.reason)

    def execute_detection(self, definition_id: str, bits: BitsLike) -> List[Detection]:
        """
        Run one definition.

        Returns [] when the definition is disabled or its detector fails.

        Raises:
            DetectorNotFoundError: if definition_id is not registered
        """
        definition = self.registry.get(definition_id)
        if not definition.enabled:
            return []
        detections, _ = self._safe_run(definition, coerce_bits(bits, self.settings.input.policy))
        return detections

    def _collect(self, bits: BitString) -> Tuple[List[Anomaly], List[DetectorFailure]]:
        anomalies: List[Anomaly] = []
        failures: List[DetectorFailure] = []
        for definition in self.registry.definitions():
            if not definition.enabled:
                continue
            detections, failure = self._safe_run(definition, bits)
            if failure is not None:
                failures.append(failure)
            for ordinal, detection in enumerate(detections):
                anomalies.append(
                    Anomaly(
                        id=f"{definition.id}-{detection.position}-{ordinal}",
                        definition_id=definition.id,
                        name=definition.name,
                        category=definition.category,
                        severity=definition.severity,
                        description=definition.description,
                        position=detection.position,
                        length=detection.length,
                        details=detection.details,
                    )
                )
        # stable: registration order, then ordinal, break position ties
        anomalies.sort(key=lambda a: a.position)
        return anomalies, failures

    def detect_all(self, bits: BitsLike) -> List[Anomaly]:
        """Findings of every enabled definition, ascending by position."""
        b = coerce_bits(bits, self.settings.input.policy)
        anomalies, _ = self._collect(b)
        logger.debug("Detected %d anomalies over %d bits", len(anomalies), len(b))
        return anomalies

    def run_all_detections(self, bits: BitsLike) -> DetectionReport:
        """detect_all plus per-definition grouping, failures and overall severity."""
        b = coerce_bits(bits, self.settings.input.policy)
        anomalies, failures = self._collect(b)
        groups: Dict[str, List[Anomaly]] = {}
        for anomaly in anomalies:
            groups.setdefault(anomaly.definition_id, []).append(anomaly)
        return DetectionReport(
            anomalies=anomalies,
            groups=groups,
            failures=failures,
            severity=overall_severity(*(a.severity for a in anomalies)),
        )


_default_engine: Optional[AnomalyEngine] = None
_default_lock = threading.Lock()


def get_engine() -> AnomalyEngine:
    """Process-wide engine with the built-in catalog, created on first call."""
    global _default_engine
    if _default_engine is None:
        with _default_lock:
            if _default_engine is None:
                _default_engine = AnomalyEngine()
    return _default_engine
