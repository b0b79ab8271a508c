"""
Metric orchestration.

MetricsCalculator evaluates registered metrics against a BitString with
per-metric failure isolation. A batch always returns every metric that
succeeded; failures are collected in MetricsReport.errors and never abort the
run. The report counts as successful when every core metric computed.

Results are cached per (content hash, metric id) in a bounded LRU. The cache
is cleared whenever the registry changes, and each clear starts a new
generation: values computed from a registry snapshot taken before the change
are not stored, so a replaced definition is never served from a stale entry.
"""

from __future__ import annotations

import logging
import math
import numbers
import threading
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional, Tuple

from bitsentinel.core.config import Config, config
from bitsentinel.core.exceptions import MetricComputeError
from bitsentinel.data.bitstring import BitString, BitsLike, coerce_bits
from bitsentinel.data.schema import MetricError, MetricResult, MetricsReport

from .definitions import MetricDefinition
from .registry import MetricsRegistry, get_registry

logger = logging.getLogger(__name__)


class _ResultCache:
    """Thread-safe bounded LRU of successful metric values."""

    def __init__(self, max_size: int):
        self.max_size = max_size
        self._lock = threading.Lock()
        self.generation = 0
        self._entries: "OrderedDict[Tuple[str, str], float]" = OrderedDict()

    def get(self, key: Tuple[str, str]) -> Optional[float]:
        if self.max_size == 0:
            return None
        with self._lock:
            value = self._entries.get(key)
            if value is not None:
                self._entries.move_to_end(key)
            return value

    def put(self, key: Tuple[str, str], value: float, generation: int) -> None:
        if self.max_size == 0:
            return
        with self._lock:
            if generation != self.generation:
                return
            self._entries[key] = value
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.generation += 1

    def __len__(self) -> int:
        return len(self._entries)


def _evaluate(definition: MetricDefinition, bits: BitString) -> float:
    try:
        value = definition.compute(bits)
    except Exception as exc:
        raise MetricComputeError(definition.id, f"{type(exc).__name__}: {exc}") from exc
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise MetricComputeError(definition.id, f"non-numeric result {value!r}")
    value = float(value)
    if not math.isfinite(value):
        raise MetricComputeError(definition.id, f"non-finite result {value}")
    return value


class MetricsCalculator:
    """
    Evaluates metrics from a registry.

    Args:
        registry: metric table; defaults to the process-wide registry
        settings: configuration; defaults to the module-level config
    """

    def __init__(self, registry: Optional[MetricsRegistry] = None, settings: Optional[Config] = None):
        self.registry = registry if registry is not None else get_registry()
        self.settings = settings or config
        self._cache = _ResultCache(self.settings.metrics.cache_size)
        self._unsubscribe = self.registry.subscribe(self._on_registry_change)

    def _on_registry_change(self, event: str, metric_id: str) -> None:
        logger.debug("Metric registry %s %s; clearing result cache", event, metric_id)
        self._cache.clear()

    def close(self) -> None:
        """Detach from the registry and drop cached values."""
        self._unsubscribe()
        self._cache.clear()

    @property
    def core_metrics(self) -> List[str]:
        return list(self.settings.metrics.core_metrics)

    def _compute(self, definition: MetricDefinition, bits: BitString, generation: int) -> float:
        key = (bits.content_hash, definition.id)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        value = _evaluate(definition, bits)
        self._cache.put(key, value, generation)
        return value

    def _result(self, definition: MetricDefinition, bits: BitString, generation: int) -> MetricResult:
        try:
            value = self._compute(definition, bits, generation)
        except MetricComputeError as exc:
            logger.warning("%s", exc)
            return MetricResult(metric_id=definition.id, success=False, error=exc.reason)
        return MetricResult(metric_id=definition.id, success=True, value=value)

    def calculate_metric(self, metric_id: str, bits: BitsLike) -> MetricResult:
        """
        Evaluate one metric.

        Raises:
            MetricNotFoundError: if metric_id is not registered
            InputError: if bits is malformed under the input policy
        """
        generation = self._cache.generation
        definition = self.registry.get(metric_id)
        return self._result(definition, coerce_bits(bits, self.settings.input.policy), generation)

    def _report(
        self, definitions: Iterable[MetricDefinition], bits: BitString, generation: int
    ) -> MetricsReport:
        core = self.core_metrics
        ordered = sorted(
            definitions,
            key=lambda d: core.index(d.id) if d.id in core else len(core),
        )

        metrics: Dict[str, float] = {}
        errors: List[MetricError] = []
        for definition in ordered:
            result = self._result(definition, bits, generation)
            if result.success:
                metrics[definition.id] = result.value
            else:
                errors.append(MetricError(metric_id=definition.id, message=result.error or ""))

        failed = {e.metric_id for e in errors}
        core_ok = all(metric_id not in failed for metric_id in core)
        if not core_ok:
            logger.warning("Core metrics failed: %s", sorted(failed.intersection(core)))
        return MetricsReport(
            success=core_ok,
            metrics=metrics,
            errors=errors,
            core_metrics_computed=core_ok,
        )

    def calculate_all_metrics(self, bits: BitsLike) -> MetricsReport:
        """
        Evaluate every registered metric, core metrics first.

        Iterates the registry snapshot taken at the start of the call, so a
        concurrent registration affects only later batches.
        """
        b = coerce_bits(bits, self.settings.input.policy)
        generation = self._cache.generation
        definitions = self.registry.definitions()
        logger.debug("Computing %d metrics over %d bits", len(definitions), len(b))
        return self._report(definitions, b, generation)

    def calculate_metrics(self, bits: BitsLike, metric_ids: Iterable[str]) -> MetricsReport:
        """Evaluate a subset; unknown ids raise MetricNotFoundError before any work."""
        generation = self._cache.generation
        definitions = [self.registry.get(metric_id) for metric_id in metric_ids]
        return self._report(definitions, coerce_bits(bits, self.settings.input.policy), generation)

    def calculate_metric_on_range(
        self, metric_id: str, bits: BitsLike, start: int, end: int
    ) -> MetricResult:
        """Evaluate one metric over the half-open slice [start, end)."""
        generation = self._cache.generation
        definition = self.registry.get(metric_id)
        b = coerce_bits(bits, self.settings.input.policy)
        return self._result(definition, b.slice(start, end), generation)

    def calculate_all_metrics_on_range(self, bits: BitsLike, start: int, end: int) -> MetricsReport:
        b = coerce_bits(bits, self.settings.input.policy)
        return self.calculate_all_metrics(b.slice(start, end))

    def get_metrics_by_category(self) -> Dict[str, List[str]]:
        """Category -> metric ids, in registration order."""
        return {
            category: [d.id for d in definitions]
            for category, definitions in self.registry.by_category().items()
        }


def calculate_all_metrics(bits: BitsLike) -> MetricsReport:
    """Convenience wrapper over a calculator bound to the process-wide registry."""
    calculator = MetricsCalculator()
    try:
        return calculator.calculate_all_metrics(bits)
    finally:
        calculator.close()
