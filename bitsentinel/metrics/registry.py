"""
Metric registry.

A MetricsRegistry is an ordered id -> MetricDefinition table. The default
process-wide instance is seeded with the built-in catalog on first use; tests
and embedders construct isolated instances instead.
"""

from __future__ import annotations

import threading
from typing import Dict, Iterable, List, Optional

from bitsentinel.core.exceptions import MetricNotFoundError
from bitsentinel.core.registry import DefinitionRegistry

from .definitions import MetricDefinition, builtin_metrics


class MetricsRegistry(DefinitionRegistry[MetricDefinition]):
    kind = "metric"

    def _missing(self, definition_id: str) -> Exception:
        return MetricNotFoundError(definition_id)

    @classmethod
    def with_builtins(cls, extra: Optional[Iterable[MetricDefinition]] = None) -> "MetricsRegistry":
        registry = cls(builtin_metrics())
        for definition in extra or ():
            registry.register(definition)
        return registry

    def categories(self) -> List[str]:
        """Distinct categories in first-registration order."""
        seen: Dict[str, None] = {}
        for definition in self.definitions():
            seen.setdefault(definition.category, None)
        return list(seen)

    def by_category(self) -> Dict[str, List[MetricDefinition]]:
        grouped: Dict[str, List[MetricDefinition]] = {}
        for definition in self.definitions():
            grouped.setdefault(definition.category, []).append(definition)
        return grouped


_default_registry: Optional[MetricsRegistry] = None
_default_lock = threading.Lock()


def get_registry() -> MetricsRegistry:
    """Process-wide registry, created with the built-in catalog on first call."""
    global _default_registry
    if _default_registry is None:
        with _default_lock:
            if _default_registry is None:
                _default_registry = MetricsRegistry.with_builtins()
    return _default_registry


def register_metric(definition: MetricDefinition, replace: bool = False) -> MetricDefinition:
    """Register a metric on the process-wide registry."""
    return get_registry().register(definition, replace=replace)
