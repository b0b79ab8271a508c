"""
Metrics module: built-in catalog, registry, and the batch orchestrator.
"""

from .calculator import MetricsCalculator, calculate_all_metrics
from .definitions import MetricDefinition, builtin_metrics, custom_metric
from .registry import MetricsRegistry, get_registry, register_metric

__all__ = [
    "MetricsCalculator",
    "calculate_all_metrics",
    "MetricDefinition",
    "builtin_metrics",
    "custom_metric",
    "MetricsRegistry",
    "get_registry",
    "register_metric",
]
