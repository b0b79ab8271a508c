"""
Unit tests for the metric catalog and registry.
"""

import pytest

from bitsentinel.core.exceptions import MetricNotFoundError, RegistryError
from bitsentinel.metrics.definitions import (
    COMPLEXITY,
    COMPRESSION,
    INFORMATION_THEORY,
    PATTERN_ANALYSIS,
    RANDOMNESS,
    STATISTICS,
    STRUCTURE,
    TRANSITIONS,
    builtin_metrics,
    custom_metric,
)
from bitsentinel.metrics.registry import MetricsRegistry, get_registry


def test_builtin_ids_are_unique():
    ids = [m.id for m in builtin_metrics()]
    assert len(ids) >= 60
    assert len(ids) == len(set(ids))


def test_builtin_catalog_contains_core_metrics(test_config):
    ids = {m.id for m in builtin_metrics()}
    assert set(test_config.metrics.core_metrics) <= ids


def test_categories(metrics_registry):
    assert set(metrics_registry.categories()) == {
        INFORMATION_THEORY,
        STATISTICS,
        RANDOMNESS,
        COMPRESSION,
        PATTERN_ANALYSIS,
        TRANSITIONS,
        STRUCTURE,
        COMPLEXITY,
    }


def test_by_category_covers_every_metric(metrics_registry):
    grouped = metrics_registry.by_category()
    assert sum(len(v) for v in grouped.values()) == len(metrics_registry)


def test_unknown_metric_raises_not_found(metrics_registry):
    with pytest.raises(MetricNotFoundError) as exc_info:
        metrics_registry.get("no_such_metric")
    assert isinstance(exc_info.value, KeyError)
    assert str(exc_info.value) == "Metric 'no_such_metric' not found"


def test_runtime_registration(metrics_registry):
    metrics_registry.register(custom_metric("always_one", lambda b: 1.0))
    assert metrics_registry.ids[-1] == "always_one"
    assert metrics_registry.get("always_one").category == "Custom"
    with pytest.raises(RegistryError):
        metrics_registry.register(custom_metric("always_one", lambda b: 2.0))


def test_with_builtins_accepts_extras():
    registry = MetricsRegistry.with_builtins([custom_metric("extra", lambda b: 0.0)])
    assert "extra" in registry
    assert "entropy" in registry


def test_process_wide_registry_is_shared():
    assert get_registry() is get_registry()
    assert "entropy" in get_registry()
