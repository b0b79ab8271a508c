"""
Unit tests for metric orchestration.
"""

import math

import pytest

from bitsentinel.core.config import Config, MetricsConfig
from bitsentinel.core.exceptions import MetricNotFoundError
from bitsentinel.metrics.calculator import MetricsCalculator
from bitsentinel.metrics.definitions import custom_metric
from bitsentinel.metrics.registry import MetricsRegistry


class TestCalculateMetric:
    """Single metric evaluation."""

    def test_scenario_one(self, calculator):
        assert calculator.calculate_metric("entropy", "11110000").value == pytest.approx(1.0)
        assert calculator.calculate_metric("fall_count", "11110000").value == 1.0
        assert calculator.calculate_metric("rise_count", "11110000").value == 0.0

    def test_scenario_two(self, calculator):
        assert calculator.calculate_metric("entropy", "10101010").value == pytest.approx(1.0)
        assert calculator.calculate_metric("transition_count", "10101010").value == 7.0

    def test_unknown_id(self, calculator):
        with pytest.raises(MetricNotFoundError):
            calculator.calculate_metric("no_such_metric", "0101")

    def test_throwing_metric_is_isolated(self, calculator, metrics_registry):
        metrics_registry.register(custom_metric("boom", lambda b: 1 / 0))
        result = calculator.calculate_metric("boom", "0101")
        assert not result.success
        assert "ZeroDivisionError" in result.error

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), "1.0", None, True])
    def test_invalid_values_fail(self, calculator, metrics_registry, value):
        metrics_registry.register(custom_metric("bad", lambda b: value))
        assert not calculator.calculate_metric("bad", "0101").success

    def test_on_range(self, calculator):
        result = calculator.calculate_metric_on_range("hamming_weight", "11110000", 2, 6)
        assert result.value == 2.0


class TestCalculateAllMetrics:
    """Batch evaluation."""

    def test_empty_input_is_neutral(self, calculator):
        report = calculator.calculate_all_metrics("")
        assert report.success
        assert report.core_metrics_computed
        assert report.errors == []
        assert all(v == 0.0 for v in report.metrics.values())

    @pytest.mark.parametrize("bits", ["0", "1", "01", "11110000", "1" * 100])
    def test_builtins_never_fail(self, calculator, bits):
        report = calculator.calculate_all_metrics(bits)
        assert report.errors == []
        assert all(math.isfinite(v) for v in report.metrics.values())

    def test_builtins_on_random_input(self, calculator, random_bits, metrics_registry):
        report = calculator.calculate_all_metrics(random_bits)
        assert report.success
        assert report.errors == []
        assert set(report.metrics) == set(metrics_registry.ids)

    def test_core_metrics_come_first(self, calculator, test_config):
        report = calculator.calculate_all_metrics("0110")
        core = test_config.metrics.core_metrics
        assert list(report.metrics)[: len(core)] == core

    def test_failure_is_recorded_and_batch_continues(self, calculator, metrics_registry):
        metrics_registry.register(custom_metric("boom", lambda b: 1 / 0))
        report = calculator.calculate_all_metrics("0110")
        assert report.success
        assert [e.metric_id for e in report.errors] == ["boom"]
        assert "boom" not in report.metrics
        assert "entropy" in report.metrics

    def test_core_failure_marks_report(self, calculator, metrics_registry):
        metrics_registry.register(custom_metric("entropy", lambda b: 1 / 0), replace=True)
        report = calculator.calculate_all_metrics("0110")
        assert not report.success
        assert not report.core_metrics_computed
        assert "balance" in report.metrics

    def test_registration_during_batch_uses_start_snapshot(self, calculator, metrics_registry):
        def registers_another(bits):
            if "late" not in metrics_registry:
                metrics_registry.register(custom_metric("late", lambda b: 1.0))
            return 0.0

        metrics_registry.register(custom_metric("registrar", registers_another))
        first = calculator.calculate_all_metrics("0110")
        second = calculator.calculate_all_metrics("0110")
        assert "late" not in first.metrics
        assert second.metrics["late"] == 1.0

    def test_subset(self, calculator):
        report = calculator.calculate_metrics("0110", ["entropy", "balance"])
        assert set(report.metrics) == {"entropy", "balance"}
        with pytest.raises(MetricNotFoundError):
            calculator.calculate_metrics("0110", ["entropy", "missing"])


class TestCache:
    """Per (content hash, metric id) result cache."""

    def _counting(self, registry, value=1.0):
        calls = []

        def compute(bits):
            calls.append(bits.bits)
            return value

        registry.register(custom_metric("counted", compute), replace="counted" in registry)
        return calls

    def test_repeated_calls_hit_cache(self, calculator, metrics_registry):
        calls = self._counting(metrics_registry)
        calculator.calculate_metric("counted", "0101")
        calculator.calculate_metric("counted", "0101")
        calculator.calculate_metric("counted", "0111")
        assert calls == ["0101", "0111"]

    def test_registry_change_invalidates(self, calculator, metrics_registry):
        self._counting(metrics_registry, 1.0)
        assert calculator.calculate_metric("counted", "0101").value == 1.0
        self._counting(metrics_registry, 2.0)
        assert calculator.calculate_metric("counted", "0101").value == 2.0

    def test_replacement_during_batch_is_not_cached(self, calculator, metrics_registry):
        def replaces_target(bits):
            metrics_registry.register(custom_metric("target", lambda b: 2.0), replace=True)
            return 0.0

        metrics_registry.register(custom_metric("replacer", replaces_target))
        metrics_registry.register(custom_metric("target", lambda b: 1.0))

        report = calculator.calculate_all_metrics("0110")
        assert report.metrics["target"] == 1.0
        assert calculator.calculate_metric("target", "0110").value == 2.0

    def test_cache_can_be_disabled(self, metrics_registry):
        settings = Config(_env_file=None, metrics=MetricsConfig(cache_size=0))
        calculator = MetricsCalculator(registry=metrics_registry, settings=settings)
        calls = self._counting(metrics_registry)
        calculator.calculate_metric("counted", "0101")
        calculator.calculate_metric("counted", "0101")
        assert len(calls) == 2
        calculator.close()


def test_metrics_by_category(calculator):
    grouped = calculator.get_metrics_by_category()
    assert "entropy" in grouped["Information Theory"]
    assert "transition_count" in grouped["Transitions"]


def test_isolated_registries_do_not_leak(test_config):
    first = MetricsRegistry.with_builtins()
    second = MetricsRegistry.with_builtins()
    first.register(custom_metric("only_here", lambda b: 0.0))
    calc = MetricsCalculator(registry=second, settings=test_config)
    with pytest.raises(MetricNotFoundError):
        calc.calculate_metric("only_here", "01")
    calc.close()
