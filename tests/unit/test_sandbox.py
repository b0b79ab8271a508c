"""
Unit tests for the sandbox capability boundary.
"""

import pytest

from bitsentinel.anomaly.sandbox import (
    DetectorSandbox,
    MetricSandbox,
    SandboxedDetector,
    SandboxedMetric,
    sandboxed_definition,
    sandboxed_metric,
)
from bitsentinel.data.bitstring import BitString


class ScriptedDetectorSandbox(DetectorSandbox):
    """Returns a canned result and records what it was given."""

    def __init__(self, result):
        self.result = result
        self.calls = []

    def run_detector(self, source, bits, params):
        self.calls.append((source, bits, params))
        return self.result


class CountingMetricSandbox(MetricSandbox):
    def __init__(self, result=None):
        self.result = result

    def run_metric(self, source, bits):
        return bits.count("1") if self.result is None else self.result


def test_abstract_sandboxes_cannot_be_instantiated():
    with pytest.raises(TypeError):
        DetectorSandbox()
    with pytest.raises(TypeError):
        MetricSandbox()


def test_detector_receives_plain_text_only():
    sandbox = ScriptedDetectorSandbox([{"position": 1, "length": 2, "score": 0.5}])
    detect = SandboxedDetector(sandbox, "source", {"min_length": 2})

    found = detect(BitString("0110"))

    assert sandbox.calls == [("source", "0110", {"min_length": 2})]
    assert isinstance(sandbox.calls[0][1], str)
    assert [(d.position, d.length, d.details) for d in found] == [(1, 2, {"score": 0.5})]


@pytest.mark.parametrize(
    "result",
    [
        "not a list",
        [("tuple", 1)],
        [{"position": 0}],
        [{"position": True, "length": 1}],
        [{"position": 0.5, "length": 1}],
    ],
)
def test_detector_rejects_malformed_output(result):
    detect = SandboxedDetector(ScriptedDetectorSandbox(result), "source")
    with pytest.raises(TypeError):
        detect(BitString("0110"))


def test_sandboxed_definition_runs_in_engine(empty_engine):
    good = sandboxed_definition("custom_ok", "Custom OK", "src", ScriptedDetectorSandbox([{"position": 0, "length": 1}]))
    bad = sandboxed_definition("custom_bad", "Custom Bad", "src", ScriptedDetectorSandbox("oops"))
    empty_engine.register(good)
    empty_engine.register(bad)

    report = empty_engine.run_all_detections("0110")

    assert [a.definition_id for a in report.anomalies] == ["custom_ok"]
    assert [f.definition_id for f in report.failures] == ["custom_bad"]


def test_metric_adapter():
    assert SandboxedMetric(CountingMetricSandbox(), "src")(BitString("0111")) == 3.0
    with pytest.raises(TypeError):
        SandboxedMetric(CountingMetricSandbox("3"), "src")(BitString("0111"))
    with pytest.raises(ValueError):
        SandboxedMetric(CountingMetricSandbox(float("inf")), "src")(BitString("0111"))


def test_sandboxed_metric_in_calculator(calculator, metrics_registry):
    metrics_registry.register(sandboxed_metric("ones_in_sandbox", "src", CountingMetricSandbox()))
    metrics_registry.register(sandboxed_metric("broken_sandbox", "src", CountingMetricSandbox(True)))

    report = calculator.calculate_all_metrics("0111")

    assert report.metrics["ones_in_sandbox"] == 3.0
    assert [e.metric_id for e in report.errors] == ["broken_sandbox"]
