"""
Anomaly module: pluggable bitstream detectors.

Implements the built-in detector catalog, the detection engine, severity
scoring, and the sandbox contract for user-supplied detectors.
"""

from .detectors import default_definitions
from .engine import AnomalyEngine, AnomalyRegistry, get_engine
from .sandbox import (
	DetectorSandbox,
	MetricSandbox,
	SandboxedDetector,
	SandboxedMetric,
	sandboxed_definition,
	sandboxed_metric,
)
from .schema import (
	Anomaly,
	AnomalyDefinition,
	AnomalySeverity,
	Detection,
	DetectionReport,
	DetectorFailure,
)
from .scoring import overall_severity, severity_counts

__all__ = [
	"AnomalyEngine",
	"AnomalyRegistry",
	"get_engine",
	"default_definitions",
	"Anomaly",
	"AnomalyDefinition",
	"AnomalySeverity",
	"Detection",
	"DetectionReport",
	"DetectorFailure",
	"DetectorSandbox",
	"MetricSandbox",
	"SandboxedDetector",
	"SandboxedMetric",
	"sandboxed_definition",
	"sandboxed_metric",
	"overall_severity",
	"severity_counts",
]
