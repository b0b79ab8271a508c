"""
Custom exceptions for bitsentinel.

These exceptions provide clear error semantics across the system.
Batch operations catch the unit-level errors (MetricComputeError,
DetectorExecutionError) and record them; single lookups let RegistryError
subclasses propagate to the caller.
"""


class BitSentinelError(Exception):
    """Base exception for all engine failures."""
    pass


class InputError(BitSentinelError, ValueError):
    """Raised when a bit string contains symbols outside {0, 1}."""
    pass


class MetricComputeError(BitSentinelError):
    """Raised when a single metric computation fails or returns a non-number."""

    def __init__(self, metric_id: str, message: str):
        super().__init__(f"Metric '{metric_id}' failed: {message}")
        self.metric_id = metric_id
        self.reason = message


class DetectorExecutionError(BitSentinelError):
    """Raised when a single detector fails or returns malformed findings."""

    def __init__(self, definition_id: str, message: str):
        super().__init__(f"Detector '{definition_id}' failed: {message}")
        self.definition_id = definition_id
        self.reason = message


class RegistryError(BitSentinelError):
    """Raised on invalid registry mutations (e.g., duplicate ids)."""
    pass


class MetricNotFoundError(RegistryError, KeyError):
    """Raised when a metric id is not registered."""

    def __init__(self, metric_id: str):
        super().__init__(f"Metric '{metric_id}' not found")
        self.metric_id = metric_id

    def __str__(self) -> str:
        return f"Metric '{self.metric_id}' not found"


class DetectorNotFoundError(RegistryError, KeyError):
    """Raised when an anomaly definition id is not registered."""

    def __init__(self, definition_id: str):
        super().__init__(f"Anomaly definition '{definition_id}' not found")
        self.definition_id = definition_id

    def __str__(self) -> str:
        return f"Anomaly definition '{self.definition_id}' not found"


class ConfigurationError(BitSentinelError):
    """Raised when configuration is invalid or missing."""
    pass
