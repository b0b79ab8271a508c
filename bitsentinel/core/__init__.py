"""
Core module: Configuration, logging, registries, and exception handling.
"""

from .config import Config, config
from .exceptions import (
    BitSentinelError,
    ConfigurationError,
    DetectorExecutionError,
    DetectorNotFoundError,
    InputError,
    MetricComputeError,
    MetricNotFoundError,
    RegistryError,
)
from .registry import DefinitionRegistry

__all__ = [
    "Config",
    "config",
    "DefinitionRegistry",
    "BitSentinelError",
    "ConfigurationError",
    "DetectorExecutionError",
    "DetectorNotFoundError",
    "InputError",
    "MetricComputeError",
    "MetricNotFoundError",
    "RegistryError",
]
