"""
Pytest configuration and shared fixtures.

Provides isolated configuration, registries and engines plus sample bit
strings for unit and integration tests.
"""

import numpy as np
import pytest

from bitsentinel.anomaly.engine import AnomalyEngine, AnomalyRegistry
from bitsentinel.anomaly.detectors import default_definitions
from bitsentinel.core.config import Config
from bitsentinel.data.bitstring import BitString
from bitsentinel.metrics.calculator import MetricsCalculator
from bitsentinel.metrics.registry import MetricsRegistry


@pytest.fixture
def test_config():
    """
    Fixture providing a configuration independent of the environment.

    Explicit values ignore any .env file or BITSENTINEL_* variables.
    """
    return Config(
        _env_file=None,
        log_level="WARNING",
        log_to_file=False,
    )


@pytest.fixture
def metrics_registry():
    """Fresh registry with the built-in catalog, not shared across tests."""
    return MetricsRegistry.with_builtins()


@pytest.fixture
def calculator(metrics_registry, test_config):
    calc = MetricsCalculator(registry=metrics_registry, settings=test_config)
    yield calc
    calc.close()


@pytest.fixture
def anomaly_registry(test_config):
    return AnomalyRegistry(default_definitions(test_config.anomaly.thresholds))


@pytest.fixture
def engine(anomaly_registry, test_config):
    return AnomalyEngine(registry=anomaly_registry, settings=test_config)


@pytest.fixture
def empty_engine(test_config):
    """Engine with no definitions registered."""
    return AnomalyEngine(registry=AnomalyRegistry(), settings=test_config)


@pytest.fixture
def random_bits():
    """
    Fixture providing 8192 pseudo-random bits from a seeded generator.

    Reproducible across runs; balanced enough for randomness checks.
    """
    rng = np.random.default_rng(20240611)
    return BitString.from_array(rng.integers(0, 2, size=8192))


@pytest.fixture
def biased_bits():
    """8192 seeded bits with P(1) = 0.1."""
    rng = np.random.default_rng(7)
    return BitString.from_array((rng.random(8192) < 0.1).astype(np.uint8))


def pytest_configure(config):
    """
    Pytest hook for custom configuration.

    Registers custom markers used throughout tests.
    """
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running (deferred CI)"
    )
