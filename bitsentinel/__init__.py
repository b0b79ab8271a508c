"""
bitsentinel: bitstream statistics and anomaly detection.
"""

from bitsentinel.anomaly import AnomalyEngine
from bitsentinel.data import BitString
from bitsentinel.metrics import MetricsCalculator

__version__ = "0.1.0"

__all__ = ["AnomalyEngine", "BitString", "MetricsCalculator", "__version__"]
