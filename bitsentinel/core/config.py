"""
Application configuration for bitsentinel.

Provides environment-aware settings with conservative defaults. Detector
thresholds and estimator constants are configurable to avoid hard-coded
"magic numbers" inside the analysis code.
"""

from __future__ import annotations

from pathlib import Path
from typing import List

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class InputConfig(BaseModel):
	"""
	Input validation policy.

	Notes:
	- policy: 'reject' raises InputError, 'sanitize' silently drops every
	  symbol outside {0, 1}.
	"""

	policy: str = Field("reject", description="Malformed input policy: 'reject' or 'sanitize'")

	@field_validator("policy")
	@classmethod
	def _check_policy(cls, value: str) -> str:
		value = value.strip().lower()
		if value not in {"reject", "sanitize"}:
			raise ValueError(f"Unknown input policy: {value}")
		return value


class MetricsConfig(BaseModel):
	"""
	Metric orchestration settings.

	Notes:
	- core_metrics must succeed for a report to count as successful.
	- cache_size bounds the (content hash, metric id) result cache; 0 disables it.
	- rle_run_overhead_bits is the per-run cost assumed by the RLE estimate
	  (8 bits of length + 1 bit of value).
	"""

	core_metrics: List[str] = Field(
		default_factory=lambda: [
			"entropy",
			"balance",
			"hamming_weight",
			"transition_count",
			"run_length_avg",
		]
	)
	cache_size: int = Field(4096, ge=0)
	rle_run_overhead_bits: int = Field(9, ge=1)
	pattern_window: int = Field(8, ge=1, description="Canonical window for pattern diversity")
	lrs_max_length: int = Field(64, ge=1, description="Longest repeated substring cap")
	autocorrelation_max_lag: int = Field(10, ge=1)


class IdealityConfig(BaseModel):
	"""
	Window catalog evaluated by calculate_all_idealities.
	"""

	window_sizes: List[int] = Field(
		default_factory=lambda: [1, 2, 3, 4, 6, 8, 12, 16, 24, 32, 48, 64]
	)

	@field_validator("window_sizes")
	@classmethod
	def _check_windows(cls, value: List[int]) -> List[int]:
		if any(w < 1 for w in value):
			raise ValueError("Ideality window sizes must be >= 1")
		return sorted(set(value))


class DetectorThresholds(BaseModel):
	"""
	Thresholds for the built-in anomaly detectors.

	Rationale:
	- Minimum lengths follow the classic defaults of the detector catalog.
	- Window-based detectors step by half a window.
	"""

	palindrome_min_length: int = Field(5, ge=1)
	repeating_min_length: int = Field(4, ge=1)
	repeating_max_length: int = Field(20, ge=1)
	repeating_min_repeats: int = Field(3, ge=2)
	alternating_min_length: int = Field(8, ge=2)
	long_run_min_length: int = Field(10, ge=1)
	density_window: int = Field(64, ge=2)
	density_low_percent: float = Field(15.0, ge=0.0, le=100.0)
	density_high_percent: float = Field(85.0, ge=0.0, le=100.0)
	block_min_length: int = Field(32, ge=1)
	entropy_window: int = Field(64, ge=2)
	entropy_delta: float = Field(0.3, ge=0.0, le=1.0)
	nibble_min_length: int = Field(16, ge=8)
	transition_window: int = Field(32, ge=2)
	transition_rate: float = Field(0.8, ge=0.0, le=1.0)


class AnomalyConfig(BaseModel):
	"""
	Anomaly detection configuration.
	"""

	thresholds: DetectorThresholds = DetectorThresholds()


class Config(BaseSettings):
	"""
	Global configuration with environment overrides.
	"""

	model_config = SettingsConfigDict(
		env_prefix="BITSENTINEL_",
		env_file=".env",
		env_nested_delimiter="__",
		extra="ignore",
	)

	log_level: str = Field("INFO", description="Default logging level")
	logs_dir: Path = Field(Path("logs"), description="Directory for log files")
	log_to_file: bool = Field(False, description="Attach a rotating file handler")
	input: InputConfig = InputConfig()
	metrics: MetricsConfig = MetricsConfig()
	ideality: IdealityConfig = IdealityConfig()
	anomaly: AnomalyConfig = AnomalyConfig()


config = Config()
