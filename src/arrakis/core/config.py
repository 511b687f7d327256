# src/arrakis/core/config
"""Pydantic-based configuration for adaptive queue polling.

This module defines the `PollingConfig` model that holds the wait times,
volume thresholds and EWMA parameters used by the adaptive polling
controller, together with the fixed algorithm constants and a TOML loader.

Key behaviours:
- Zero or missing values for optional numeric fields fall back to defaults.
- Invalid values (non-positive waits, alpha outside (0, 1], unordered
  thresholds) fail fast with a `pydantic.ValidationError`.
- Immutability via Pydantic's `frozen` config.
"""
import logging

from pathlib import Path
from typing import Any, Dict

import toml

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

logger = logging.getLogger(__name__)

# Defaults for the configurable wait times (seconds)
DEFAULT_IDLE_WAIT_SECONDS: int = 20
DEFAULT_VISIBILITY_TIMEOUT_SECONDS: int = 30
DEFAULT_LOW_VOLUME_WAIT_SECONDS: int = 15
DEFAULT_MEDIUM_VOLUME_WAIT_SECONDS: int = 10
DEFAULT_HIGH_VOLUME_WAIT_SECONDS: int = 5
DEFAULT_VERY_HIGH_VOLUME_WAIT_SECONDS: int = 1

# EWMA defaults
DEFAULT_EWMA_ALPHA: float = 0.3
DEFAULT_DROP_DETECTION_THRESHOLD: int = 10
DEFAULT_DECAY_HALF_LIFE_SECONDS: float = 30.0

# Volume classification thresholds (average messages per poll)
DEFAULT_LOW_VOLUME_THRESHOLD: float = 2.0
DEFAULT_MEDIUM_VOLUME_THRESHOLD: float = 5.0
DEFAULT_HIGH_VOLUME_THRESHOLD: float = 10.0

# Fixed algorithm constants
LOW_VOLUME_MESSAGE_THRESHOLD: int = 2
RESET_AVERAGE_THRESHOLD: float = 1.0
MIN_RESET_INTERVAL_SECONDS: float = 60.0
CONSECUTIVE_EMPTY_THRESHOLD: int = 2
MIN_DECAY_GAP_SECONDS: float = 2.0
DECAY_SNAP_THRESHOLD: float = 0.2

# SQS limits
SQS_MAX_WAIT_SECONDS: int = 20
SQS_DEFAULT_MAX_MESSAGES: int = 10

_FIELD_DEFAULTS: Dict[str, Any] = {
    "idle_wait_seconds": DEFAULT_IDLE_WAIT_SECONDS,
    "visibility_timeout_seconds": DEFAULT_VISIBILITY_TIMEOUT_SECONDS,
    "low_volume_wait_seconds": DEFAULT_LOW_VOLUME_WAIT_SECONDS,
    "medium_volume_wait_seconds": DEFAULT_MEDIUM_VOLUME_WAIT_SECONDS,
    "high_volume_wait_seconds": DEFAULT_HIGH_VOLUME_WAIT_SECONDS,
    "very_high_volume_wait_seconds": DEFAULT_VERY_HIGH_VOLUME_WAIT_SECONDS,
    "low_volume_threshold": DEFAULT_LOW_VOLUME_THRESHOLD,
    "medium_volume_threshold": DEFAULT_MEDIUM_VOLUME_THRESHOLD,
    "high_volume_threshold": DEFAULT_HIGH_VOLUME_THRESHOLD,
    "ewma_alpha": DEFAULT_EWMA_ALPHA,
    "drop_detection_threshold": DEFAULT_DROP_DETECTION_THRESHOLD,
    "decay_half_life_seconds": DEFAULT_DECAY_HALF_LIFE_SECONDS,
    "max_wait_seconds": SQS_MAX_WAIT_SECONDS,
}

_WAIT_FIELDS = (
    "idle_wait_seconds",
    "low_volume_wait_seconds",
    "medium_volume_wait_seconds",
    "high_volume_wait_seconds",
    "very_high_volume_wait_seconds",
)


class PollingConfig(BaseModel):
    """Configuration for the adaptive polling controller."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
    )

    idle_wait_seconds: int = DEFAULT_IDLE_WAIT_SECONDS
    visibility_timeout_seconds: int = DEFAULT_VISIBILITY_TIMEOUT_SECONDS
    low_volume_wait_seconds: int = DEFAULT_LOW_VOLUME_WAIT_SECONDS
    medium_volume_wait_seconds: int = DEFAULT_MEDIUM_VOLUME_WAIT_SECONDS
    high_volume_wait_seconds: int = DEFAULT_HIGH_VOLUME_WAIT_SECONDS
    very_high_volume_wait_seconds: int = DEFAULT_VERY_HIGH_VOLUME_WAIT_SECONDS

    low_volume_threshold: float = DEFAULT_LOW_VOLUME_THRESHOLD
    medium_volume_threshold: float = DEFAULT_MEDIUM_VOLUME_THRESHOLD
    high_volume_threshold: float = DEFAULT_HIGH_VOLUME_THRESHOLD

    ewma_alpha: float = DEFAULT_EWMA_ALPHA
    drop_detection_threshold: int = DEFAULT_DROP_DETECTION_THRESHOLD
    decay_half_life_seconds: float = DEFAULT_DECAY_HALF_LIFE_SECONDS

    enable_adaptive_polling: bool = True
    disabled_wait_seconds: int = 0
    max_wait_seconds: int = SQS_MAX_WAIT_SECONDS

    @field_validator(*_FIELD_DEFAULTS.keys(), mode="before")
    @classmethod
    def _zero_means_default(cls, value: Any, info) -> Any:
        """Substitute the documented default for unset (None or zero) values."""
        if value is None or value == 0:
            return _FIELD_DEFAULTS[info.field_name]
        return value

    @field_validator(
        *_WAIT_FIELDS,
        "visibility_timeout_seconds",
        "drop_detection_threshold",
        "max_wait_seconds",
    )
    @classmethod
    def _positive_int(cls, value: int) -> int:
        """Validate that wait times and cycle counts are strictly positive."""
        if value <= 0:
            raise ValueError("must be > 0")
        return value

    @field_validator(
        "low_volume_threshold",
        "medium_volume_threshold",
        "high_volume_threshold",
        "decay_half_life_seconds",
    )
    @classmethod
    def _positive_float(cls, value: float) -> float:
        """Validate that thresholds and the half life are strictly positive."""
        if value <= 0:
            raise ValueError("must be > 0")
        return value

    @field_validator("ewma_alpha")
    @classmethod
    def _alpha_in_unit_interval(cls, value: float) -> float:
        """Validate that `ewma_alpha` lies within (0, 1]."""
        if not (0.0 < value <= 1.0):
            raise ValueError("ewma_alpha must be in (0, 1]")
        return value

    @field_validator("max_wait_seconds")
    @classmethod
    def _within_sqs_limit(cls, value: int) -> int:
        """SQS rejects receive requests waiting longer than 20 seconds."""
        if value > SQS_MAX_WAIT_SECONDS:
            raise ValueError(f"max_wait_seconds must be <= {SQS_MAX_WAIT_SECONDS}")
        return value

    @field_validator("disabled_wait_seconds")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must be non-negative")
        return value

    @model_validator(mode="after")
    def _check_ordering(self) -> "PollingConfig":
        """Thresholds must increase strictly; wait times should not increase with volume."""
        if not (self.low_volume_threshold < self.medium_volume_threshold < self.high_volume_threshold):
            raise ValueError(
                "volume thresholds must satisfy low < medium < high "
                f"(got {self.low_volume_threshold}, {self.medium_volume_threshold}, "
                f"{self.high_volume_threshold})"
            )

        waits = [getattr(self, name) for name in _WAIT_FIELDS]
        if any(later > earlier for earlier, later in zip(waits, waits[1:])):
            logger.warning(
                "[PollingConfig] Wait times are not non-increasing with volume: %s", waits
            )
        return self

    def wait_times(self) -> Dict[str, int]:
        """Return the five tier wait times keyed by field name."""
        return {name: getattr(self, name) for name in _WAIT_FIELDS}


def load_polling_config(
    path: Path = Path("src/arrakis/core/adaptive_polling.toml"),
    section: str = "adaptive_polling",
) -> PollingConfig:
    """
    Load a `PollingConfig` from a TOML file.

    The values are read from the `[adaptive_polling]` table when present,
    otherwise from the top level of the document.

    Args:
        path (Path): Path to the TOML config file.
        section (str): Name of the table holding the polling options.

    Returns:
        PollingConfig: The validated configuration.

    Raises:
        FileNotFoundError: If `path` does not exist.
        pydantic.ValidationError: If the values are invalid.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing TOML config at {path}")

    document = toml.load(path)
    values = document.get(section, document)
    logger.info("Loaded polling configuration from %s", path)
    return PollingConfig(**values)


if __name__ == "__main__":
    raise NotImplementedError(
        "This module is not intended to be run directly.")
