# src/arrakis/core/classifier
from enum import Enum

from arrakis.core.config import PollingConfig


class VolumeLevel(str, Enum):
    """Discrete traffic tiers, from no traffic to constant traffic."""

    IDLE = "idle"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"


def classify_volume(average: float, config: PollingConfig) -> VolumeLevel:
    """
    Map a smoothed average to its volume tier.

    Each threshold belongs to the higher tier, so an average exactly equal to
    `low_volume_threshold` is MEDIUM.

    Args:
        average (float): Current smoothed average (>= 0).
        config (PollingConfig): Supplies the tier thresholds.

    Returns:
        VolumeLevel: The matching tier.
    """
    if average == 0:
        return VolumeLevel.IDLE
    if average < config.low_volume_threshold:
        return VolumeLevel.LOW
    if average < config.medium_volume_threshold:
        return VolumeLevel.MEDIUM
    if average < config.high_volume_threshold:
        return VolumeLevel.HIGH
    return VolumeLevel.VERY_HIGH


def wait_for_level(level: VolumeLevel, config: PollingConfig) -> int:
    """Return the configured wait time in seconds for a volume tier."""
    return {
        VolumeLevel.IDLE: config.idle_wait_seconds,
        VolumeLevel.LOW: config.low_volume_wait_seconds,
        VolumeLevel.MEDIUM: config.medium_volume_wait_seconds,
        VolumeLevel.HIGH: config.high_volume_wait_seconds,
        VolumeLevel.VERY_HIGH: config.very_high_volume_wait_seconds,
    }[level]


def classify_wait_time(average: float, config: PollingConfig) -> int:
    """Pure mapping from smoothed average to long-poll wait time in seconds."""
    return wait_for_level(classify_volume(average, config), config)
