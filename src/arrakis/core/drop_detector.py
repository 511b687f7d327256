# src/arrakis/core/drop_detector
"""
Drop Detector

Tracks sustained low-volume traffic and force-resets the smoothed average so
the controller adapts immediately after a real drop instead of waiting for the
EWMA to bleed off on its own.

A reset requires all of:
- at least `drop_detection_threshold` consecutive polls with fewer than
  `LOW_VOLUME_MESSAGE_THRESHOLD` messages,
- an average below `RESET_AVERAGE_THRESHOLD`,
- more than `MIN_RESET_INTERVAL_SECONDS` since the previous reset.
"""
import logging

from arrakis.core.config import (
    LOW_VOLUME_MESSAGE_THRESHOLD,
    MIN_RESET_INTERVAL_SECONDS,
    RESET_AVERAGE_THRESHOLD,
)
from arrakis.core.volume_state import PollingState

logger = logging.getLogger(__name__)


class DropDetector:
    """
    Resets the EWMA after a sustained run of low-volume polls.

    Attributes:
        drop_detection_threshold (int): Consecutive low-volume cycles required.
        reset_average_threshold (float): Average must be below this to reset.
        min_reset_interval (float): Seconds that must separate two resets.
    """

    def __init__(
        self,
        drop_detection_threshold: int,
        reset_average_threshold: float = RESET_AVERAGE_THRESHOLD,
        min_reset_interval: float = MIN_RESET_INTERVAL_SECONDS,
    ) -> None:
        self.drop_detection_threshold = drop_detection_threshold
        self.reset_average_threshold = reset_average_threshold
        self.min_reset_interval = min_reset_interval

    def record(self, state: PollingState, observed_count: int, now: float) -> bool:
        """
        Account for one non-empty observation and reset the average if eligible.

        Must be called after the average has been updated with `observed_count`.

        Args:
            state (PollingState): State to inspect and mutate.
            observed_count (int): Raw message count of the poll.
            now (float): Current clock reading.

        Returns:
            bool: True if the average was reset.
        """
        if observed_count >= LOW_VOLUME_MESSAGE_THRESHOLD:
            state.low_volume_cycle_count = 0
            return False

        state.low_volume_cycle_count += 1
        if not self.should_reset(state, now):
            return False

        logger.info(
            "[DropDetector] Resetting average %.4f after %d low-volume cycles",
            state.average, state.low_volume_cycle_count,
        )
        state.average = 0.0
        state.low_volume_cycle_count = 0
        state.last_reset_time = now
        return True

    def should_reset(self, state: PollingState, now: float) -> bool:
        enough_cycles = state.low_volume_cycle_count >= self.drop_detection_threshold
        average_low = state.average < self.reset_average_threshold
        interval_passed = (
            state.last_reset_time is None
            or now - state.last_reset_time > self.min_reset_interval
        )
        return enough_cycles and average_low and interval_passed
