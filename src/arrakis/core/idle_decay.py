# src/arrakis/core/idle_decay
import logging

from arrakis.core.config import (
    CONSECUTIVE_EMPTY_THRESHOLD,
    DECAY_SNAP_THRESHOLD,
    DEFAULT_DECAY_HALF_LIFE_SECONDS,
    MIN_DECAY_GAP_SECONDS,
)
from arrakis.core.volume_state import PollingState

logger = logging.getLogger(__name__)


def decay_factor(elapsed_seconds: float, half_life_seconds: float) -> float:
    """Fraction of the average left after `elapsed_seconds` of idleness."""
    return 0.5 ** (elapsed_seconds / half_life_seconds)


class IdleDecayManager:
    """
    Halves the smoothed average every half life while polls keep coming back empty.

    Decay is measured from the last non-empty observation, starts only after
    `empty_threshold` consecutive empty polls, and is skipped when less than
    `min_gap_seconds` has passed or the average is already 0.
    Residue below `snap_threshold` is cleared to 0.

    Attributes:
        half_life_seconds (float): Seconds for the average to halve.
        empty_threshold (int): Consecutive empty polls required before decaying.
        min_gap_seconds (float): Minimum idle time before decay applies.
        snap_threshold (float): Averages below this become exactly 0.
    """

    def __init__(
        self,
        half_life_seconds: float = DEFAULT_DECAY_HALF_LIFE_SECONDS,
        empty_threshold: int = CONSECUTIVE_EMPTY_THRESHOLD,
        min_gap_seconds: float = MIN_DECAY_GAP_SECONDS,
        snap_threshold: float = DECAY_SNAP_THRESHOLD,
    ) -> None:
        self.half_life_seconds = half_life_seconds
        self.empty_threshold = empty_threshold
        self.min_gap_seconds = min_gap_seconds
        self.snap_threshold = snap_threshold

    def record_empty(self, state: PollingState, now: float) -> bool:
        """
        Account for one empty poll and decay the average when due.

        Args:
            state (PollingState): State to mutate.
            now (float): Current clock reading.

        Returns:
            bool: True if decay was applied.
        """
        state.consecutive_empty_count += 1
        if state.consecutive_empty_count < self.empty_threshold:
            return False
        return self._decay(state, now)

    def _decay(self, state: PollingState, now: float) -> bool:
        if state.last_update_time is None or state.average == 0:
            return False

        elapsed = now - state.last_update_time
        if elapsed < self.min_gap_seconds:
            logger.debug("[IdleDecay] Skipping decay, only %.2fs idle", elapsed)
            return False

        previous = state.average
        state.average *= decay_factor(elapsed, self.half_life_seconds)
        if state.average < self.snap_threshold:
            state.average = 0.0

        logger.debug(
            "[IdleDecay] Average decayed from %.4f to %.4f after %.2fs idle",
            previous, state.average, elapsed,
        )
        return True
