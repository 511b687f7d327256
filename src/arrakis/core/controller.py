# src/arrakis/core/controller

"""
Adaptive Polling Controller

This module defines an AdaptivePollingController class that picks the
long-poll wait time for a message queue from the recently observed message
volume. It keeps an exponentially weighted moving average (EWMA) of message
counts with spike protection, resets the average after a sustained drop in
traffic, and decays it while polls keep coming back empty.

Typical usage:
    >>> controller = AdaptivePollingController()
    >>> while running:
    >>>     wait = controller.next_wait_time()
    >>>     messages = queue.receive(wait_seconds=wait)
    >>>     controller.observe(len(messages))

A single instance may be shared by several poller threads; every state
transition runs under one lock.
"""

import logging
import threading
import time

from numbers import Integral
from typing import Callable, Optional

from arrakis.core.classifier import VolumeLevel, classify_volume, wait_for_level
from arrakis.core.config import PollingConfig
from arrakis.core.drop_detector import DropDetector
from arrakis.core.ewma import update_average
from arrakis.core.idle_decay import IdleDecayManager
from arrakis.core.poll_stats import PollingStats
from arrakis.core.volume_state import PollingSnapshot, PollingState

logger = logging.getLogger(__name__)


class AdaptivePollingController:
    """
    Controller that adapts the queue long-poll wait time to message volume.

    Attributes:
        config (PollingConfig): Validated wait times, thresholds and EWMA parameters.
        stats (PollingStats): Counters of waits, observations, resets and decays.
    """

    def __init__(
        self,
        config: Optional[PollingConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        stats: Optional[PollingStats] = None,
    ) -> None:
        self.config: PollingConfig = config if config is not None else PollingConfig()
        self.stats: PollingStats = stats if stats is not None else PollingStats()
        self._clock = clock
        self._lock = threading.Lock()

        self._state = PollingState(enabled=self.config.enable_adaptive_polling)
        self._drop_detector = DropDetector(self.config.drop_detection_threshold)
        self._idle_decay = IdleDecayManager(half_life_seconds=self.config.decay_half_life_seconds)
        self._level: VolumeLevel = VolumeLevel.IDLE

        logger.info(
            "Initializing Adaptive Polling Controller (alpha=%.2f, drop threshold=%d, enabled=%s)",
            self.config.ewma_alpha, self.config.drop_detection_threshold, self._state.enabled,
        )

    def enable(self) -> None:
        """Recommend adaptive wait times. Volume history is kept as is."""
        with self._lock:
            self._state.enabled = True

    def disable(self) -> None:
        """Fall back to `config.disabled_wait_seconds`. Volume history is kept as is."""
        with self._lock:
            self._state.enabled = False

    def is_enabled(self) -> bool:
        with self._lock:
            return self._state.enabled

    def next_wait_time(self) -> int:
        """
        Get the wait time to pass as the long-poll parameter of the next receive call.

        Returns:
            int: Seconds to wait; the fixed disabled wait when adaptive polling is off.
        """
        with self._lock:
            if self._state.enabled:
                wait = wait_for_level(classify_volume(self._state.average, self.config), self.config)
            else:
                wait = self.config.disabled_wait_seconds
        self.stats.log_wait(wait)
        return wait

    def observe(self, message_count: int) -> None:
        """
        Update the volume state with the result of one completed poll.

        Empty polls feed the idle decay; non-empty polls feed the EWMA and then
        the drop detector. Negative counts are treated as an empty poll.

        Args:
            message_count (int): Number of messages the poll returned.

        Raises:
            TypeError: If `message_count` is not an integer.
        """
        if isinstance(message_count, bool) or not isinstance(message_count, Integral):
            raise TypeError(f"message_count must be an int, got {type(message_count).__name__}")
        if message_count < 0:
            logger.warning("[AdaptivePolling] Negative message count %d treated as 0", message_count)
            message_count = 0
        message_count = int(message_count)

        with self._lock:
            now = self._clock()
            state = self._state

            if message_count == 0:
                if self._idle_decay.record_empty(state, now):
                    self.stats.log_decay()
            else:
                state.consecutive_empty_count = 0
                state.last_update_time = now
                state.average = update_average(state.average, message_count, self.config.ewma_alpha)
                if self._drop_detector.record(state, message_count, now):
                    self.stats.log_reset()

            self.stats.log_observation(message_count)
            self._track_level()

            logger.debug(
                "[AdaptivePolling] observed=%d average=%.4f low_cycles=%d empty=%d",
                message_count, state.average, state.low_volume_cycle_count,
                state.consecutive_empty_count,
            )

    def _track_level(self) -> None:
        level = classify_volume(self._state.average, self.config)
        if level != self._level:
            logger.info(
                "[AdaptivePolling] Volume level changed from %s to %s (average: %.4f)",
                self._level.value, level.value, self._state.average,
            )
            self._level = level

    @property
    def average(self) -> float:
        with self._lock:
            return self._state.average

    def snapshot(self) -> PollingSnapshot:
        """
        Get a consistent copy of the current state.

        Returns:
            PollingSnapshot: Average, counters, timestamps, mode, current tier and
            the wait time `next_wait_time()` would return.
        """
        with self._lock:
            state = self._state
            level = classify_volume(state.average, self.config)
            return PollingSnapshot(
                average=state.average,
                volume_level=level.value,
                wait_seconds=wait_for_level(level, self.config) if state.enabled else self.config.disabled_wait_seconds,
                low_volume_cycle_count=state.low_volume_cycle_count,
                consecutive_empty_count=state.consecutive_empty_count,
                last_update_time=state.last_update_time,
                last_reset_time=state.last_reset_time,
                enabled=state.enabled,
            )

    def reset(self) -> None:
        """
        Reset the average, counters and timestamps to their initial values, keeping the mode.
        """
        with self._lock:
            self._state.clear()
            self._level = VolumeLevel.IDLE
        logger.info("[AdaptivePolling] State reset")


if __name__ == "__main__":
    raise NotImplementedError(
        "This module is not intended to be run directly. "
    )
