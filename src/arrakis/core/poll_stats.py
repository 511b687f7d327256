# src/arrakis/core/poll_stats
import logging
import threading

from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Optional

import numpy as np

logger = logging.getLogger(__name__)

HISTORY_SIZE = 1000


@dataclass
class PollingStats:
    """
    Running counters collected while polling with the adaptive controller.

    Totals are kept as aggregates so a long-running poller uses constant
    memory; only the last `history` waits and counts are retained.

    Attributes:
        history (int): Number of recent waits and message counts to retain.
        polls (int): Completed polls.
        empty_polls (int): Polls that returned no messages.
        total_messages (int): Messages returned over all polls.
        waits_issued (int): Wait times handed out.
        wait_sum (float): Sum of the wait times handed out.
        wait_sq_sum (float): Sum of squared wait times, for the deviation.
        wait_counts (Counter): Number of polls issued per wait time.
        resets (int): Drop-detection resets.
        last_reset_index (Optional[int]): Zero-based poll index of the latest reset.
        decays (int): Idle decay steps applied.
        handler_errors (int): Messages whose handler raised.
        transport_errors (int): Receive or delete calls that failed at the transport level.
        wait_times (Deque[int]): Most recent wait times.
        message_counts (Deque[int]): Most recent message counts.
    """
    history: int = HISTORY_SIZE
    polls: int = 0
    empty_polls: int = 0
    total_messages: int = 0
    waits_issued: int = 0
    wait_sum: float = 0.0
    wait_sq_sum: float = 0.0
    wait_counts: Counter = field(default_factory=Counter)
    resets: int = 0
    last_reset_index: Optional[int] = None
    decays: int = 0
    handler_errors: int = 0
    transport_errors: int = 0

    wait_times: Deque[int] = field(init=False)
    message_counts: Deque[int] = field(init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.wait_times = deque(maxlen=self.history)
        self.message_counts = deque(maxlen=self.history)

    def log_wait(self, wait_seconds: int) -> None:
        with self._lock:
            self.waits_issued += 1
            self.wait_sum += wait_seconds
            self.wait_sq_sum += wait_seconds * wait_seconds
            self.wait_counts[wait_seconds] += 1
            self.wait_times.append(wait_seconds)

    def log_observation(self, message_count: int) -> None:
        with self._lock:
            self.polls += 1
            self.total_messages += message_count
            if message_count == 0:
                self.empty_polls += 1
            self.message_counts.append(message_count)

    def log_reset(self) -> None:
        # called before the triggering observation is logged
        with self._lock:
            self.resets += 1
            self.last_reset_index = self.polls

    def log_decay(self) -> None:
        with self._lock:
            self.decays += 1

    def log_handler_error(self) -> None:
        with self._lock:
            self.handler_errors += 1

    def log_transport_error(self) -> None:
        with self._lock:
            self.transport_errors += 1

    def wait_distribution(self) -> Dict[int, float]:
        """Share of polls issued with each wait time."""
        with self._lock:
            if not self.waits_issued:
                return {}
            return {wait: self.wait_counts[wait] / self.waits_issued for wait in sorted(self.wait_counts)}

    def summary(self) -> Dict[str, float]:
        """
        Aggregate the collected counters.

        Returns:
            Dict[str, float]: polls, empty polls, messages, resets, decays,
            mean/std wait time and mean messages per poll.
        """
        with self._lock:
            n_waits = self.waits_issued
            mean_wait = self.wait_sum / n_waits if n_waits else 0.0
            variance = self.wait_sq_sum / n_waits - mean_wait ** 2 if n_waits else 0.0
            return {
                "polls": float(self.polls),
                "empty_polls": float(self.empty_polls),
                "messages": float(self.total_messages),
                "resets": float(self.resets),
                "decays": float(self.decays),
                "mean_wait_seconds": float(mean_wait),
                # clip float rounding below zero
                "std_wait_seconds": float(np.sqrt(np.maximum(variance, 0.0))),
                "mean_messages_per_poll": self.total_messages / self.polls if self.polls else 0.0,
            }

    def recent_summary(self) -> Dict[str, float]:
        """Mean wait and mean message count over the retained history."""
        with self._lock:
            waits = np.asarray(self.wait_times, dtype=float)
            counts = np.asarray(self.message_counts, dtype=float)
        return {
            "recent_mean_wait_seconds": float(np.mean(waits)) if waits.size else 0.0,
            "recent_mean_messages_per_poll": float(np.mean(counts)) if counts.size else 0.0,
        }

    def summarize(self) -> None:
        if not self.polls:
            logger.warning("No polling statistics available.")
            return

        stats = self.summary()
        logger.info(f"[==POLLING STATS==] Polls: {int(stats['polls'])} (empty: {int(stats['empty_polls'])})")
        logger.info(f"[==POLLING STATS==] Messages: {int(stats['messages'])}")
        logger.info(f"[==POLLING STATS==] Avg messages/poll: {stats['mean_messages_per_poll']:.4f}")
        logger.info(f"[==POLLING STATS==] Avg wait: {stats['mean_wait_seconds']:.4f}s")
        logger.info(f"[==POLLING STATS==] Std wait: {stats['std_wait_seconds']:.4f}s")
        logger.info(f"[==POLLING STATS==] Drop resets: {int(stats['resets'])}, idle decays: {int(stats['decays'])}")
