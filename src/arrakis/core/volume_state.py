# src/arrakis/core/volume_state
from dataclasses import dataclass
from typing import Optional


@dataclass
class PollingState:
    """
    Mutable volume-tracking state owned by one adaptive polling controller.

    Every field is read and written under the controller's lock; the record
    itself carries no synchronisation.

    Attributes:
        average (float): Current EWMA of observed message counts, always >= 0.
        last_update_time (Optional[float]): Clock reading of the last non-empty
            observation; anchors idle decay timing.
        low_volume_cycle_count (int): Consecutive observations below the
            low-volume message threshold.
        consecutive_empty_count (int): Consecutive polls that returned no messages.
        last_reset_time (Optional[float]): Clock reading of the last drop-triggered reset.
        enabled (bool): Whether non-default wait times are recommended.
    """
    average: float = 0.0
    last_update_time: Optional[float] = None
    low_volume_cycle_count: int = 0
    consecutive_empty_count: int = 0
    last_reset_time: Optional[float] = None
    enabled: bool = True

    def clear(self) -> None:
        """Forget all volume history while keeping the enabled flag."""
        self.average = 0.0
        self.last_update_time = None
        self.low_volume_cycle_count = 0
        self.consecutive_empty_count = 0
        self.last_reset_time = None


@dataclass(frozen=True)
class PollingSnapshot:
    """Read-only copy of the controller state for diagnostics."""
    average: float
    volume_level: str
    wait_seconds: int
    low_volume_cycle_count: int
    consecutive_empty_count: int
    last_update_time: Optional[float]
    last_reset_time: Optional[float]
    enabled: bool
