# src/arrakis/core/circular_trace.py
"""
In-memory ring buffer of polling decisions.

Each row records one poll: the wait time that was requested, the number of
messages returned and the controller state right after the observation.
Drop-in alternative to the disk-backed RollingPollTrace.
"""

from collections import deque
from typing import List, Optional, Sequence

import pandas as pd

TRACE_COLUMNS: List[str] = [
    "poll", "clock", "wait_seconds", "message_count", "average", "volume_level", "enabled",
]


class CircularPollTrace:
    """
    A fixed-length in-memory trace of poll decisions.

    Attributes:
        max_rows (int): Maximum number of rows to retain.
        columns (List[str]): Column headers for DataFrame export.
        buffer (deque): The rolling buffer.
    """

    def __init__(
        self,
        max_rows: int = 10000,
        columns: Optional[List[str]] = None
    ):
        self.max_rows = max_rows
        self.columns = columns if columns is not None else list(TRACE_COLUMNS)
        self.buffer = deque(maxlen=max_rows)

    def append(self, row: Sequence) -> None:
        """
        Append a single poll record.

        Args:
            row (Sequence): Values in `columns` order.

        Raises:
            ValueError: If the row width does not match the columns.
        """
        if len(row) != len(self.columns):
            raise ValueError(
                f"[CircularPollTrace] Row width {len(row)} != schema width {len(self.columns)}"
            )
        self.buffer.append(list(row))

    def flush(self) -> None:
        """No-op for in-memory; defined for interface compatibility."""
        pass

    def close(self) -> None:
        self.flush()

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(list(self.buffer), columns=self.columns)

    def __len__(self) -> int:
        return len(self.buffer)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()


def make_trace_row(poll: int, clock: float, wait_seconds: int, message_count: int, snapshot) -> list:
    """Build a trace row from a poll outcome and the controller snapshot taken after it."""
    return [
        poll,
        clock,
        wait_seconds,
        message_count,
        round(snapshot.average, 6),
        snapshot.volume_level,
        snapshot.enabled,
    ]
