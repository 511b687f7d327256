# src/arrakis/core/rolling_trace
"""
Rolling on-disk trace of polling decisions.

`RollingPollTrace` appends one row per poll to a gzip-compressed CSV file,
buffering rows in memory and writing them in batches. When the file grows more
than `FLUSH_THRESHOLD` rows past `max_rows` it is rewritten to keep only the
most recent `max_rows` rows, so a long-running poller leaves a bounded history
that can be loaded back with pandas.

Typical usage:
    with RollingPollTrace("poll_trace.csv.gz", max_rows=10000) as trace:
        trace.append([...])
"""
import gzip
import logging
import os
import shutil
import time

from typing import List, Optional, Sequence

import pandas as pd

from arrakis.core.circular_trace import TRACE_COLUMNS

logger = logging.getLogger(__name__)

FLUSH_THRESHOLD = 50


class RollingPollTrace:
    """
    Buffered writer of poll records to a compressed CSV with a bounded row count.

    Attributes:
        path (str): Path to the gzip-compressed CSV file.
        max_rows (int): Data rows kept after truncation; the file may hold up to
            `FLUSH_THRESHOLD` more between truncations.
        buffer (list): Rows waiting to be written.
        count (int): Data rows currently in the file plus the buffer.
        columns (List[str]): Column headers.
    """

    def __init__(
        self,
        path: Optional[str] = "poll_trace.csv.gz",
        max_rows: int = 10000,
        columns: Optional[List[str]] = None
    ) -> None:
        self.path = str(path) if path else "poll_trace.csv.gz"
        self.max_rows = max_rows
        self.buffer: List[list] = []
        self.count = 0
        self.columns = columns if columns is not None else list(TRACE_COLUMNS)

        if os.path.exists(self.path):
            t0 = time.perf_counter()
            with gzip.open(self.path, "rt") as f:
                # header line is not a data row
                self.count = max(sum(1 for _ in f) - 1, 0)
            logger.info("Opened existing poll trace: %d rows counted in %.4fs", self.count, time.perf_counter() - t0)
        else:
            logger.info("Starting new poll trace at %s", self.path)

    def append(self, row: Sequence) -> None:
        """
        Buffer one poll record, flushing and truncating as thresholds are reached.

        Args:
            row (Sequence): Values in `columns` order.
        """
        if len(row) != len(self.columns):
            raise ValueError(
                f"[RollingPollTrace] Row width {len(row)} != schema width {len(self.columns)}"
            )
        self.buffer.append(list(row))
        self.count += 1
        if len(self.buffer) >= FLUSH_THRESHOLD:
            self.flush()

        # truncate in batches of FLUSH_THRESHOLD rows
        if self.count > self.max_rows + FLUSH_THRESHOLD:
            self.flush()
            self._truncate_to_last_n(self.max_rows)

    def flush(self) -> None:
        """Write buffered rows to the file and clear the buffer."""
        if not self.buffer:
            return
        t0 = time.perf_counter()

        write_header = not os.path.exists(self.path) or os.path.getsize(self.path) == 0
        df = pd.DataFrame(self.buffer, columns=self.columns)
        with gzip.open(self.path, "at") as f:
            df.to_csv(f, header=write_header, index=False)

        logger.debug("Flushed %d poll records in %.4fs", len(self.buffer), time.perf_counter() - t0)
        self.buffer = []

    def _truncate_to_last_n(self, n: int) -> None:
        t0 = time.perf_counter()
        df = pd.read_csv(self.path, compression="gzip").tail(n)
        tmp = self.path + ".tmp"
        df.to_csv(tmp, index=False, compression="gzip")
        shutil.move(tmp, self.path)
        self.count = len(df)
        logger.debug("Truncated poll trace to last %d rows in %.4fs", n, time.perf_counter() - t0)

    def to_dataframe(self) -> pd.DataFrame:
        """Flush and load the retained records."""
        self.flush()
        if not os.path.exists(self.path):
            return pd.DataFrame(columns=self.columns)
        return pd.read_csv(self.path, compression="gzip")

    def close(self) -> None:
        logger.debug("Closing poll trace and flushing remaining %d buffered rows", len(self.buffer))
        self.flush()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
