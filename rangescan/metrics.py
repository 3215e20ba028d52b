"""
Read accounting for partition scans.
"""

import threading
from dataclasses import dataclass, replace


@dataclass
class ScanMetrics:
    """Counters for one scanner. Both only ever increase."""

    records_read: int = 0
    bytes_read: int = 0

    def inc_records_read(self, n: int = 1) -> None:
        self.records_read += n

    def inc_bytes_read(self, n: int) -> None:
        self.bytes_read += n


class MetricsAccumulator:
    """Accounting sink shared by the scanners of one read.

    Scanners flush their metrics once, when they close. ``add`` may be called
    from many worker threads at the same time.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._total = ScanMetrics()
        self._partitions = 0

    def add(self, metrics: ScanMetrics) -> None:
        with self._lock:
            self._total.inc_records_read(metrics.records_read)
            self._total.inc_bytes_read(metrics.bytes_read)
            self._partitions += 1

    @property
    def partitions(self) -> int:
        """Number of scanners that have flushed."""
        with self._lock:
            return self._partitions

    def snapshot(self) -> ScanMetrics:
        with self._lock:
            return replace(self._total)
