"""
rangescan - parallel range reads of large remote tables.

A table of N rows is split into near-equal contiguous row ranges; every range
is read by an independent scanner that opens a bounded session on the remote
table, converts each row into a fixed-schema record and releases the session
exactly once.

Example usage:
    >>> from rangescan import ArrowTunnel, DatasetRef, TableReader, TunnelConfig
    >>> tunnel = ArrowTunnel(TunnelConfig("s3://warehouse", access_id="...", access_key="..."))
    >>> reader = TableReader(tunnel, DatasetRef("sales", "orders", "pt=20240101"))
    >>> table = reader.to_arrow()
"""

import importlib.metadata

__version__ = importlib.metadata.version("rangescan")

from .config import DatasetRef, PartitionSpec, ReadConfig, TunnelConfig
from .constants import NON_PARTITIONED
from .converters import ValueConverter, to_internal_value
from .errors import (
    CleanupWarning,
    ConversionError,
    InvalidArgument,
    RangeScanError,
    SessionError,
    TaskCancelled,
)
from .metrics import MetricsAccumulator, ScanMetrics
from .partitioner import RangeDescriptor, get_ranges, partition
from .reader import TableReader
from .record import MutableRow
from .scanner import PartitionScanner, ScanState, new_scanner
from .session import ArrowDownloadSession, ArrowTunnel, Session, TunnelService
from .task import TaskContext

__all__ = [
    "ArrowDownloadSession",
    "ArrowTunnel",
    "CleanupWarning",
    "ConversionError",
    "DatasetRef",
    "InvalidArgument",
    "MetricsAccumulator",
    "MutableRow",
    "NON_PARTITIONED",
    "PartitionScanner",
    "PartitionSpec",
    "RangeDescriptor",
    "RangeScanError",
    "ReadConfig",
    "ScanMetrics",
    "ScanState",
    "Session",
    "SessionError",
    "TableReader",
    "TaskCancelled",
    "TaskContext",
    "TunnelConfig",
    "TunnelService",
    "ValueConverter",
    "get_ranges",
    "new_scanner",
    "partition",
    "to_internal_value",
]
