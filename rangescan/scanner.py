"""
Partition scanner.

A ``PartitionScanner`` reads one row range of a table:

    CREATED --first pull--> OPENING --> SCANNING --end of data--> EXHAUSTED
        |                                  |                          |
        +----------------- close() / task completion -----------------+--> CLOSED

The session is opened on the first pull and released exactly once, when the
range is exhausted, when a pull fails, when ``close()`` is called, or when
the owning task completes or is cancelled. Scanners never retry; re-running
a failed range is up to the caller.
"""

import threading
import warnings
from enum import Enum

import pyarrow as pa
from loguru import logger

from .config import DatasetRef
from .converters import ConversionFailure, ValueConverter, fill_row, to_internal_value
from .errors import CleanupWarning, ConversionError, RangeScanError, SessionError, TaskCancelled
from .metrics import MetricsAccumulator, ScanMetrics
from .partitioner import RangeDescriptor
from .record import MutableRow
from .session import Session, TunnelService
from .task import TaskContext


class ScanState(Enum):
    """Lifecycle of a scanner: CREATED, OPENING, SCANNING, EXHAUSTED, then CLOSED."""

    CREATED = "created"
    OPENING = "opening"
    SCANNING = "scanning"
    EXHAUSTED = "exhausted"
    CLOSED = "closed"


class PartitionScanner:
    """Pull-based reader of the rows of one ``RangeDescriptor``.

    Each pull returns the same :class:`MutableRow`, overwritten with the next
    record; its contents are only valid until the following pull.

    Args:
        tunnel (TunnelService): Service that opens the bounded session.
        dataset (DatasetRef): Table (and partition) to read.
        descriptor (RangeDescriptor): Rows to read. ``count`` must be positive.
        schema (pa.Schema): Record schema. Fields are matched to remote
            columns by name.
        converter (ValueConverter, optional): Remote value converter.
            Defaults to ``to_internal_value``.
        context (TaskContext | None, optional): Task whose completion closes
            the scanner and whose cancellation interrupts it.
        sink (MetricsAccumulator | None, optional): Receives the metrics when
            the scanner closes.
    """

    def __init__(
        self,
        tunnel: TunnelService,
        dataset: DatasetRef,
        descriptor: RangeDescriptor,
        schema: pa.Schema,
        converter: ValueConverter = to_internal_value,
        context: TaskContext | None = None,
        sink: MetricsAccumulator | None = None,
    ):
        if descriptor.count <= 0:
            raise ValueError(f"Range {descriptor.index} is empty; empty ranges must not be scanned")

        self.tunnel = tunnel
        self.dataset = dataset
        self.descriptor = descriptor
        self.schema = schema
        self.converter = converter
        self.context = context
        self.sink = sink

        self._state = ScanState.CREATED
        self._lock = threading.Lock()
        self._session: Session | None = None
        self._type_infos: dict[str, pa.DataType] = {}
        self._row: MutableRow | None = None
        self._metrics = ScanMetrics()

        if context is not None:
            context.add_completion_listener(lambda _: self.close())

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def metrics(self) -> ScanMetrics:
        """Copy of the current counters."""
        return ScanMetrics(self._metrics.records_read, self._metrics.bytes_read)

    def _open(self) -> None:
        with self._lock:
            if self._state is not ScanState.CREATED:
                return
            self._state = ScanState.OPENING
        try:
            session = self.tunnel.open_bounded_session(
                self.dataset, self.descriptor.start, self.descriptor.count
            )
        except Exception as e:
            with self._lock:
                self._state = ScanState.CLOSED
            self._flush()
            if isinstance(e, SessionError):
                raise
            raise SessionError(
                f"Failed to open session on {self.dataset} for range {self.descriptor.index}: {e}"
            ) from e

        with self._lock:
            if self._state is ScanState.OPENING:
                self._session = session
                self._type_infos = dict(zip(session.schema.names, session.schema.types))
                self._row = MutableRow(self.schema)
                self._state = ScanState.SCANNING
                return
        # closed while opening; close() left the flush to us
        self._release(session)
        self._flush()

    def _release(self, session: Session) -> None:
        try:
            self._metrics.inc_bytes_read(session.total_bytes_read())
            session.close()
        except Exception as e:
            logger.warning(f"Exception closing session of range {self.descriptor.index}: {e}")
            warnings.warn(
                f"Failed to close session of range {self.descriptor.index}: {e}",
                CleanupWarning,
                stacklevel=3,
            )

    def _flush(self) -> None:
        if self.sink is not None:
            self.sink.add(self._metrics)

    def _is_scanning(self) -> bool:
        with self._lock:
            return self._state is ScanState.SCANNING

    def _interrupted(self) -> None:
        """Outcome of a pull that lost the race against ``close()``."""
        if self.context is not None and self.context.is_cancelled:
            raise TaskCancelled(f"Task reading range {self.descriptor.index} was cancelled")
        return None

    def _read(self) -> dict | None:
        with self._lock:
            session = self._session
        if session is None:
            return None
        try:
            return session.read_row()
        except EOFError:
            return None
        except Exception as e:
            if not self._is_scanning():
                # the session was released under the read
                return None
            self.close()
            if isinstance(e, RangeScanError):
                raise
            raise SessionError(
                f"Failed to read range {self.descriptor.index} of {self.dataset}: {e}"
            ) from e

    def _fail_conversion(self, failure: ConversionFailure) -> ConversionError:
        logger.error(
            f"Can not convert column value of {self.dataset}, idx: {failure.field_index}, "
            f"name: {failure.field_name}, type: {failure.target_type}, value: {failure.value!r}"
        )
        self.close()
        return ConversionError(
            failure.field_index, failure.field_name, failure.target_type, failure.value
        )

    def pull(self) -> MutableRow | None:
        """Read the next record.

        A ``close()`` from another thread takes effect even while a pull is
        blocked on the session: that pull then produces no record.

        Returns:
            MutableRow | None: The reused row buffer, or ``None`` once the
                range is exhausted or the scanner is closed.

        Raises:
            TaskCancelled: If the owning task was cancelled.
            SessionError: If the session can not be opened or read.
            ConversionError: If a field of the row can not be converted.
        """
        if self.context is not None and self.context.is_cancelled:
            self.close()
            return self._interrupted()

        if self._state is ScanState.CREATED:
            self._open()
        if self._state is not ScanState.SCANNING:
            return self._interrupted()

        raw = self._read()
        if raw is None:
            with self._lock:
                exhausted = self._state is ScanState.SCANNING
                if exhausted:
                    self._state = ScanState.EXHAUSTED
            if not exhausted:
                return self._interrupted()
            self.close()
            return None

        failure = fill_row(self._row, raw, self._type_infos, self.converter)
        if failure is not None:
            if not self._is_scanning():
                return self._interrupted()
            raise self._fail_conversion(failure) from failure.cause

        with self._lock:
            if self._state is ScanState.SCANNING:
                self._metrics.inc_records_read()
                return self._row
        return self._interrupted()

    def close(self) -> None:
        """Release the session and flush metrics. Safe to call repeatedly."""
        with self._lock:
            if self._state is ScanState.CLOSED:
                return
            opening = self._state is ScanState.OPENING
            self._state = ScanState.CLOSED
            session, self._session = self._session, None

        if session is not None:
            self._release(session)

        # a pending open releases its session and flushes itself
        if not opening:
            self._flush()

    def __iter__(self):
        return self

    def __next__(self) -> MutableRow:
        row = self.pull()
        if row is None:
            raise StopIteration
        return row

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        return (
            f"PartitionScanner(dataset={self.dataset}, index={self.descriptor.index}, "
            f"start={self.descriptor.start}, count={self.descriptor.count}, "
            f"state={self._state.value})"
        )


def new_scanner(
    tunnel: TunnelService,
    dataset: DatasetRef,
    descriptor: RangeDescriptor,
    schema: pa.Schema,
    converter: ValueConverter = to_internal_value,
    context: TaskContext | None = None,
    sink: MetricsAccumulator | None = None,
) -> PartitionScanner:
    """Create a scanner for one range. No remote call is made until the first pull."""
    return PartitionScanner(tunnel, dataset, descriptor, schema, converter, context, sink)
