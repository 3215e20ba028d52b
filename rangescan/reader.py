"""
Parallel table reader.

Plans the row ranges of a table once, then drives one ``PartitionScanner``
per range on a joblib worker and assembles the results in range order.
"""

import polars as pl
import pyarrow as pa
from loguru import logger

from .config import DatasetRef, ReadConfig
from .converters import ValueConverter, to_internal_value
from .helpers.misc import humanize_size, run_parallel
from .metrics import MetricsAccumulator, ScanMetrics
from .partitioner import RangeDescriptor, partition
from .scanner import PartitionScanner, new_scanner
from .session import TunnelService
from .task import TaskContext


class TableReader:
    """Reads a remote table in parallel row ranges.

    Args:
        tunnel (TunnelService): Remote table service.
        dataset (DatasetRef): Table (and partition) to read.
        schema (pa.Schema | None, optional): Record schema. Defaults to the
            remote schema, restricted to ``config.columns`` when given.
        config (ReadConfig | None, optional): Partitioning and parallelism.
        converter (ValueConverter, optional): Remote value converter.

    Example:
        >>> tunnel = ArrowTunnel(TunnelConfig("s3://warehouse"))
        >>> reader = TableReader(tunnel, DatasetRef("sales", "orders", "pt=20240101"))
        >>> df = reader.to_polars()
    """

    def __init__(
        self,
        tunnel: TunnelService,
        dataset: DatasetRef,
        schema: pa.Schema | None = None,
        config: ReadConfig | None = None,
        converter: ValueConverter = to_internal_value,
    ):
        self.tunnel = tunnel
        self.dataset = dataset
        self.config = config or ReadConfig()
        self.converter = converter
        self._schema = schema
        self._metrics = MetricsAccumulator()

    @property
    def schema(self) -> pa.Schema:
        """Record schema of the rows produced."""
        if self._schema is None:
            schema = self.tunnel.schema(self.dataset)
            if self.config.columns is not None:
                missing = [c for c in self.config.columns if c not in schema.names]
                if missing:
                    raise ValueError(f"Columns {missing} not found in {self.dataset}")
                schema = pa.schema([schema.field(c) for c in self.config.columns])
            self._schema = schema
        return self._schema

    @property
    def metrics(self) -> ScanMetrics:
        """Records and bytes read by all closed scanners of this reader."""
        return self._metrics.snapshot()

    def get_partitions(self) -> list[RangeDescriptor]:
        """Split the table into row ranges. An empty list means no data."""
        count = self.tunnel.record_count(self.dataset)
        logger.debug(f"Table {self.dataset} contains {count} rows")
        ranges = partition(count, self.config.num_partitions)
        logger.debug(
            f"Reading {self.dataset} in {len(ranges)} ranges "
            f"(requested {self.config.num_partitions})"
        )
        return ranges

    def new_scanner(
        self, descriptor: RangeDescriptor, context: TaskContext | None = None
    ) -> PartitionScanner:
        return new_scanner(
            self.tunnel,
            self.dataset,
            descriptor,
            self.schema,
            converter=self.converter,
            context=context,
            sink=self._metrics,
        )

    def read_partition(self, descriptor: RangeDescriptor) -> pa.Table:
        """Read one range into a table. Runs on a worker."""
        context = TaskContext(descriptor.index)
        try:
            scanner = self.new_scanner(descriptor, context=context)
            rows = [row.as_dict() for row in scanner]
        finally:
            context.mark_completed()
        return pa.Table.from_pylist(rows, schema=self.schema)

    def to_arrow(self) -> pa.Table:
        """Read the whole table, ranges concatenated in range order."""
        schema = self.schema
        ranges = self.get_partitions()
        if not ranges:
            return schema.empty_table()

        tables = run_parallel(
            self.read_partition,
            ranges,
            n_jobs=self.config.n_jobs,
            backend=self.config.backend,
            verbose=self.config.verbose,
        )
        metrics = self.metrics
        logger.info(
            f"Read {metrics.records_read} rows ({humanize_size(metrics.bytes_read)} MB) "
            f"from {self.dataset}"
        )
        return pa.concat_tables(tables)

    def to_polars(self) -> pl.DataFrame:
        return pl.from_arrow(self.to_arrow())

    def checkpoint(self) -> None:
        # Ranges are re-read from the remote table; there is no state to save.
        pass
