"""
Remote table sessions.

A tunnel service hands out bounded read sessions: a session is scoped to the
rows ``[start, start + count)`` of one table (or one partition of it) and
returns them one at a time. :class:`ArrowTunnel` serves tables stored as
pyarrow datasets on any fsspec filesystem:

    <endpoint>/<project>/<table>/                 non-partitioned table
    <endpoint>/<project>/<table>/pt=1/region=hz/  one partition

Row offsets follow the files of the table directory sorted by path.
"""

import posixpath
from typing import Any, Iterator, Protocol

import pyarrow as pa
import pyarrow.dataset as pds
from fsspec import AbstractFileSystem
from fsspec import filesystem as fsspec_filesystem
from loguru import logger

from .config import DatasetRef, TunnelConfig
from .errors import SessionError
from .helpers.security import strip_protocol


class Session(Protocol):
    """A read session bounded to a row range of one table."""

    schema: pa.Schema

    def read_row(self) -> dict[str, Any] | None:
        """Next row as a ``{column: value}`` mapping, ``None`` at end of data.

        Implementations may instead raise ``EOFError`` at the true end of input.
        """
        ...

    def total_bytes_read(self) -> int: ...

    def close(self) -> None: ...


class TunnelService(Protocol):
    """Remote service that sizes tables and opens bounded sessions on them."""

    def open_bounded_session(self, dataset: DatasetRef, start: int, count: int) -> Session: ...

    def record_count(self, dataset: DatasetRef) -> int: ...

    def schema(self, dataset: DatasetRef) -> pa.Schema: ...


class ArrowDownloadSession:
    """Streams the rows ``[start, start + count)`` of a pyarrow dataset.

    Files wholly before ``start`` are skipped using their row counts; bytes
    read are the in-memory size of every record batch materialised.
    """

    def __init__(
        self,
        dataset: pds.Dataset,
        start: int,
        count: int,
        batch_size: int,
    ):
        self._dataset = dataset
        self.schema = dataset.schema
        self.start = start
        self.count = count
        self.batch_size = batch_size
        self._bytes_read = 0
        self._closed = False
        self._rows = self._iter_rows()

    def _iter_rows(self) -> Iterator[dict[str, Any]]:
        stop = self.start + self.count
        offset = 0
        for fragment in sorted(self._dataset.get_fragments(), key=lambda f: f.path):
            num_rows = fragment.count_rows()
            if offset + num_rows <= self.start:
                offset += num_rows
                continue

            for batch in fragment.to_batches(schema=self.schema, batch_size=self.batch_size):
                self._bytes_read += batch.nbytes
                lo = max(self.start - offset, 0)
                hi = min(stop - offset, batch.num_rows)
                if hi > lo:
                    yield from batch.slice(lo, hi - lo).to_pylist()
                offset += batch.num_rows
                if offset >= stop:
                    return

    def read_row(self) -> dict[str, Any] | None:
        if self._closed:
            raise SessionError("Session is closed")
        return next(self._rows, None)

    def total_bytes_read(self) -> int:
        return self._bytes_read

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._rows.close()


class ArrowTunnel:
    """Tunnel service over tables stored as pyarrow datasets.

    Args:
        config (TunnelConfig): Endpoint, credentials and batch size.
        filesystem (AbstractFileSystem | None, optional): Filesystem to use.
            Defaults to ``fsspec.filesystem(config.protocol, **credentials)``.
        format (str, optional): Dataset file format. Defaults to "parquet".
    """

    def __init__(
        self,
        config: TunnelConfig,
        filesystem: AbstractFileSystem | None = None,
        format: str = "parquet",
    ):
        self.config = config
        self.format = format
        self.root = strip_protocol(config.endpoint)
        logger.debug(f"Connecting tunnel with {config.redacted()}")
        if filesystem is None:
            filesystem = fsspec_filesystem(config.protocol, **config.filesystem_options())
        self.filesystem = filesystem

    def table_path(self, dataset: DatasetRef) -> str:
        path = posixpath.join(self.root, dataset.project, dataset.table)
        if dataset.partition is not None:
            path = posixpath.join(path, dataset.partition.path)
        return path

    def dataset(self, dataset: DatasetRef) -> pds.Dataset:
        """Open the pyarrow dataset behind ``dataset``.

        Raises:
            SessionError: If the table or partition does not exist or can not be read.
        """
        path = self.table_path(dataset)
        if not self.filesystem.exists(path):
            raise SessionError(f"Table {dataset} not found at {path}")
        try:
            return pds.dataset(path, format=self.format, filesystem=self.filesystem)
        except Exception as e:
            raise SessionError(f"Failed to open table {dataset}: {e}") from e

    def record_count(self, dataset: DatasetRef) -> int:
        return sum(f.count_rows() for f in self.dataset(dataset).get_fragments())

    def schema(self, dataset: DatasetRef) -> pa.Schema:
        return self.dataset(dataset).schema

    def open_bounded_session(self, dataset: DatasetRef, start: int, count: int) -> ArrowDownloadSession:
        logger.debug(f"Opening session on {dataset} for rows {start}-{start + count - 1}")
        return ArrowDownloadSession(
            self.dataset(dataset), start, count, batch_size=self.config.batch_size
        )
