import threading

import pyarrow as pa
import pyarrow.parquet as pq
import pytest

from rangescan import ArrowTunnel, DatasetRef, TunnelConfig


class FakeSession:
    """In-memory session that records how it is used."""

    def __init__(
        self,
        rows,
        schema,
        bytes_per_row=10,
        header_bytes=0,
        fail_read_at=None,
        fail_close=False,
        eof_error=False,
        block_read_at=None,
    ):
        self.rows = list(rows)
        self.schema = schema
        self.bytes_per_row = bytes_per_row
        self.header_bytes = header_bytes
        self.fail_read_at = fail_read_at
        self.fail_close = fail_close
        self.eof_error = eof_error
        self.block_read_at = block_read_at
        self.reading = threading.Event()
        self.release = threading.Event()
        self.reads = 0
        self.close_calls = 0
        self.bytes_calls = 0

    def read_row(self):
        if self.block_read_at is not None and self.reads == self.block_read_at:
            self.reading.set()
            self.release.wait(5)
        if self.fail_read_at is not None and self.reads == self.fail_read_at:
            self.reads += 1
            raise ConnectionError("connection reset")
        self.reads += 1
        if self.reads > len(self.rows):
            if self.eof_error:
                raise EOFError("past end of stream")
            return None
        return self.rows[self.reads - 1]

    def total_bytes_read(self):
        self.bytes_calls += 1
        return self.header_bytes + self.bytes_per_row * min(self.reads, len(self.rows))

    def close(self):
        self.close_calls += 1
        if self.fail_close:
            raise OSError("close failed")


class FakeTunnel:
    def __init__(self, rows, schema, fail_open=False, block_open=False, **session_kwargs):
        self.rows = list(rows)
        self.remote_schema = schema
        self.fail_open = fail_open
        self.block_open = block_open
        self.opening = threading.Event()
        self.release = threading.Event()
        self.session_kwargs = session_kwargs
        self.sessions = []
        self.open_calls = []

    def open_bounded_session(self, dataset, start, count):
        self.open_calls.append((dataset, start, count))
        if self.block_open:
            self.opening.set()
            self.release.wait(5)
        if self.fail_open:
            raise ConnectionError("tunnel unavailable")
        session = FakeSession(self.rows[start : start + count], self.remote_schema, **self.session_kwargs)
        self.sessions.append(session)
        return session

    def record_count(self, dataset):
        return len(self.rows)

    def schema(self, dataset):
        return self.remote_schema


@pytest.fixture
def remote_schema():
    return pa.schema([("id", pa.int64()), ("name", pa.string()), ("score", pa.float64())])


@pytest.fixture
def remote_rows():
    return [{"id": i, "name": f"row{i}", "score": i / 2} for i in range(10)]


@pytest.fixture
def dataset_ref():
    return DatasetRef("sales", "orders")


@pytest.fixture
def make_tunnel(remote_rows, remote_schema):
    def _make(rows=None, **kwargs):
        return FakeTunnel(remote_rows if rows is None else rows, remote_schema, **kwargs)

    return _make


@pytest.fixture
def warehouse(tmp_path):
    """Local warehouse with a two-file table and a partitioned table."""
    orders = tmp_path / "sales" / "orders"
    orders.mkdir(parents=True)
    pq.write_table(
        pa.table({"id": pa.array(list(range(0, 6)), pa.int64()), "name": [f"row{i}" for i in range(0, 6)]}),
        orders / "part-0.parquet",
    )
    pq.write_table(
        pa.table({"id": pa.array(list(range(6, 10)), pa.int64()), "name": [f"row{i}" for i in range(6, 10)]}),
        orders / "part-1.parquet",
    )

    for pt, ids in (("20240101", range(0, 3)), ("20240102", range(100, 105))):
        part = tmp_path / "sales" / "events" / f"pt={pt}"
        part.mkdir(parents=True)
        pq.write_table(pa.table({"id": pa.array(list(ids), pa.int64())}), part / "data.parquet")

    return tmp_path


@pytest.fixture
def arrow_tunnel(warehouse):
    return ArrowTunnel(TunnelConfig(str(warehouse), batch_size=4))
