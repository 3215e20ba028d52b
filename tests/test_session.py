import fsspec
import pyarrow as pa
import pytest
from loguru import logger

from rangescan import ArrowTunnel, DatasetRef, SessionError, TunnelConfig


def drain(session):
    rows = []
    while (row := session.read_row()) is not None:
        rows.append(row)
    return rows


class TestArrowTunnel:
    def test_record_count_and_schema(self, arrow_tunnel):
        ref = DatasetRef("sales", "orders")
        assert arrow_tunnel.record_count(ref) == 10
        assert arrow_tunnel.schema(ref) == pa.schema([("id", pa.int64()), ("name", pa.string())])

    def test_table_path(self, arrow_tunnel, warehouse):
        ref = DatasetRef("sales", "events", "pt=20240101")
        assert arrow_tunnel.table_path(ref) == f"{warehouse}/sales/events/pt=20240101"

    def test_partition_filter(self, arrow_tunnel):
        assert arrow_tunnel.record_count(DatasetRef("sales", "events", "pt=20240102")) == 5
        assert arrow_tunnel.record_count(DatasetRef("sales", "events", "Non-Partitioned")) == 8

    def test_missing_table(self, arrow_tunnel):
        with pytest.raises(SessionError):
            arrow_tunnel.record_count(DatasetRef("sales", "missing"))
        with pytest.raises(SessionError):
            arrow_tunnel.open_bounded_session(DatasetRef("sales", "events", "pt=19700101"), 0, 1)

    def test_default_filesystem_from_config(self, warehouse):
        tunnel = ArrowTunnel(TunnelConfig(f"file://{warehouse}"))
        assert tunnel.root == str(warehouse)
        assert tunnel.record_count(DatasetRef("sales", "orders")) == 10

    def test_credentials_not_logged(self, warehouse):
        messages = []
        handler = logger.add(messages.append, level="DEBUG")
        try:
            config = TunnelConfig(f"file://{warehouse}", access_id="reader", access_key="s3cr3t")
            ArrowTunnel(config, filesystem=fsspec.filesystem("file"))
        finally:
            logger.remove(handler)

        assert any("Connecting tunnel" in message for message in messages)
        assert not any("s3cr3t" in message for message in messages)


class TestArrowDownloadSession:
    def test_whole_table(self, arrow_tunnel):
        session = arrow_tunnel.open_bounded_session(DatasetRef("sales", "orders"), 0, 10)
        rows = drain(session)
        assert [r["id"] for r in rows] == list(range(10))
        assert rows[0] == {"id": 0, "name": "row0"}
        assert session.total_bytes_read() > 0
        session.close()

    def test_range_spanning_files(self, arrow_tunnel):
        session = arrow_tunnel.open_bounded_session(DatasetRef("sales", "orders"), 4, 4)
        assert [r["id"] for r in drain(session)] == [4, 5, 6, 7]
        assert session.read_row() is None

    def test_skipped_files_are_not_read(self, arrow_tunnel):
        ref = DatasetRef("sales", "orders")
        whole = arrow_tunnel.open_bounded_session(ref, 0, 10)
        drain(whole)
        tail = arrow_tunnel.open_bounded_session(ref, 6, 4)
        assert [r["id"] for r in drain(tail)] == [6, 7, 8, 9]
        assert 0 < tail.total_bytes_read() < whole.total_bytes_read()

    def test_range_past_end(self, arrow_tunnel):
        session = arrow_tunnel.open_bounded_session(DatasetRef("sales", "orders"), 8, 5)
        assert [r["id"] for r in drain(session)] == [8, 9]

    def test_read_after_close(self, arrow_tunnel):
        session = arrow_tunnel.open_bounded_session(DatasetRef("sales", "orders"), 0, 2)
        session.read_row()
        session.close()
        session.close()
        with pytest.raises(SessionError):
            session.read_row()
