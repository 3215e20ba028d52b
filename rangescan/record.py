"""
Fixed-schema row buffer produced by partition scanners.
"""

from typing import Any, Iterator

import pyarrow as pa


class MutableRow:
    """A fixed-width row keyed by field position.

    A scanner allocates one ``MutableRow`` and overwrites it on every pull. The
    consumer may read it until the next pull; after that its contents belong to
    the next record. Use :meth:`copy`, :meth:`as_tuple` or :meth:`as_dict` to
    keep a record.
    """

    __slots__ = ("schema", "_values")

    def __init__(self, schema: pa.Schema):
        self.schema = schema
        self._values: list[Any] = [None] * len(schema)

    def update(self, idx: int, value: Any) -> None:
        self._values[idx] = value

    def __getitem__(self, idx: int) -> Any:
        return self._values[idx]

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._values)

    def __repr__(self) -> str:
        return f"MutableRow({self.as_dict()!r})"

    def as_tuple(self) -> tuple:
        return tuple(self._values)

    def as_dict(self) -> dict[str, Any]:
        return dict(zip(self.schema.names, self._values))

    def copy(self) -> "MutableRow":
        row = MutableRow(self.schema)
        row._values = list(self._values)
        return row
