"""
Conversion of remote column values into record field values.

A value converter is any callable ``(type_info, value) -> value`` where
``type_info`` is the remote column's pyarrow type. :func:`to_internal_value`
is the default one. Scanners call the converter once per field per row and
treat any exception it raises as fatal for the row.
"""

import datetime as dt
import decimal
from dataclasses import dataclass
from typing import Any, Callable, Mapping

import pyarrow as pa

from .record import MutableRow

ValueConverter = Callable[[pa.DataType, Any], Any]


def _to_bool(type_info: pa.DataType, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    raise TypeError(f"Can not interpret {value!r} as {type_info}")


def _to_int(type_info: pa.DataType, value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError(f"Can not interpret {value!r} as {type_info}")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"Can not interpret {value!r} as {type_info} without loss")
    # pyarrow rejects values outside the range of the integer type
    return pa.scalar(int(value), type=type_info).as_py()


def _to_float(type_info: pa.DataType, value: Any) -> float:
    if isinstance(value, bool):
        raise TypeError(f"Can not interpret {value!r} as {type_info}")
    return float(value)


def _to_str(type_info: pa.DataType, value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8")
    raise TypeError(f"Can not interpret {value!r} as {type_info}")


def _to_bytes(type_info: pa.DataType, value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8")
    raise TypeError(f"Can not interpret {value!r} as {type_info}")


def _to_decimal(type_info: pa.DataType, value: Any) -> decimal.Decimal:
    if isinstance(value, decimal.Decimal):
        return value
    if isinstance(value, float):
        value = repr(value)
    return decimal.Decimal(str(value))


def _to_timestamp(type_info: pa.DataType, value: Any) -> dt.datetime:
    if isinstance(value, dt.datetime):
        return value
    return pa.scalar(value, type=type_info).as_py()


def _to_date(type_info: pa.DataType, value: Any) -> dt.date:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    return pa.scalar(value, type=type_info).as_py()


def _coerce(type_info: pa.DataType, value: Any) -> Any:
    return pa.scalar(value, type=type_info).as_py()


_CONVERTERS: list[tuple[Callable[[pa.DataType], bool], ValueConverter]] = [
    (pa.types.is_boolean, _to_bool),
    (pa.types.is_integer, _to_int),
    (pa.types.is_floating, _to_float),
    (pa.types.is_string, _to_str),
    (pa.types.is_large_string, _to_str),
    (pa.types.is_binary, _to_bytes),
    (pa.types.is_large_binary, _to_bytes),
    (pa.types.is_fixed_size_binary, _to_bytes),
    (pa.types.is_decimal, _to_decimal),
    (pa.types.is_timestamp, _to_timestamp),
    (pa.types.is_date, _to_date),
]


def converter_for(type_info: pa.DataType) -> ValueConverter:
    """Return the conversion function for a remote column type."""
    for predicate, convert in _CONVERTERS:
        if predicate(type_info):
            return convert
    return _coerce


def to_internal_value(type_info: pa.DataType, value: Any) -> Any:
    """Convert a remote value of type ``type_info`` into a record value.

    Nulls pass through unchanged. Nested and otherwise unlisted types are
    coerced through ``pyarrow.scalar``.

    Args:
        type_info (pa.DataType): Remote column type.
        value (Any): Raw remote value.

    Returns:
        Any: Python value suitable for a field of ``type_info``.
    """
    if value is None:
        return None
    return converter_for(type_info)(type_info, value)


@dataclass(frozen=True)
class ConversionFailure:
    """The first field of a row that could not be converted."""

    field_index: int
    field_name: str
    target_type: pa.DataType
    value: Any
    cause: Exception


def fill_row(
    row: MutableRow,
    raw: Mapping[str, Any],
    type_infos: Mapping[str, pa.DataType],
    converter: ValueConverter = to_internal_value,
) -> ConversionFailure | None:
    """Convert a raw remote row into ``row`` field by field.

    Columns are looked up by field name. Conversion stops at the first field
    that fails, including a column missing from ``raw``; the fields written
    before it are left in place and the row must not be emitted.

    Returns:
        ConversionFailure | None: ``None`` when every field converted.
    """
    for idx, field in enumerate(row.schema):
        value = None
        try:
            value = raw[field.name]
            row.update(idx, converter(type_infos.get(field.name, field.type), value))
        except Exception as e:
            return ConversionFailure(idx, field.name, field.type, value, e)
    return None
