"""
Exceptions raised by rangescan.

- InvalidArgument: bad partitioning input, raised by ``partition()`` only.
- SessionError: the remote session could not be opened or read.
- ConversionError: a remote value could not be mapped into the record schema.
- TaskCancelled: a scanner was pulled after its task was cancelled.
- CleanupWarning: releasing a session failed. Issued as a warning, never raised.

End-of-data is not an error and is never reported through these types.
"""

from typing import Any


class RangeScanError(Exception):
    """Base class for rangescan errors."""


class InvalidArgument(RangeScanError, ValueError):
    """Raised when partitioning inputs are out of range."""


class SessionError(RangeScanError):
    """Raised when opening or reading a remote session fails."""


class ConversionError(RangeScanError):
    """Raised when a field value cannot be converted into the record schema.

    Args:
        field_index: Position of the field in the record schema.
        field_name: Name of the field.
        target_type: Type the value should have been converted to.
        value: The offending raw value.
    """

    def __init__(
        self,
        field_index: int,
        field_name: str,
        target_type: Any,
        value: Any,
        message: str | None = None,
    ):
        self.field_index = field_index
        self.field_name = field_name
        self.target_type = target_type
        self.value = value
        super().__init__(
            message
            or f"Can not convert column value, idx: {field_index}, "
            f"name: {field_name}, type: {target_type}, value: {value!r}"
        )


class TaskCancelled(RangeScanError):
    """Raised when a scanner is pulled after its task was cancelled."""


class CleanupWarning(UserWarning):
    """Issued when a session could not be released cleanly."""
