"""Validation and redaction utilities for rangescan."""

import re
from typing import Any

from fsspec.core import split_protocol

SECRET_KEYS = ("key", "secret", "token", "password", "access_key", "secret_key")


def strip_protocol(path: str) -> str:
    """Strips the protocol from a given path.

    Args:
        path (str): The input path which may contain a protocol.
    Returns:
        str: The path without the protocol.
    """
    protocol, path = split_protocol(path)
    return path


def validate_partition_name(name: str) -> bool:
    """
    Validate partition column names.

    Args:
        name: Partition name to validate

    Returns:
        True if valid, False otherwise
    """
    if not name or len(name) > 255:
        return False

    # Only allow alphanumeric, underscore, and hyphen
    return re.match(r"^[a-zA-Z0-9_-]+$", name) is not None


def validate_partition_value(value: Any) -> bool:
    """
    Validate partition values.

    Args:
        value: Partition value to validate

    Returns:
        True if valid, False otherwise
    """
    if value is None:
        return True

    if isinstance(value, str):
        # Prevent path traversal and special characters
        if any(char in value for char in ["/", "\\", "\0", "\n", "\r"]) or value in (".", ".."):
            return False
        return len(value) <= 1024

    if isinstance(value, (int, float, bool)):
        return True

    return False


def redact(value: str | None) -> str | None:
    """Replace a secret with a marker that only reveals its length."""
    if value is None:
        return None
    return f"REDACTED({len(value)} chars)"


def redact_options(options: dict[str, Any]) -> dict[str, Any]:
    """Copy of filesystem storage options with secret values redacted."""
    return {
        k: redact(str(v)) if k.lower() in SECRET_KEYS and v is not None else v
        for k, v in options.items()
    }
