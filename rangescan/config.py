"""
Dataset references and configuration classes for rangescan.
"""

import os
import re
from dataclasses import dataclass, field

from fsspec.core import split_protocol

from .constants import DEFAULT_BATCH_SIZE, DEFAULT_NUM_PARTITIONS, ENV_PREFIX, NON_PARTITIONED
from .helpers.security import (
    redact,
    redact_options,
    validate_partition_name,
    validate_partition_value,
)


@dataclass(frozen=True)
class PartitionSpec:
    """A single partition filter such as ``pt=20240101,region=hz``.

    Attributes:
        parts: Ordered ``(name, value)`` pairs.
    """

    parts: tuple[tuple[str, str], ...]

    def __post_init__(self):
        if not self.parts:
            raise ValueError("Partition spec must name at least one partition column")
        for name, value in self.parts:
            if not validate_partition_name(name):
                raise ValueError(f"Invalid partition name: {name!r}")
            if not value or not validate_partition_value(value):
                raise ValueError(f"Invalid value for partition {name!r}: {value!r}")

    @classmethod
    def parse(cls, spec: "str | PartitionSpec | None") -> "PartitionSpec | None":
        """Parse a partition filter.

        ``None`` and ``"Non-Partitioned"`` both mean the whole table and return
        ``None``. Parts are separated by ``,`` or ``/``; values may be quoted.

        Raises:
            ValueError: If the spec is malformed.
        """
        if spec is None or isinstance(spec, PartitionSpec):
            return spec
        spec = spec.strip()
        if spec == NON_PARTITIONED:
            return None

        parts = []
        for part in re.split(r"[,/]", spec):
            if not part.strip():
                continue
            name, sep, value = part.partition("=")
            if not sep:
                raise ValueError(f"Invalid partition spec {spec!r}: expected name=value")
            parts.append((name.strip(), value.strip().strip("'\"")))
        return cls(tuple(parts))

    @property
    def path(self) -> str:
        """Hive style directory path, e.g. ``pt=20240101/region=hz``."""
        return "/".join(f"{name}={value}" for name, value in self.parts)

    def __str__(self) -> str:
        return ",".join(f"{name}='{value}'" for name, value in self.parts)


@dataclass(frozen=True)
class DatasetRef:
    """Identifies the remote table (and optional partition) to read.

    Attributes:
        project: Project (namespace) of the table.
        table: Table name.
        partition: Partition filter; a spec string, ``PartitionSpec``, ``None``
            or ``"Non-Partitioned"``. Normalised to ``PartitionSpec | None``.
    """

    project: str
    table: str
    partition: PartitionSpec | str | None = None

    def __post_init__(self):
        for name in ("project", "table"):
            if not validate_partition_name(getattr(self, name)):
                raise ValueError(f"Invalid {name} name: {getattr(self, name)!r}")
        object.__setattr__(self, "partition", PartitionSpec.parse(self.partition))

    @property
    def is_partitioned(self) -> bool:
        return self.partition is not None

    def __str__(self) -> str:
        name = f"{self.project}.{self.table}"
        return f"{name}[{self.partition}]" if self.partition is not None else name


@dataclass
class TunnelConfig:
    """Connection settings for the remote table storage.

    Credentials are handed to the filesystem as opaque storage options and
    are redacted from ``repr``.
    """

    endpoint: str
    access_id: str | None = None
    access_key: str | None = field(default=None, repr=False)
    protocol: str | None = None
    storage_options: dict = field(default_factory=dict, repr=False)
    batch_size: int = DEFAULT_BATCH_SIZE

    def __post_init__(self):
        if not self.endpoint:
            raise ValueError("endpoint must not be empty")
        if self.batch_size <= 0:
            raise ValueError("batch_size must be positive")
        if self.protocol is None:
            self.protocol = split_protocol(self.endpoint)[0] or "file"

    def filesystem_options(self) -> dict:
        """Storage options including credentials, for ``fsspec.filesystem``."""
        options = dict(self.storage_options)
        if self.access_id is not None:
            options.setdefault("key", self.access_id)
        if self.access_key is not None:
            options.setdefault("secret", self.access_key)
        return options

    def redacted(self) -> dict:
        """Settings with secrets replaced, safe to log."""
        return {
            "endpoint": self.endpoint,
            "protocol": self.protocol,
            "access_id": redact(self.access_id),
            "access_key": redact(self.access_key),
            "storage_options": redact_options(self.storage_options),
            "batch_size": self.batch_size,
        }

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX) -> "TunnelConfig":
        """
        Build a TunnelConfig from environment variables.

        Recognized variables:
            - RANGESCAN_ENDPOINT (required)
            - RANGESCAN_ACCESS_ID
            - RANGESCAN_ACCESS_KEY
            - RANGESCAN_PROTOCOL
            - RANGESCAN_BATCH_SIZE
        """

        def get(name: str) -> str | None:
            return os.getenv(prefix + name) or None

        endpoint = get("ENDPOINT")
        if endpoint is None:
            raise ValueError(f"{prefix}ENDPOINT is not set")

        batch_size = get("BATCH_SIZE")
        try:
            batch_size = int(batch_size) if batch_size else DEFAULT_BATCH_SIZE
        except ValueError:
            raise ValueError(f"{prefix}BATCH_SIZE must be an integer, got {batch_size!r}")

        return cls(
            endpoint=endpoint,
            access_id=get("ACCESS_ID"),
            access_key=get("ACCESS_KEY"),
            protocol=get("PROTOCOL"),
            batch_size=batch_size,
        )


@dataclass
class ReadConfig:
    """Configuration for a parallel table read."""

    num_partitions: int = DEFAULT_NUM_PARTITIONS
    n_jobs: int = -1
    backend: str = "threading"
    verbose: bool = False
    columns: str | list[str] | None = None

    def __post_init__(self):
        if isinstance(self.columns, str):
            self.columns = [self.columns]
        if self.num_partitions < 1:
            raise ValueError("num_partitions must be at least 1")
        if self.backend not in ("threading", "sequential"):
            raise ValueError(f"Unsupported joblib backend: {self.backend}")
