"""
Row-range partitioning.

Splits the row space ``[0, total)`` of a dataset into contiguous ranges, one per
worker. The split is purely row-count based:

    partition(7, 3)

    Range 0: rows 0-2 (3 rows)
    Range 1: rows 3-4 (2 rows)
    Range 2: rows 5-6 (2 rows)

Remainder rows go to the first ranges, so sizes differ by at most one row.
Requesting more ranges than rows yields one range per row, and an empty
dataset yields no ranges at all.
"""

from dataclasses import dataclass

from .constants import MAX_PARTITIONS
from .errors import InvalidArgument


@dataclass(frozen=True)
class RangeDescriptor:
    """A contiguous slice of a dataset's rows assigned to one worker.

    Attributes:
        index: Ordinal of the range within its partitioning call.
        start: 0-based offset of the first row.
        count: Number of rows in the range.
    """

    index: int
    start: int
    count: int

    @property
    def end(self) -> int:
        """Offset of the last row (inclusive)."""
        return self.start + self.count - 1

    @property
    def stop(self) -> int:
        """Offset one past the last row."""
        return self.start + self.count


def _check_int(name: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgument(f"{name} must be an integer, got {type(value).__name__}")


def num_partitions(total: int, requested: int) -> int:
    """Number of ranges actually used for ``total`` rows.

    Args:
        total (int): Total row count.
        requested (int): Requested number of ranges.

    Returns:
        int: ``requested`` clamped to ``[1, min(total, MAX_PARTITIONS)]``.
    """
    return max(1, min(requested, total, MAX_PARTITIONS))


def split_sizes(total: int, parts: int) -> list[int]:
    """Sizes of ``parts`` balanced ranges covering ``total`` rows."""
    base = total // parts
    remainder = total - parts * base
    sizes = [base + 1 if i < remainder else base for i in range(parts)]
    assert sum(sizes) == total
    return sizes


def partition(total: int, requested: int) -> list[RangeDescriptor]:
    """Partition ``total`` rows into at most ``requested`` contiguous ranges.

    Args:
        total (int): Total row count, ``>= 0``.
        requested (int): Requested number of ranges, ``>= 1``.

    Returns:
        list[RangeDescriptor]: Ranges ordered by ``start``. Empty ranges are
            dropped, so an empty list means there is no data.

    Raises:
        InvalidArgument: If ``total`` is negative or ``requested`` is less than 1.
    """
    _check_int("total", total)
    _check_int("requested", requested)
    if total < 0:
        raise InvalidArgument(f"total must be non-negative, got {total}")
    if requested < 1:
        raise InvalidArgument(f"requested must be at least 1, got {requested}")

    ranges = []
    start = 0
    for size in split_sizes(total, num_partitions(total, requested)):
        if size > 0:
            ranges.append(RangeDescriptor(index=len(ranges), start=start, count=size))
        start += size

    assert start == total
    return ranges


def get_ranges(total: int, requested: int) -> list[tuple[int, int]]:
    """Inclusive ``(start, end)`` row pairs of ``partition(total, requested)``."""
    return [(r.start, r.end) for r in partition(total, requested)]
