"""
Data transfer types shared by persistence components.

Paging, pages of results and filter parameters.
"""

from dataclasses import dataclass, field
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass
class PagingParams:
    """
    Paging parameters for page-by-filter reads.

    Attributes:
        skip: Number of items to skip (None means "do not skip")
        take: Maximum number of items to return (None means "use the max page size")
        total: Whether the total number of matching items must be calculated
    """

    skip: Optional[int] = None
    take: Optional[int] = None
    total: bool = False

    def get_skip(self, min_skip: int) -> int:
        """Get the number of items to skip, never less than ``min_skip``."""
        if self.skip is None or self.skip < min_skip:
            return min_skip
        return self.skip

    def get_take(self, max_take: int) -> int:
        """Get the number of items to return, capped at ``max_take``."""
        if self.take is None:
            return max_take
        if self.take < 0:
            return 0
        return min(self.take, max_take)

    @classmethod
    def from_value(cls, value: Any) -> "PagingParams":
        """Convert a dict or an existing PagingParams (or None) into PagingParams."""
        if isinstance(value, PagingParams):
            return value
        if not value:
            return cls()
        return cls(
            skip=value.get("skip"),
            take=value.get("take"),
            total=bool(value.get("total", False)),
        )


@dataclass
class DataPage(Generic[T]):
    """
    A page of items returned by a paged read.

    ``total`` is only calculated when paging requested it; otherwise it is 0,
    which must not be read as "no items".
    """

    data: list[T] = field(default_factory=list)
    total: Optional[int] = 0


class FilterParams(dict):
    """Free-form filter values used by concrete persistences to compose queries."""

    @classmethod
    def from_tuples(cls, *tuples: Any) -> "FilterParams":
        return cls(zip(tuples[0::2], tuples[1::2]))

    def get_as_nullable_string(self, key: str) -> Optional[str]:
        value = self.get(key)
        return None if value is None else str(value)
