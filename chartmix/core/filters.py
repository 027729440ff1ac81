"""
Module: filters

Purpose: Filter values a chart applies when an element is clicked.

A plain key is its own filter. Clicking an others row applies a
MultiKeyFilter instead, which matches any of the keys the row absorbed.
"""

from dataclasses import dataclass
from typing import Any, Iterable


@dataclass(frozen=True)
class MultiKeyFilter:
    """A set-valued filter that matches any of its member keys."""

    members: tuple[Any, ...]

    @classmethod
    def of(cls, keys: Iterable[Any]) -> "MultiKeyFilter":
        """Build a filter from any iterable of keys, keeping their order."""
        return cls(tuple(keys))

    def matches(self, key: Any) -> bool:
        """Check whether ``key`` is one of the members."""
        return key in self.members

    def __len__(self) -> int:
        return len(self.members)


def filter_matches(active: Any, key: Any) -> bool:
    """Check whether one active filter value selects ``key``."""
    if isinstance(active, MultiKeyFilter):
        return active.matches(key)
    return active == key
