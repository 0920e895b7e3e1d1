"""Small keyed cache for per-date transit graphs."""

import asyncio
from collections import OrderedDict
from typing import Generic, TypeVar

T = TypeVar("T")


class KeyedCache(Generic[T]):
    """Bounded least-recently-used cache.

    Uses an async lock so concurrent callers building the same entry
    wait for the first build instead of repeating it.
    """

    def __init__(self, max_entries: int = 4):
        """Initialize the cache.

        Args:
            max_entries: Number of entries kept before the oldest is evicted.
        """
        self._max_entries = max_entries
        self._values: OrderedDict[str, T] = OrderedDict()
        self._lock = asyncio.Lock()

    def get(self, key: str) -> T | None:
        """Get the cached value for key, marking it as recently used."""
        value = self._values.get(key)
        if value is not None:
            self._values.move_to_end(key)
        return value

    def set(self, key: str, value: T) -> None:
        """Store a value, evicting the least recently used entry if full."""
        self._values[key] = value
        self._values.move_to_end(key)
        while len(self._values) > self._max_entries:
            self._values.popitem(last=False)

    def clear(self) -> None:
        """Clear all cached values."""
        self._values.clear()

    def __len__(self) -> int:
        return len(self._values)

    @property
    def lock(self) -> asyncio.Lock:
        """Get the async lock for coordinating builds."""
        return self._lock
