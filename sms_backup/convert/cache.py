"""
Bounded least-recently-used cache for resolved persons.

Keys are raw addresses as they appear in the message store. Both `get` hits
and `put` calls count as a use. Once the cache holds `capacity` entries, each
new key evicts the entry that was used longest ago.
"""

from collections import OrderedDict
from typing import Generic, Iterator, Optional, TypeVar

V = TypeVar("V")

MAX_PEOPLE_CACHE_SIZE = 500


class PersonCache(Generic[V]):
    """
    LRU mapping of address to value.

    Recency is kept in an OrderedDict: the oldest entry sits at the front and
    every use moves its key to the back, so eviction pops from the front.
    """

    def __init__(self, capacity: int = MAX_PEOPLE_CACHE_SIZE):
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._entries: "OrderedDict[str, V]" = OrderedDict()

    @property
    def capacity(self) -> int:
        return self._capacity

    def get(self, key: str) -> Optional[V]:
        """Return the cached value, marking it as most recently used."""
        if key not in self._entries:
            return None
        self._entries.move_to_end(key)
        return self._entries[key]

    def put(self, key: str, value: V) -> None:
        """Insert or replace a value, evicting the least recently used entry if full."""
        if key in self._entries:
            self._entries.move_to_end(key)
        self._entries[key] = value
        if len(self._entries) > self._capacity:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        # Membership tests do not count as a use.
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        """Iterate keys from least to most recently used."""
        return iter(list(self._entries))
