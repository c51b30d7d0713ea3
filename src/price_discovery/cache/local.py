"""In-process TTL cache for short-lived computed results.

This is the engine's second-level cache for PriceInfo values. It is separate
from the Redis-backed market data cache: it lives in process memory, expires
entries after a short TTL and evicts the least recently used entry once
``max_items`` is reached.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Callable


class TTLCache[V]:
    """Bounded LRU mapping whose entries expire ``ttl`` seconds after insertion.

    Accessed only from the event loop thread, so no locking is needed.

    Example:
        ```python
        cache: TTLCache[PriceInfo] = TTLCache(ttl=300, max_items=1000)
        cache.set("tomato:vegetables:delhi", price)
        cache.get("tomato:vegetables:delhi")
        ```
    """

    def __init__(
        self,
        ttl: float,
        max_items: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl <= 0:
            msg = "ttl must be positive"
            raise ValueError(msg)
        if max_items < 1:
            msg = "max_items must be at least 1"
            raise ValueError(msg)
        self.ttl = ttl
        self.max_items = max_items
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, V]] = OrderedDict()

    def get(self, key: str) -> V | None:
        """Return the live value for ``key``, dropping it if expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return value

    def set(self, key: str, value: V) -> None:
        """Store ``value`` under ``key``, evicting the oldest entry if full."""
        self._entries[key] = (self._clock() + self.ttl, value)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_items:
            self._entries.popitem(last=False)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def purge_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""
        now = self._clock()
        expired = [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None
