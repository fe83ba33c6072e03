"""
In-process response cache with TTL and a size bound.
Each entry is (stored_at, value); stale entries are dropped when read.
"""
import time
from collections import OrderedDict
from typing import Any, Callable, Optional, Tuple


class ResponseCache:
    """
    TTL cache bounded by entry count, least recently used evicted first.
    """

    def __init__(self, ttl_sec: float = 1800, max_entries: int = 256,
                 clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_sec = float(ttl_sec)
        self.max_entries = max(1, int(max_entries))
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[float, Any]]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        stored_at, value = entry
        if self._clock() - stored_at >= self.ttl_sec:
            del self._entries[key]
            return None

        self._entries.move_to_end(key)
        return value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = (self._clock(), value)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def sweep(self) -> int:
        """Drop every expired entry, return how many were removed."""
        now = self._clock()
        expired = [k for k, (ts, _) in self._entries.items() if now - ts >= self.ttl_sec]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
