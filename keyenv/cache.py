import logging
import threading
import time
from typing import Any, Callable, NamedTuple, Optional

logger = logging.getLogger(__name__)


class _CacheEntry(NamedTuple):
    value: Any
    expires_at: float


def export_cache_key(project_id: str, environment: str) -> str:
    return f"{scope_prefix(project_id, environment)}export"


def scope_prefix(project_id: str, environment: str) -> str:
    return f"secrets:{project_id}:{environment}:"


class TTLCache:
    """In-memory map of key -> value that forgets entries after ``ttl`` seconds.

    A ``ttl`` of 0 disables the cache: every ``get`` misses and ``put`` does
    nothing. Expired entries are evicted lazily on read and swept on every
    write; there is no background thread. Safe for concurrent use.
    """

    def __init__(self, ttl: float = 0.0, clock: Optional[Callable[[], float]] = None) -> None:
        if ttl < 0:
            raise ValueError("Cache TTL cannot be negative")
        self.ttl = ttl
        self._clock = clock or time.monotonic
        self._entries: dict[str, _CacheEntry] = {}
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.ttl > 0

    def get(self, key: str) -> Optional[Any]:
        if not self.enabled:
            return None

        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug("Cache miss for %s", key)
                return None
            if self._clock() >= entry.expires_at:
                del self._entries[key]
                logger.debug("Cache entry expired for %s", key)
                return None

        logger.debug("Cache hit for %s", key)
        return entry.value

    def put(self, key: str, value: Any) -> None:
        if not self.enabled:
            return

        with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if now >= e.expires_at]
            for k in expired:
                del self._entries[k]
            self._entries[key] = _CacheEntry(value, now + self.ttl)

    def invalidate_prefix(self, prefix: str) -> int:
        with self._lock:
            stale = [k for k in self._entries if k.startswith(prefix)]
            for k in stale:
                del self._entries[k]
        return len(stale)

    def invalidate_all(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
