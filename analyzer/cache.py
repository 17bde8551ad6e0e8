"""
In-memory TTL cache shared by the blob store namespaces.
"""
import threading
import time
from typing import Any, Optional


class TTLCache:
    """
    Thread-safe key/value store with per-entry expiry.

    Entries live in a dict of {key: (expires_at, value)}; expired entries are
    purged on every read and write.
    """

    def __init__(self, clock=time.time):
        self._storage = {}
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: str) -> Optional[Any]:
        """
        Look up a live entry.

        Returns:
            The stored value, or None when the key is absent or expired.
        """
        with self._lock:
            self._purge_expired()
            entry = self._storage.get(key)
            return entry[1] if entry is not None else None

    def set(self, key: str, value: Any, ttl: int) -> None:
        """Store or overwrite `key`, expiring `ttl` seconds from now."""
        with self._lock:
            self._purge_expired()
            self._storage[key] = (self._clock() + ttl, value)

    def add(self, key: str, value: Any, ttl: int) -> bool:
        """Store value only if key is absent. Returns True when stored."""
        with self._lock:
            self._purge_expired()
            if key in self._storage:
                return False
            self._storage[key] = (self._clock() + ttl, value)
            return True

    def delete(self, key: str) -> None:
        with self._lock:
            self._storage.pop(key, None)

    def _purge_expired(self) -> None:
        # Caller holds the lock
        now = self._clock()
        for key in [k for k, (expires_at, _) in self._storage.items() if now > expires_at]:
            del self._storage[key]


# Process-wide cache shared by the upload and analysis-cache namespaces
blob_cache = TTLCache()
