"""Small expiring key/value cache.

The application factory owns one instance and hands it to whoever needs it
(see ``app.state.auth_cache``); nothing here is a module-level singleton.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Dict, Hashable, Tuple


class TTLCache:
    """Thread-safe mapping whose entries expire after a time-to-live."""

    def __init__(self, default_ttl: float = 300.0, clock: Callable[[], float] = time.monotonic) -> None:
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            expires_at, value = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return default
            return value

    def set(self, key: Hashable, value: Any, ttl: float | None = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            self.invalidate(key)
            return
        with self._lock:
            now = self._clock()
            self._prune(now)
            self._entries[key] = (now + ttl, value)

    def _prune(self, now: float) -> None:
        expired = [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]

    def invalidate(self, key: Hashable | None = None) -> None:
        """Drop one key, or everything when ``key`` is ``None``."""

        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)

    def __len__(self) -> int:
        now = self._clock()
        with self._lock:
            return sum(1 for expires_at, _ in self._entries.values() if expires_at > now)
