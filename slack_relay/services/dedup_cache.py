"""Ephemeral key-value caches with per-entry expiry."""

import threading
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Optional

from slack_relay.services.supabase_client import (
    fetch_live_cache_value,
    purge_expired_cache_values,
    upsert_cache_value,
)


class EphemeralCache(ABC):
    """Key-value store whose entries vanish after their TTL."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the live value for key, or None."""

    @abstractmethod
    def put(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store value under key for ttl_seconds."""


class InMemoryCache(EphemeralCache):
    """Process-local cache, safe for concurrent request handlers."""

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._store: dict[str, tuple[str, float]] = {}  # key -> (value, expiry)
        self._lock = threading.Lock()
        self._clock = clock

    def _now(self) -> float:
        return self._clock() if self._clock is not None else time.time()

    def _purge(self, now: float) -> None:
        expired = [k for k, (_, expires_at) in self._store.items() if expires_at <= now]
        for k in expired:
            del self._store[k]

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            now = self._now()
            self._purge(now)
            entry = self._store.get(key)
            return entry[0] if entry else None

    def put(self, key: str, value: str, ttl_seconds: int) -> None:
        with self._lock:
            self._store[key] = (value, self._now() + ttl_seconds)

    def __len__(self) -> int:
        with self._lock:
            self._purge(self._now())
            return len(self._store)


class SupabaseCache(EphemeralCache):
    """Cache shared across serverless instances via a Supabase table."""

    def __init__(self, client, clock: Optional[Callable[[], datetime]] = None):
        self.client = client
        self._clock = clock

    def _now(self) -> datetime:
        return self._clock() if self._clock is not None else datetime.now(timezone.utc)

    def get(self, key: str) -> Optional[str]:
        return fetch_live_cache_value(self.client, key, self._now())

    def put(self, key: str, value: str, ttl_seconds: int) -> None:
        now = self._now()
        upsert_cache_value(self.client, key, value, ttl_seconds, now)
        purge_expired_cache_values(self.client, now)
