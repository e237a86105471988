"""Expiring key-value store for short-lived secrets such as confirmation tokens"""
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Hashable, Optional, Tuple


class ExpiringStore:
    """In-memory map whose entries disappear after their TTL.

    Expired entries are dropped lazily when touched and in bulk by sweep().
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.utcnow):
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[Any, datetime]] = {}

    def put(self, key: Hashable, value: Any, ttl: timedelta) -> datetime:
        """Store value and return its expiry time"""
        if ttl <= timedelta(0):
            raise ValueError("TTL must be positive")
        expires_at = self._clock() + ttl
        self._entries[key] = (value, expires_at)
        return expires_at

    def get(self, key: Hashable) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def pop(self, key: Hashable) -> Optional[Any]:
        """Remove and return a live value; None if missing or expired"""
        value = self.get(key)
        self._entries.pop(key, None)
        return value

    def sweep(self) -> int:
        """Drop every expired entry and return how many were dropped"""
        now = self._clock()
        expired = [key for key, (_, expires_at) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None
