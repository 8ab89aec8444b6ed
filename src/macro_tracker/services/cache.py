"""Client-side query cache with persisted blob and refresh stamp."""

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol

CACHE_STORAGE_KEY = "MACRO_TRACKER_QUERY_CACHE"
LAST_REFRESH_STORAGE_KEY = "MACRO_TRACKER_LAST_REFRESH"

_logger = logging.getLogger(__name__)


class LocalStorage(Protocol):
    """Device-resident string key-value storage."""

    def get_item(self, key: str) -> str | None:
        """Return the stored value, if any."""

    def set_item(self, key: str, value: str) -> None:
        """Store a value under a key."""

    def remove_item(self, key: str) -> None:
        """Remove a key if present."""


class Cache(Protocol):
    """Cache interface used by services for query results."""

    def get(self, key: str) -> object | None:
        """Return a cached value if present and fresh."""

    def set(self, key: str, value: object) -> None:
        """Store a JSON-compatible query result."""

    def invalidate(self, key: str) -> None:
        """Drop a single cached query."""

    def invalidate_prefix(self, prefix: str) -> None:
        """Drop a query and every query nested under it."""


@dataclass
class CacheEntry:
    value: object
    size_bytes: int
    refreshed_at: datetime


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


@dataclass
class QueryCacheManager(Cache):
    """Best-effort mirror of remote query results.

    Entries are kept in memory and written through to a single JSON blob in
    local storage. Nothing here is authoritative; every entry may be dropped
    at any time.
    """

    storage: LocalStorage
    stale_seconds: int = 300
    clock: Callable[[], datetime] = _utcnow
    _entries: dict[str, CacheEntry] = field(default_factory=dict, init=False)

    def __post_init__(self) -> None:
        self._load()

    def get(self, key: str) -> object | None:
        """Return a cached value unless it is missing or stale."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self.clock() - entry.refreshed_at >= timedelta(seconds=self.stale_seconds):
            self._entries.pop(key, None)
            self._persist()
            return None
        return entry.value

    def set(self, key: str, value: object) -> None:
        """Store a JSON-compatible value."""
        encoded = json.dumps(value)
        self._entries[key] = CacheEntry(
            value=json.loads(encoded),
            size_bytes=len(encoded.encode("utf-8")),
            refreshed_at=self.clock(),
        )
        self._persist()

    def invalidate(self, key: str) -> None:
        """Drop a single cached query."""
        if self._entries.pop(key, None) is not None:
            self._persist()

    def invalidate_prefix(self, prefix: str) -> None:
        """Drop a query key and all keys nested under it."""
        doomed = [
            key
            for key in self._entries
            if key == prefix or key.startswith(f"{prefix}:")
        ]
        for key in doomed:
            self._entries.pop(key, None)
        if doomed:
            self._persist()

    def size(self) -> int:
        """Return the persisted cache size in bytes, or 0 if unknown."""
        try:
            blob = self.storage.get_item(CACHE_STORAGE_KEY)
        except (OSError, ValueError):
            _logger.exception("Error calculating cache size")
            return 0
        if not blob:
            return 0
        return len(blob.encode("utf-8"))

    def clear(self) -> None:
        """Discard all cached queries and the refresh stamp."""
        self._entries.clear()
        self.storage.remove_item(CACHE_STORAGE_KEY)
        self.storage.remove_item(LAST_REFRESH_STORAGE_KEY)

    def refresh_all(self) -> datetime:
        """Invalidate every cached query and stamp a new refresh time."""
        self._entries.clear()
        self._persist()
        refreshed_at = self.clock()
        self.storage.set_item(LAST_REFRESH_STORAGE_KEY, refreshed_at.isoformat())
        return refreshed_at

    def last_refreshed_at(self) -> datetime | None:
        """Return the last refresh time, if one was recorded."""
        try:
            raw = self.storage.get_item(LAST_REFRESH_STORAGE_KEY)
            if not raw:
                return None
            return _as_utc(datetime.fromisoformat(raw))
        except (OSError, ValueError):
            _logger.warning("Discarding unreadable refresh stamp")
            return None

    def entry_count(self) -> int:
        """Return the number of cached queries."""
        return len(self._entries)

    def _persist(self) -> None:
        if not self._entries:
            self.storage.remove_item(CACHE_STORAGE_KEY)
            return
        payload = {
            key: {"value": entry.value, "refreshed_at": entry.refreshed_at.isoformat()}
            for key, entry in self._entries.items()
        }
        self.storage.set_item(CACHE_STORAGE_KEY, json.dumps(payload))

    def _load(self) -> None:
        try:
            blob = self.storage.get_item(CACHE_STORAGE_KEY)
        except OSError:
            _logger.exception("Query cache storage is unreadable, starting empty")
            return
        except ValueError:
            _logger.warning("Discarding undecodable query cache blob")
            self.storage.remove_item(CACHE_STORAGE_KEY)
            return
        if not blob:
            return
        try:
            payload = json.loads(blob)
            for key, raw in payload.items():
                value = raw["value"]
                self._entries[key] = CacheEntry(
                    value=value,
                    size_bytes=len(json.dumps(value).encode("utf-8")),
                    refreshed_at=_as_utc(datetime.fromisoformat(raw["refreshed_at"])),
                )
        except (ValueError, KeyError, TypeError, AttributeError):
            _logger.warning("Discarding unreadable query cache blob")
            self._entries.clear()
            self.storage.remove_item(CACHE_STORAGE_KEY)
