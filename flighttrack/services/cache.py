"""Persisted TTL cache for enrichment lookups.

Entries are held in memory and written through to a durable store after every
``put``. The whole store is read once when the cache is opened. Expired
entries stay in place until they are overwritten; a read treats them as a
miss.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import json
import logging
import os
from pathlib import Path
import tempfile
import time
from typing import Any, Callable, Protocol

from sqlalchemy.orm import Session, sessionmaker

from flighttrack.domain.errors import CacheMiss

logger = logging.getLogger("flighttrack.cache")


@dataclass(frozen=True)
class CacheEntry:
    key: str
    payload: Any
    timestamp: float
    ttl_s: float

    def is_valid(self, now: float) -> bool:
        return now - self.timestamp < self.ttl_s


class CacheStore(Protocol):
    """Durable backing store for :class:`EnrichmentCache`."""

    def load(self) -> dict[str, CacheEntry]:
        ...

    def persist(self, entry: CacheEntry, snapshot: dict[str, CacheEntry]) -> None:
        ...


class JsonFileStore:
    """Keep the cache as one flat JSON document keyed by cache key.

    Each value is ``{"payload": ..., "timestamp": <epoch seconds>, "ttl": <seconds>}``.
    The file is rewritten atomically on every persist.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> dict[str, CacheEntry]:
        if not self.path.exists():
            return {}

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable cache file %s: %s", self.path, exc)
            return {}

        if not isinstance(raw, dict):
            logger.warning("Ignoring cache file %s with unexpected layout", self.path)
            return {}

        entries: dict[str, CacheEntry] = {}
        for key, value in raw.items():
            if not isinstance(value, dict) or "timestamp" not in value:
                continue
            try:
                entries[key] = CacheEntry(
                    key=key,
                    payload=value.get("payload"),
                    timestamp=float(value["timestamp"]),
                    ttl_s=float(value.get("ttl", 0.0)),
                )
            except (TypeError, ValueError):
                logger.debug("Skipping malformed cache entry %s", key)
        return entries

    def persist(self, entry: CacheEntry, snapshot: dict[str, CacheEntry]) -> None:
        document = {
            key: {"payload": item.payload, "timestamp": item.timestamp, "ttl": item.ttl_s}
            for key, item in snapshot.items()
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(document, handle)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise


class SqlCacheStore:
    """Keep cache entries as rows of the ``enrichment_cache`` table."""

    def __init__(self, session_factory: sessionmaker | Callable[[], Session]) -> None:
        self.session_factory = session_factory

    def load(self) -> dict[str, CacheEntry]:
        from flighttrack.db_models import CacheEntryRecord

        db = self.session_factory()
        try:
            rows = db.query(CacheEntryRecord).all()
            return {
                row.key: CacheEntry(
                    key=row.key, payload=row.payload, timestamp=row.timestamp, ttl_s=row.ttl
                )
                for row in rows
            }
        finally:
            db.close()

    def persist(self, entry: CacheEntry, snapshot: dict[str, CacheEntry]) -> None:
        from flighttrack.db_models import CacheEntryRecord

        db = self.session_factory()
        try:
            db.merge(
                CacheEntryRecord(
                    key=entry.key,
                    payload=entry.payload,
                    timestamp=entry.timestamp,
                    ttl=entry.ttl_s,
                )
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


class EnrichmentCache:
    """In-memory TTL map written through to a :class:`CacheStore`."""

    def __init__(
        self,
        store: CacheStore,
        *,
        default_ttl_s: float = 30 * 60,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.default_ttl_s = default_ttl_s
        self._clock = clock
        self._entries: dict[str, CacheEntry] = store.load()
        self._write_lock = asyncio.Lock()
        logger.info("Loaded %s enrichment cache entries", len(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.is_valid(self._clock())

    def get(self, key: str) -> Any:
        """Return the cached payload or raise :class:`CacheMiss`."""

        entry = self._entries.get(key)
        if entry is None or not entry.is_valid(self._clock()):
            logger.debug("Cache miss for %s", key)
            raise CacheMiss(key)

        logger.debug("Cache hit for %s", key)
        return entry.payload

    async def put(self, key: str, payload: Any, ttl_s: float | None = None) -> CacheEntry:
        """Store ``payload`` stamped with the current time and persist the cache."""

        entry = CacheEntry(
            key=key,
            payload=payload,
            timestamp=self._clock(),
            ttl_s=self.default_ttl_s if ttl_s is None else ttl_s,
        )
        self._entries[key] = entry

        async with self._write_lock:
            snapshot = dict(self._entries)
            try:
                await asyncio.to_thread(self.store.persist, entry, snapshot)
            except Exception as exc:
                # the in-memory entry stays usable; durability is best effort
                logger.warning("Failed to persist cache entry %s: %s", key, exc)
        return entry


def build_cache_store(backend: str, *, path: str | Path, session_factory=None) -> CacheStore:
    """Pick the durable store named by configuration (``json`` or ``sql``)."""

    if backend == "json":
        return JsonFileStore(path)
    if backend == "sql":
        if session_factory is None:
            from flighttrack.db import SessionLocal, init_db

            init_db()
            session_factory = SessionLocal
        return SqlCacheStore(session_factory)
    raise ValueError(f"Unknown cache backend: {backend}")


__all__ = [
    "CacheEntry",
    "CacheStore",
    "EnrichmentCache",
    "JsonFileStore",
    "SqlCacheStore",
    "build_cache_store",
]
