import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from sqlalchemy import delete
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm import sessionmaker

from orgindex.core.errors import StorageError
from orgindex.models import CacheEntryRecord


logger = logging.getLogger(__name__)

EVICTION_TTL_MULTIPLIER = 6


@dataclass(frozen=True)
class CacheHit:
    """Cached payload together with its age at read time."""

    payload: Any
    age: float
    is_stale: bool


class PersistentCache:
    """Best-effort key/payload store backed by the `cache_entries` table.

    The cache only ever affects latency and availability. Every storage
    failure degrades to a miss on read, or to an eviction plus one retry on
    write; nothing raises to the caller.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        ttl_seconds: float,
        namespace: str = "orgindex",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._session_factory = session_factory
        self.ttl_seconds = ttl_seconds
        self.namespace = namespace
        self._clock = clock

    def get(self, key: str) -> CacheHit | None:
        try:
            with self._session_factory() as db:
                record = db.scalar(
                    select(CacheEntryRecord).where(
                        CacheEntryRecord.namespace == self.namespace,
                        CacheEntryRecord.key == key,
                    )
                )
                if record is None:
                    return None
                payload = record.data
                written_at = float(record.timestamp)
                ttl = float(record.ttl_seconds)
        except (SQLAlchemyError, ValueError, TypeError) as exc:
            logger.warning("Cache read failed for %s: %s", key, exc)
            return None

        age = max(0.0, self._clock() - written_at)
        return CacheHit(payload=payload, age=age, is_stale=age > ttl)

    def set(self, key: str, payload: Any, ttl_seconds: float | None = None) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        try:
            self._write(key, payload, ttl)
            return
        except StorageError as exc:
            logger.warning("Cache write failed for %s, evicting old entries: %s", key, exc)

        self.evict_older_than(EVICTION_TTL_MULTIPLIER * ttl)
        try:
            self._write(key, payload, ttl)
        except StorageError as exc:
            logger.warning("Cache write dropped for %s: %s", key, exc)

    def evict_older_than(self, max_age_seconds: float) -> int:
        """Remove entries written more than `max_age_seconds` ago."""

        cutoff = self._clock() - max_age_seconds
        return self._delete(
            CacheEntryRecord.namespace == self.namespace,
            CacheEntryRecord.timestamp < cutoff,
        )

    def prune(self) -> int:
        """Maintenance pass dropping entries older than six TTL periods."""

        return self.evict_older_than(EVICTION_TTL_MULTIPLIER * self.ttl_seconds)

    def clear(self) -> int:
        return self._delete(CacheEntryRecord.namespace == self.namespace)

    def _write(self, key: str, payload: Any, ttl: float) -> None:
        try:
            with self._session_factory() as db:
                record = db.scalar(
                    select(CacheEntryRecord).where(
                        CacheEntryRecord.namespace == self.namespace,
                        CacheEntryRecord.key == key,
                    )
                )
                if record is None:
                    record = CacheEntryRecord(namespace=self.namespace, key=key)
                    db.add(record)
                record.data = payload
                record.timestamp = self._clock()
                record.ttl_seconds = ttl
                db.commit()
        except SQLAlchemyError as exc:
            raise StorageError(str(exc)) from exc

    def _delete(self, *conditions) -> int:
        try:
            with self._session_factory() as db:
                result = db.execute(delete(CacheEntryRecord).where(*conditions))
                db.commit()
                return result.rowcount or 0
        except SQLAlchemyError as exc:
            logger.warning("Cache eviction failed: %s", exc)
            return 0
