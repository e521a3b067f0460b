"""Result cache for finished reports.

Reports are stored per subject and keyed by the content fingerprint they
were computed from, so a subject with new activity misses the cache even
inside the TTL.

Cache Layout:
    key: "<subject lower-cased>:<fingerprint>"
    value: CacheRecord (report payload, created_at, expires_at, schema_version)

Features:
    - TTL expiry (default 7 days), purged lazily on get/set
    - Oldest-first eviction beyond max_entries
    - Hit/miss statistics
    - JSON persistence ``{"schemaVersion": ..., "entries": {...}}``;
      a schema mismatch or unreadable file discards the whole store
    - Context manager support; close() saves to disk
"""

import json
import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from models.report import CacheRecord, Report

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "2"
DEFAULT_TTL_SECONDS = 7 * 24 * 3600
DEFAULT_MAX_ENTRIES = 100


def cache_key(subject: str, fingerprint: str) -> str:
    return f"{subject.strip().lower()}:{fingerprint}"


class ResultCache:
    """TTL cache of reports keyed by subject and content fingerprint.

    Example:
        >>> with ResultCache(Path("data/cache.json")) as cache:
        ...     report = cache.get("some_user", content.fingerprint)
        ...     if report is None:
        ...         cache.set("some_user", content.fingerprint, new_report)
    """

    def __init__(
        self,
        path: Path | str | None = None,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        schema_version: str = SCHEMA_VERSION,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the cache, loading persisted entries if a path is given.

        Args:
            path: Optional JSON file for persistence
            ttl_seconds: Lifetime of a cached report
            max_entries: Maximum number of stored reports
            schema_version: Stores written under another version are discarded
            clock: Time source (epoch seconds)
        """
        self.path = Path(path) if path else None
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.schema_version = schema_version
        self._clock = clock
        self._entries: dict[str, CacheRecord] = {}
        self.hits = 0
        self.misses = 0

        if self.path:
            self.load()

    def get(self, subject: str, fingerprint: str) -> Report | None:
        """Return the cached report for this subject and content, if fresh.

        Entries for the same subject under a different fingerprint are
        stale by definition and are purged here.
        """
        self._purge_expired()
        self._purge_stale(subject, fingerprint)

        record = self._entries.get(cache_key(subject, fingerprint))
        if record is None:
            self.misses += 1
            logger.debug("Cache miss | subject=%s fingerprint=%s", subject, fingerprint)
            return None

        self.hits += 1
        logger.info("Cache hit | subject=%s age_hours=%.1f", subject, (self._clock() - record.created_at) / 3600)
        return record.payload

    def set(self, subject: str, fingerprint: str, report: Report) -> None:
        now = self._clock()
        self._purge_expired()
        self._purge_stale(subject, fingerprint)

        key = cache_key(subject, fingerprint)
        self._entries[key] = CacheRecord(
            subject=subject.strip().lower(),
            fingerprint=fingerprint,
            payload=report,
            created_at=now,
            expires_at=now + self.ttl_seconds,
            schema_version=self.schema_version,
        )
        self._evict()
        logger.debug("Cache stored | subject=%s fingerprint=%s entries=%d", subject, fingerprint, len(self._entries))

    def clear(self, subject: str) -> int:
        """Remove every entry for a subject. Returns the number removed."""
        name = subject.strip().lower()
        keys = [k for k, record in self._entries.items() if record.subject == name]
        for key in keys:
            del self._entries[key]
        logger.info("Cache cleared | subject=%s removed=%d", subject, len(keys))
        return len(keys)

    def clear_all(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        self.hits = 0
        self.misses = 0
        logger.info("Cache cleared | removed=%d", count)
        return count

    def stats(self) -> dict[str, Any]:
        """Get cache statistics.

        Returns:
            Dictionary with entry counts and hit/miss counters
        """
        now = self._clock()
        expired = sum(1 for record in self._entries.values() if record.expires_at <= now)
        lookups = self.hits + self.misses
        return {
            "total": len(self._entries),
            "valid": len(self._entries) - expired,
            "expired": expired,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": round(self.hits / lookups, 3) if lookups else 0.0,
        }

    def _purge_expired(self) -> None:
        now = self._clock()
        expired = [k for k, record in self._entries.items() if record.expires_at <= now]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Cache expired entries purged | count=%d", len(expired))

    def _purge_stale(self, subject: str, fingerprint: str) -> None:
        name = subject.strip().lower()
        stale = [
            k for k, record in self._entries.items()
            if record.subject == name and record.fingerprint != fingerprint
        ]
        for key in stale:
            del self._entries[key]

    def _evict(self) -> None:
        overflow = len(self._entries) - self.max_entries
        if overflow <= 0:
            return
        oldest = sorted(self._entries, key=lambda k: self._entries[k].created_at)[:overflow]
        for key in oldest:
            del self._entries[key]
        logger.debug("Cache evicted oldest entries | count=%d", overflow)

    # === Persistence ===

    def load(self) -> None:
        if not self.path or not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Cache file unreadable; starting empty | path=%s error=%s", self.path, e)
            return

        if not isinstance(data, dict) or data.get("schemaVersion") != self.schema_version:
            logger.info("Cache schema mismatch; discarding store | path=%s", self.path)
            return

        try:
            self._entries = {
                key: CacheRecord.model_validate(record)
                for key, record in data.get("entries", {}).items()
            }
        except (ValidationError, AttributeError) as e:
            logger.warning("Cache entries invalid; discarding store | path=%s error=%s", self.path, e)
            self._entries = {}
            return
        self._purge_expired()
        logger.debug("Cache loaded | entries=%d", len(self._entries))

    def save(self) -> None:
        if not self.path:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "schemaVersion": self.schema_version,
            "entries": {key: record.model_dump(mode="json") for key, record in self._entries.items()},
        }
        self.path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")

    def close(self) -> None:
        """Persist the cache to disk."""
        self.save()

    def __enter__(self) -> "ResultCache":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()
