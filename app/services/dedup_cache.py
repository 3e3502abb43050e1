from __future__ import annotations

import threading
from datetime import timedelta

from app.core.clock import Clock, SystemClock
from app.core.logger import get_logger
from app.models.event import Event, EventFingerprint
from app.services.hashing_service import HashingService

logger = get_logger(component="DeduplicationCache")


class DeduplicationCache:
    """
    In-memory fingerprint cache used to drop repeated event submissions.

    Entries are logically expired once their age reaches the TTL: lookups treat
    them as absent even before the next cleanup sweep physically removes them.
    A single lock guards the entry dict; hashing happens outside of it.
    """

    def __init__(
        self,
        *,
        ttl: timedelta,
        max_size: int,
        enabled: bool = True,
        hashing_service: HashingService | None = None,
        clock: Clock | None = None,
    ) -> None:
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self._ttl = ttl
        self._max_size = max_size
        self._enabled = enabled
        self._clock = clock or SystemClock()
        self._hashing_service = hashing_service or HashingService(clock=self._clock)
        self._entries: dict[str, EventFingerprint] = {}
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._enabled

    def fingerprint(self, event: Event) -> EventFingerprint:
        return self._hashing_service.fingerprint(event)

    def _is_expired(self, entry: EventFingerprint) -> bool:
        return self._clock.now() - entry.created_at >= self._ttl

    def is_duplicate(self, event: Event) -> bool:
        if not self._enabled:
            logger.debug("Duplicate filter disabled, allowing event", source=event.source)
            return False

        digest = self.fingerprint(event).digest
        with self._lock:
            existing = self._entries.get(digest)
            if existing is None:
                logger.debug("Fingerprint not found, not a duplicate", digest=digest)
                return False

            if self._is_expired(existing):
                del self._entries[digest]
                logger.debug("Fingerprint expired, removing and allowing", digest=digest)
                return False

        logger.info(
            "Duplicate event detected and blocked",
            source=event.source,
            event_type=event.event_type.value,
            digest=digest,
        )
        return True

    def record(self, fingerprint: EventFingerprint) -> None:
        if not self._enabled:
            return

        entry = fingerprint.model_copy(update={"created_at": self._clock.now()})
        with self._lock:
            needs_sweep = len(self._entries) >= self._max_size and fingerprint.digest not in self._entries
        if needs_sweep:
            logger.warning("Cache size limit reached, forcing cleanup", max_cache_size=self._max_size)
            self.cleanup()

        with self._lock:
            self._entries[entry.digest] = entry
        logger.debug("Recorded event fingerprint", digest=entry.digest)

    def cleanup(self) -> int:
        """Remove every expired entry and return how many were removed."""
        if not self._enabled:
            return 0

        with self._lock:
            initial_size = len(self._entries)
            expired = [digest for digest, entry in self._entries.items() if self._is_expired(entry)]
            for digest in expired:
                del self._entries[digest]
            current_size = len(self._entries)

        if expired:
            logger.info(
                "Dedup cleanup completed",
                removed=len(expired),
                size_before=initial_size,
                size_after=current_size,
            )
        return len(expired)

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.info("Dedup cache cleared")
