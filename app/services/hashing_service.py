from __future__ import annotations

import hashlib
import json
from datetime import datetime
from typing import Any

from app.core.clock import Clock, SystemClock
from app.models.event import Event, EventFingerprint


class HashingService:
    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()

    def compute_sha256(self, content: str) -> str:
        return hashlib.sha256(content.encode("utf-8")).hexdigest()

    @staticmethod
    def canonical_content(event: Event) -> str:
        """
        Serialize the identifying fields of an event into a canonical string.

        The timestamp is deliberately excluded. Payload keys are sorted so that
        logically equal payloads serialize identically, and the three fields are
        encoded as a JSON array so a separator inside ``source`` cannot make two
        different events share a string. Payloads hold JSON values only; anything
        else raises ``TypeError`` rather than being coerced into a string that
        could collide with a genuine string value.
        """
        content: list[Any] = [event.source, event.event_type.value, event.payload]
        return json.dumps(content, sort_keys=True, separators=(",", ":"), ensure_ascii=False)

    def fingerprint(self, event: Event, *, created_at: datetime | None = None) -> EventFingerprint:
        return EventFingerprint(
            digest=self.compute_sha256(self.canonical_content(event)),
            source=event.source,
            event_type=event.event_type,
            created_at=created_at or self._clock.now(),
        )
