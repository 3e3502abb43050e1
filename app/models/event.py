from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum as PyEnum

from pydantic import BaseModel, ConfigDict, Field, JsonValue


class EventType(str, PyEnum):
    USER_ACTION = "USER_ACTION"
    SYSTEM_EVENT = "SYSTEM_EVENT"
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"


class Event(BaseModel):
    """An ingested event. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    source: str
    event_type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(tz=timezone.utc))
    payload: dict[str, JsonValue] = Field(default_factory=dict)


class EventFingerprint(BaseModel):
    """Content hash of an event used for duplicate detection."""

    model_config = ConfigDict(frozen=True)

    digest: str
    source: str
    event_type: EventType
    created_at: datetime

    def age_seconds(self, now: datetime) -> float:
        return (now - self.created_at).total_seconds()
