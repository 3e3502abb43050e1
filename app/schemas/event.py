from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field, JsonValue, field_validator, model_validator

from app.models.event import Event, EventType
from app.services.temperature_validator import TemperatureDataValidator

_temperature_validator = TemperatureDataValidator()


class EventLogRequest(BaseModel):
    source: str = Field(..., min_length=2, max_length=100)
    event_type: EventType
    timestamp: datetime | None = None
    payload: dict[str, JsonValue] | None = None

    @field_validator("source")
    @classmethod
    def source_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Source is required")
        return value

    @model_validator(mode="after")
    def validate_temperature_payload(self) -> "EventLogRequest":
        errors = _temperature_validator.validate(self.payload)
        if errors:
            raise ValueError("; ".join(errors))
        return self

    def to_event(self) -> Event:
        timestamp = self.timestamp or datetime.now(tz=timezone.utc)
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return Event(
            source=self.source,
            event_type=self.event_type,
            timestamp=timestamp,
            payload=self.payload or {},
        )


class EventAcceptedResponse(BaseModel):
    status: str = "accepted"


class EventStatsResponse(BaseModel):
    dedup_cache_size: int
    retry: dict[str, int]


class ManualRetryResponse(BaseModel):
    job_id: str
    success: bool
