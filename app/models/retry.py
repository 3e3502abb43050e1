from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum as PyEnum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from app.models.event import Event


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class JobOutcome(str, PyEnum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class RetryableJob(BaseModel):
    """
    One notification delivery lineage awaiting retry.

    Jobs are frozen: every state transition produces a new value via
    ``model_copy`` which replaces the previous one by ``id`` in the scheduler.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    original_event: Event
    message: str
    attempt_count: int = Field(0, ge=0)
    max_attempts: int = Field(3, gt=0)
    next_retry_at: datetime = Field(default_factory=_utcnow)
    created_at: datetime = Field(default_factory=_utcnow)
    last_error: str | None = None

    def has_exceeded_max_attempts(self) -> bool:
        return self.attempt_count >= self.max_attempts

    def is_due(self, now: datetime) -> bool:
        return self.next_retry_at <= now

    def is_expired(self, now: datetime, max_age: timedelta) -> bool:
        return now - self.created_at >= max_age

    def backoff_delay(self, *, base_delay: timedelta, multiplier: float) -> timedelta:
        """Delay before the next attempt: ``base * multiplier ** attempt_count``."""
        return base_delay * (multiplier**self.attempt_count)

    def next_attempt(
        self,
        *,
        error: str,
        now: datetime,
        base_delay: timedelta,
        multiplier: float,
    ) -> RetryableJob:
        delay = self.backoff_delay(base_delay=base_delay, multiplier=multiplier)
        return self.model_copy(
            update={
                "attempt_count": self.attempt_count + 1,
                "next_retry_at": now + delay,
                "last_error": error,
            }
        )


class CompletedJob(BaseModel):
    """A job that reached a terminal state, retained for stats only."""

    model_config = ConfigDict(frozen=True)

    job: RetryableJob
    outcome: JobOutcome
    completed_at: datetime
