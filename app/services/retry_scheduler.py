from __future__ import annotations

import threading
from datetime import timedelta

from app.core.clock import Clock, SystemClock
from app.core.logger import get_logger
from app.models.retry import CompletedJob, JobOutcome, RetryableJob

logger = get_logger(component="RetryScheduler")

MAX_ATTEMPTS_EXCEEDED = "Max attempts exceeded"
UNKNOWN_ERROR = "Unknown error"


class RetryJobNotFoundError(Exception):
    """Raised when a retry job id is unknown or not currently due."""


class RetryScheduler:
    """
    Owns the set of in-flight retry jobs and their terminal history.

    A job is either scheduled (waiting for ``next_retry_at``) or completed with
    a ``JobOutcome``. Jobs are immutable values; each transition replaces the
    stored value for the job id. Completed jobs are kept only for ``stats()``
    and are pruned by ``cleanup()`` after ``max_age``.
    """

    def __init__(
        self,
        *,
        enabled: bool = True,
        max_attempts: int = 3,
        initial_delay: timedelta = timedelta(seconds=1),
        backoff_multiplier: float = 2.0,
        max_age: timedelta = timedelta(hours=24),
        clock: Clock | None = None,
    ) -> None:
        self._enabled = enabled
        self._max_attempts = max_attempts
        self._initial_delay = initial_delay
        self._backoff_multiplier = backoff_multiplier
        self._max_age = max_age
        self._clock = clock or SystemClock()
        self._scheduled: dict[str, RetryableJob] = {}
        self._completed: dict[str, CompletedJob] = {}
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def schedule(self, job: RetryableJob) -> None:
        if not self._enabled:
            logger.debug("Retry disabled, discarding job", job_id=job.id)
            return

        if job.has_exceeded_max_attempts():
            logger.warning(
                "Job exceeded max attempts, marking as permanently failed",
                job_id=job.id,
                max_attempts=job.max_attempts,
            )
            failed = job.model_copy(update={"last_error": job.last_error or MAX_ATTEMPTS_EXCEEDED})
            self._finish(failed, JobOutcome.FAILED)
            return

        with self._lock:
            self._scheduled[job.id] = job
        logger.info(
            "Scheduled retry",
            job_id=job.id,
            attempt=job.attempt_count + 1,
            max_attempts=job.max_attempts,
            next_retry_at=job.next_retry_at.isoformat(),
        )

    def due_jobs(self) -> list[RetryableJob]:
        if not self._enabled:
            return []

        now = self._clock.now()
        with self._lock:
            due = [job for job in self._scheduled.values() if job.is_due(now)]

        if due:
            logger.debug("Found jobs ready for retry", count=len(due))
        return due

    def complete(self, job_id: str, success: bool, error: str | None = None) -> None:
        with self._lock:
            job = self._scheduled.pop(job_id, None)

        if job is None:
            logger.warning("Attempted to complete unknown retry job", job_id=job_id)
            return

        if success:
            logger.info("Retry succeeded", job_id=job_id, attempts=job.attempt_count + 1)
            self._finish(job.model_copy(update={"last_error": None}), JobOutcome.SUCCEEDED)
            return

        error = error or UNKNOWN_ERROR
        if job.attempt_count + 1 >= job.max_attempts:
            logger.error(
                "Job permanently failed",
                job_id=job_id,
                attempts=job.attempt_count + 1,
                last_error=error,
            )
            failed = job.model_copy(update={"attempt_count": job.attempt_count + 1, "last_error": error})
            self._finish(failed, JobOutcome.FAILED)
            return

        next_job = job.next_attempt(
            error=error,
            now=self._clock.now(),
            base_delay=self._initial_delay,
            multiplier=self._backoff_multiplier,
        )
        self.schedule(next_job)

    def _finish(self, job: RetryableJob, outcome: JobOutcome) -> None:
        record = CompletedJob(job=job, outcome=outcome, completed_at=self._clock.now())
        with self._lock:
            self._completed[job.id] = record

    def cleanup(self) -> tuple[int, int]:
        """Drop scheduled and completed jobs older than ``max_age``."""
        if not self._enabled:
            return 0, 0

        now = self._clock.now()
        with self._lock:
            expired_scheduled = [
                job_id for job_id, job in self._scheduled.items() if job.is_expired(now, self._max_age)
            ]
            for job_id in expired_scheduled:
                del self._scheduled[job_id]

            expired_completed = [
                job_id
                for job_id, record in self._completed.items()
                if record.job.is_expired(now, self._max_age)
            ]
            for job_id in expired_completed:
                del self._completed[job_id]

            scheduled_count = len(self._scheduled)
            completed_count = len(self._completed)

        for job_id in expired_scheduled:
            logger.info("Removed expired scheduled retry", job_id=job_id)

        if expired_scheduled or expired_completed:
            logger.info(
                "Retry cleanup completed",
                removed_scheduled=len(expired_scheduled),
                removed_completed=len(expired_completed),
                scheduled=scheduled_count,
                completed=completed_count,
            )
        return len(expired_scheduled), len(expired_completed)

    def get(self, job_id: str) -> RetryableJob | None:
        with self._lock:
            return self._scheduled.get(job_id)

    def outcome(self, job_id: str) -> JobOutcome | None:
        with self._lock:
            record = self._completed.get(job_id)
        return record.outcome if record else None

    def scheduled_count(self) -> int:
        with self._lock:
            return len(self._scheduled)

    def stats(self) -> dict[str, int]:
        with self._lock:
            scheduled = list(self._scheduled.values())
            completed = list(self._completed.values())

        # Bucket scheduled jobs by the retry attempt they are waiting for.
        stats: dict[str, int] = {"scheduled_total": len(scheduled)}
        for attempt in range(1, self._max_attempts + 1):
            stats[f"scheduled_attempt_{attempt}"] = 0
        for job in scheduled:
            key = f"scheduled_attempt_{job.attempt_count + 1}"
            stats[key] = stats.get(key, 0) + 1

        successful = sum(1 for record in completed if record.outcome is JobOutcome.SUCCEEDED)
        stats["completed_total"] = len(completed)
        stats["completed_successful"] = successful
        stats["completed_failed"] = len(completed) - successful
        return stats
