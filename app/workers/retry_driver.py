"""Background retry driver that re-delivers notifications whose backoff has elapsed."""

from __future__ import annotations

from app.core.config import Settings, settings
from app.core.logger import get_logger
from app.models.retry import RetryableJob
from app.services.dedup_cache import DeduplicationCache
from app.services.delivery_orchestrator import PUBLISHER_RETURNED_FALSE, DeliveryOrchestrator
from app.services.retry_scheduler import RetryScheduler
from app.workers.periodic import PeriodicWorker

logger = get_logger(component="RetryDriver")


class RetryDriver:
    """
    Drains due jobs from the RetryScheduler and re-invokes delivery.

    Each job is handled in isolation: a failure or exception on one job is
    recorded against that job and never stops the rest of the pass.
    """

    def __init__(self, *, retry_scheduler: RetryScheduler, orchestrator: DeliveryOrchestrator) -> None:
        self._retry_scheduler = retry_scheduler
        self._orchestrator = orchestrator

    async def process_due_jobs(self) -> int:
        """Attempt every due job once and return how many were processed."""
        if not self._retry_scheduler.enabled:
            return 0

        jobs = self._retry_scheduler.due_jobs()
        if not jobs:
            logger.debug("No jobs ready for retry")
            return 0

        logger.info("Processing jobs ready for retry", count=len(jobs))
        for job in jobs:
            await self._attempt(job, failure_reason=PUBLISHER_RETURNED_FALSE)
        return len(jobs)

    async def retry_job(self, job_id: str) -> bool:
        """
        Manually retry a single job.

        Only jobs that are currently due are eligible; an unknown or not yet
        due job id is reported as not found and returns False.
        """
        if not self._retry_scheduler.enabled:
            logger.warning("Retry disabled, cannot process manual retry", job_id=job_id)
            return False

        job = self.find_due_job(job_id)
        if job is None:
            logger.warning("Job not found in ready-for-retry list", job_id=job_id)
            return False

        success = await self._attempt(job, failure_reason="Manual retry failed")
        logger.info("Manual retry completed", job_id=job_id, success=success)
        return success

    def find_due_job(self, job_id: str) -> RetryableJob | None:
        return next((job for job in self._retry_scheduler.due_jobs() if job.id == job_id), None)

    async def _attempt(self, job: RetryableJob, *, failure_reason: str) -> bool:
        logger.info(
            "Attempting retry",
            job_id=job.id,
            attempt=job.attempt_count + 1,
            max_attempts=job.max_attempts,
            source=job.original_event.source,
        )
        try:
            success = await self._orchestrator.deliver(job.message)
            self._retry_scheduler.complete(job.id, success, None if success else failure_reason)
        except Exception as exc:
            logger.exception("Exception during retry attempt", job_id=job.id, error=str(exc))
            self._retry_scheduler.complete(job.id, False, f"Exception: {exc}")
            return False
        return success

    def stats(self) -> dict[str, int]:
        return self._retry_scheduler.stats()


def build_retry_workers(
    *,
    driver: RetryDriver,
    retry_scheduler: RetryScheduler,
    dedup_cache: DeduplicationCache,
    config: Settings = settings,
) -> list[PeriodicWorker]:
    """
    Build the periodic workers for retry draining and both cleanup sweeps.

    Returns an empty list when background workers are disabled via
    ENABLE_BACKGROUND_WORKERS.
    """
    if not config.enable_background_workers:
        logger.info("Background workers disabled via ENABLE_BACKGROUND_WORKERS")
        return []

    workers = [
        PeriodicWorker(
            name="dedup-cleanup",
            task=dedup_cache.cleanup,
            interval_seconds=config.dedup_cleanup_interval_minutes * 60,
        ),
    ]
    if config.retry_enabled:
        workers.append(
            PeriodicWorker(
                name="retry-driver",
                task=driver.process_due_jobs,
                interval_seconds=config.retry_driver_interval_seconds,
            )
        )
        workers.append(
            PeriodicWorker(
                name="retry-cleanup",
                task=retry_scheduler.cleanup,
                interval_seconds=config.retry_cleanup_interval_minutes * 60,
            )
        )
    return workers
