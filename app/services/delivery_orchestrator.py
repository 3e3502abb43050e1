from __future__ import annotations

from app.core.clock import Clock, SystemClock
from app.core.logger import get_logger
from app.events.publisher import NotificationPublisher
from app.models.event import Event
from app.models.retry import RetryableJob
from app.services.dedup_cache import DeduplicationCache
from app.services.retry_scheduler import RetryScheduler

logger = get_logger(component="DeliveryOrchestrator")

PUBLISHER_RETURNED_FALSE = "Notification publisher returned false"


class DeliveryOrchestrator:
    """
    Runs the intake side of the pipeline for a single event.

    Duplicates are dropped before any delivery. New events are recorded in the
    dedup cache *before* the delivery attempt so that a duplicate arriving while
    delivery is in flight is still caught. A failed first attempt is handed to
    the retry scheduler; the caller only learns that the immediate attempt failed.
    """

    def __init__(
        self,
        *,
        publisher: NotificationPublisher,
        dedup_cache: DeduplicationCache,
        retry_scheduler: RetryScheduler,
        clock: Clock | None = None,
    ) -> None:
        self.publisher = publisher
        self.dedup_cache = dedup_cache
        self.retry_scheduler = retry_scheduler
        self._clock = clock or SystemClock()

    async def deliver(self, message: str) -> bool:
        """Single delivery attempt. A publisher that raises counts as a failure."""
        success, _ = await self._publish(message)
        return success

    async def _publish(self, message: str) -> tuple[bool, str | None]:
        try:
            result = await self.publisher.publish(message)
        except Exception as exc:
            logger.exception("Notification publisher raised", error=str(exc))
            return False, f"Exception: {exc}"

        if result:
            logger.debug("Notification published successfully")
            return True, None
        logger.warning("Failed to publish notification")
        return False, PUBLISHER_RETURNED_FALSE

    async def process(self, event: Event, message: str) -> bool:
        logger.info("Processing event", source=event.source, event_type=event.event_type.value)

        if self.dedup_cache.is_duplicate(event):
            logger.info("Duplicate event skipped", source=event.source, event_type=event.event_type.value)
            return False

        self.dedup_cache.record(self.dedup_cache.fingerprint(event))

        success, error = await self._publish(message)
        if success:
            logger.info("Notification sent", source=event.source)
            return True

        logger.warning("Initial notification publish failed", source=event.source, error=error)
        if not self.retry_scheduler.enabled:
            logger.debug("Retry disabled, not scheduling retry for failed notification")
            return False

        self._schedule_retry(event, message, error)
        return False

    def _schedule_retry(self, event: Event, message: str, error: str | None) -> None:
        try:
            now = self._clock.now()
            job = RetryableJob(
                original_event=event,
                message=message,
                attempt_count=0,
                max_attempts=self.retry_scheduler.max_attempts,
                next_retry_at=now,
                created_at=now,
                last_error=error,
            )
            self.retry_scheduler.schedule(job)
        except Exception as exc:
            logger.exception("Failed to schedule retry", source=event.source, error=str(exc))
            return

        logger.info("Scheduled retry for failed notification", source=event.source, job_id=job.id)
