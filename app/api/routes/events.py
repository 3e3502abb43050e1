from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.responses import PlainTextResponse

from app.api.dependencies import get_dedup_cache, get_delivery_orchestrator, get_retry_driver
from app.core.logger import get_logger
from app.schemas.event import EventAcceptedResponse, EventLogRequest, EventStatsResponse, ManualRetryResponse
from app.services.dedup_cache import DeduplicationCache
from app.services.delivery_orchestrator import DeliveryOrchestrator
from app.services.message_renderer import render_notification_message
from app.services.retry_scheduler import RetryJobNotFoundError
from app.workers.retry_driver import RetryDriver

logger = get_logger(component="EventsAPI")

router = APIRouter(prefix="/events", tags=["events"])


@router.post("", response_model=EventAcceptedResponse, status_code=status.HTTP_202_ACCEPTED)
async def create_event(
    payload: EventLogRequest,
    orchestrator: DeliveryOrchestrator = Depends(get_delivery_orchestrator),
):
    event = payload.to_event()
    # Intake is decoupled from delivery: the caller gets 202 whatever the outcome.
    delivered = await orchestrator.process(event, render_notification_message(event))
    logger.info("Event accepted", source=event.source, event_type=event.event_type.value, delivered=delivered)
    return EventAcceptedResponse()


@router.get("/health", response_class=PlainTextResponse)
async def health_check() -> str:
    return "Ok"


@router.get("/stats", response_model=EventStatsResponse)
async def get_stats(
    dedup_cache: DeduplicationCache = Depends(get_dedup_cache),
    retry_driver: RetryDriver = Depends(get_retry_driver),
):
    return EventStatsResponse(dedup_cache_size=dedup_cache.size(), retry=retry_driver.stats())


@router.post("/retries/{job_id}", response_model=ManualRetryResponse)
async def retry_job(
    job_id: str,
    retry_driver: RetryDriver = Depends(get_retry_driver),
):
    if retry_driver.find_due_job(job_id) is None:
        raise RetryJobNotFoundError(f"Retry job {job_id} not found or not yet due")
    success = await retry_driver.retry_job(job_id)
    return ManualRetryResponse(job_id=job_id, success=success)
