from __future__ import annotations
from datetime import timedelta
from functools import lru_cache

from app.core.config import settings
from app.events.publisher import NotificationPublisher, build_publisher_from_settings
from app.services.dedup_cache import DeduplicationCache
from app.services.delivery_orchestrator import DeliveryOrchestrator
from app.services.hashing_service import HashingService
from app.services.retry_scheduler import RetryScheduler
from app.workers.retry_driver import RetryDriver


@lru_cache(maxsize=1)
def get_notification_publisher() -> NotificationPublisher:
    return build_publisher_from_settings(settings)


@lru_cache(maxsize=1)
def get_dedup_cache() -> DeduplicationCache:
    return DeduplicationCache(
        ttl=timedelta(minutes=settings.dedup_ttl_minutes),
        max_size=settings.dedup_max_cache_size,
        enabled=settings.dedup_enabled,
        hashing_service=HashingService(),
    )


@lru_cache(maxsize=1)
def get_retry_scheduler() -> RetryScheduler:
    return RetryScheduler(
        enabled=settings.retry_enabled,
        max_attempts=settings.retry_max_attempts,
        initial_delay=timedelta(seconds=settings.retry_initial_delay_seconds),
        backoff_multiplier=settings.retry_backoff_multiplier,
        max_age=timedelta(hours=settings.retry_max_age_hours),
    )


@lru_cache(maxsize=1)
def get_delivery_orchestrator() -> DeliveryOrchestrator:
    return DeliveryOrchestrator(
        publisher=get_notification_publisher(),
        dedup_cache=get_dedup_cache(),
        retry_scheduler=get_retry_scheduler(),
    )


@lru_cache(maxsize=1)
def get_retry_driver() -> RetryDriver:
    return RetryDriver(retry_scheduler=get_retry_scheduler(), orchestrator=get_delivery_orchestrator())
