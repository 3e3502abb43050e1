from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

# Ensure environment variables are set before application settings are imported.
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("AWS_REGION", "us-east-1")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "test-access-key")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "test-secret-key")
os.environ.setdefault("AWS_SNS_TOPIC_ARN", "arn:aws:sns:us-east-1:000000000000:test-topic")
os.environ.setdefault("ENABLE_BACKGROUND_WORKERS", "false")
os.environ.setdefault("LOG_FORMAT", "text")

from app.api import dependencies as dependencies_module
from app.core.clock import ManualClock
from app.events.publisher import SnsNotificationPublisher
from app.main import create_app
from app.models.event import Event, EventType
from app.services.dedup_cache import DeduplicationCache
from app.services.delivery_orchestrator import DeliveryOrchestrator
from app.services.retry_scheduler import RetryScheduler
from app.workers.retry_driver import RetryDriver


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def sensor_event() -> Event:
    return Event(source="sensor-1", event_type=EventType.WARNING, payload={"t": 25.0})


@pytest.fixture
def dedup_cache(clock) -> DeduplicationCache:
    return DeduplicationCache(ttl=timedelta(minutes=5), max_size=100, clock=clock)


@pytest.fixture
def retry_scheduler(clock) -> RetryScheduler:
    return RetryScheduler(
        max_attempts=3,
        initial_delay=timedelta(seconds=1),
        backoff_multiplier=2.0,
        max_age=timedelta(hours=24),
        clock=clock,
    )


@pytest.fixture
def mock_publisher() -> MagicMock:
    publisher = MagicMock(spec=SnsNotificationPublisher)
    publisher.publish = AsyncMock(return_value=True)
    return publisher


@pytest.fixture
def orchestrator(mock_publisher, dedup_cache, retry_scheduler, clock) -> DeliveryOrchestrator:
    return DeliveryOrchestrator(
        publisher=mock_publisher,
        dedup_cache=dedup_cache,
        retry_scheduler=retry_scheduler,
        clock=clock,
    )


@pytest.fixture
def retry_driver(retry_scheduler, orchestrator) -> RetryDriver:
    return RetryDriver(retry_scheduler=retry_scheduler, orchestrator=orchestrator)


@pytest.fixture
def app_environment(orchestrator, dedup_cache, retry_driver) -> dict[str, object]:
    app = create_app()

    # Clear cached singletons so every test gets its own wiring.
    dependencies_module.get_notification_publisher.cache_clear()
    dependencies_module.get_dedup_cache.cache_clear()
    dependencies_module.get_retry_scheduler.cache_clear()
    dependencies_module.get_delivery_orchestrator.cache_clear()
    dependencies_module.get_retry_driver.cache_clear()

    app.dependency_overrides[dependencies_module.get_delivery_orchestrator] = lambda: orchestrator
    app.dependency_overrides[dependencies_module.get_dedup_cache] = lambda: dedup_cache
    app.dependency_overrides[dependencies_module.get_retry_driver] = lambda: retry_driver

    return {"app_instance": app, "orchestrator": orchestrator}


@pytest.fixture
async def async_client(app_environment) -> AsyncGenerator[AsyncClient, None]:
    app = app_environment["app_instance"]
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"
