"""Tests for event fingerprinting."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from app.models.event import Event, EventType
from app.services.hashing_service import HashingService


@pytest.fixture
def hashing_service() -> HashingService:
    return HashingService()


def test_identical_events_share_digest(hashing_service):
    first = Event(source="sensor-1", event_type=EventType.WARNING, payload={"t": 25.0})
    second = Event(
        source="sensor-1",
        event_type=EventType.WARNING,
        payload={"t": 25.0},
        timestamp=datetime.now(tz=timezone.utc) + timedelta(hours=1),
    )

    assert hashing_service.fingerprint(first).digest == hashing_service.fingerprint(second).digest


def test_payload_key_order_does_not_matter(hashing_service):
    first = Event(source="sensor-1", event_type=EventType.INFO, payload={"a": 1, "b": {"x": 1, "y": 2}})
    second = Event(source="sensor-1", event_type=EventType.INFO, payload={"b": {"y": 2, "x": 1}, "a": 1})

    assert hashing_service.fingerprint(first).digest == hashing_service.fingerprint(second).digest


def test_digest_is_sha256_hex(hashing_service, sensor_event):
    digest = hashing_service.fingerprint(sensor_event).digest

    assert len(digest) == 64
    assert all(char in "0123456789abcdef" for char in digest)


def test_digest_is_stable_across_instances(sensor_event):
    assert HashingService().fingerprint(sensor_event).digest == HashingService().fingerprint(sensor_event).digest


def test_differing_events_produce_distinct_digests(hashing_service):
    base = {"source": "sensor-1", "event_type": EventType.WARNING, "payload": {"t": 25.0}}
    variants = [
        Event(**base),
        Event(**{**base, "source": "sensor-2"}),
        Event(**{**base, "event_type": EventType.ERROR}),
        Event(**{**base, "payload": {"t": 25.1}}),
        Event(**{**base, "payload": {"t": "25.0"}}),
        Event(**{**base, "payload": {"t": 25.0, "unit": "C"}}),
        Event(**{**base, "payload": {}}),
        Event(**{**base, "source": "sensor-1:WARNING"}),
    ]

    digests = {hashing_service.fingerprint(event).digest for event in variants}
    assert len(digests) == len(variants)


def test_fingerprint_carries_event_identity(hashing_service, sensor_event):
    created_at = datetime(2024, 5, 1, tzinfo=timezone.utc)

    fingerprint = hashing_service.fingerprint(sensor_event, created_at=created_at)

    assert fingerprint.source == "sensor-1"
    assert fingerprint.event_type == EventType.WARNING
    assert fingerprint.created_at == created_at


def test_fingerprint_uses_injected_clock(clock, sensor_event):
    fingerprint = HashingService(clock=clock).fingerprint(sensor_event)

    assert fingerprint.created_at == clock.now()


def test_value_and_its_string_form_do_not_collide(hashing_service):
    pairs = [
        (1.5, "1.5"),
        (25, "25"),
        (True, "true"),
        (None, "null"),
        ([1, 2], "[1, 2]"),
        ({"x": 1}, '{"x": 1}'),
    ]

    for value, rendered in pairs:
        native = Event(source="sensor-1", event_type=EventType.INFO, payload={"v": value})
        as_string = Event(source="sensor-1", event_type=EventType.INFO, payload={"v": rendered})
        assert hashing_service.fingerprint(native).digest != hashing_service.fingerprint(as_string).digest, value


@pytest.mark.parametrize(
    "value",
    [datetime(2024, 1, 1, tzinfo=timezone.utc), Decimal("1.5"), {1, 2}],
)
def test_event_payload_rejects_non_json_values(value):
    with pytest.raises(ValidationError):
        Event(source="sensor-1", event_type=EventType.INFO, payload={"v": value})


def test_canonical_content_refuses_to_stringify_non_json_values():
    moment = datetime(2024, 1, 1, tzinfo=timezone.utc)
    event = Event.model_construct(source="sensor-1", event_type=EventType.INFO, payload={"at": moment})

    with pytest.raises(TypeError):
        HashingService.canonical_content(event)
