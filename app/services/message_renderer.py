from __future__ import annotations

import json

from app.models.event import Event


def render_notification_message(event: Event) -> str:
    payload = json.dumps(event.payload, ensure_ascii=False)
    return "\n".join(
        (
            "New Home Assistant event:",
            f"Source: {event.source}",
            f"Type: {event.event_type.value}",
            f"Timestamp: {event.timestamp.isoformat()}",
            f"Payload: {payload}",
        )
    )
