from __future__ import annotations

from datetime import datetime, timezone

import httpx

from app.core.logger import get_logger

logger = get_logger(component="WebhookNotificationPublisher")


class WebhookNotificationPublisher:
    """Delivers notifications by POSTing them to an HTTP endpoint."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        url: str | None,
        subject: str = "Home-Assistant-Event",
        timeout_seconds: float = 10.0,
    ) -> None:
        self.http_client = http_client
        self._url = url
        self._subject = subject
        self._timeout_seconds = timeout_seconds
        if not url:
            logger.error("NOTIFICATION_WEBHOOK_URL is not configured, notifications will fail")

    async def publish(self, message: str) -> bool:
        """
        POST the message as JSON to the configured webhook.

        Any 2xx response counts as accepted. Non-2xx responses and transport
        errors (including timeouts) are reported as a failed delivery.
        """
        if not self._url:
            logger.error("NOTIFICATION_WEBHOOK_URL is missing, cannot publish notification")
            return False

        payload = {
            "subject": self._subject,
            "message": message,
            "sent_at": datetime.now(tz=timezone.utc).isoformat(),
        }

        try:
            response = await self.http_client.post(self._url, json=payload, timeout=self._timeout_seconds)
        except httpx.HTTPError as e:
            logger.error("Error delivering webhook notification", url=self._url, error=str(e))
            return False

        if response.is_success:
            logger.info("Notification delivered to webhook", status_code=response.status_code)
            return True

        logger.error(
            "Webhook rejected notification",
            status_code=response.status_code,
            response=response.text,
        )
        return False
