from __future__ import annotations

from typing import Protocol

import aioboto3
import httpx
from aiobotocore.config import AioConfig
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import Settings, settings
from app.core.logger import get_logger
from app.services.webhook_publisher import WebhookNotificationPublisher

logger = get_logger(component="NotificationPublisher")


class NotificationPublisher(Protocol):
    """Delivery capability: returns True when the channel accepted the message."""

    async def publish(self, message: str) -> bool: ...


class SnsNotificationPublisher:
    def __init__(
        self,
        *,
        topic_arn: str | None,
        region_name: str,
        subject: str = "Home-Assistant-Event",
        timeout_seconds: float = 10.0,
        endpoint_url: str | None = None,
        session: aioboto3.Session | None = None,
    ) -> None:
        self._topic_arn = topic_arn
        self._region_name = region_name
        self._subject = subject
        self._endpoint_url = endpoint_url
        self._config = AioConfig(
            connect_timeout=timeout_seconds,
            read_timeout=timeout_seconds,
            retries={"max_attempts": 1},
        )
        self._session = session or aioboto3.Session()
        if not topic_arn:
            logger.error("AWS_SNS_TOPIC_ARN is not configured, notifications will fail")

    async def publish(self, message: str) -> bool:
        if not self._topic_arn:
            logger.error("AWS_SNS_TOPIC_ARN is missing, cannot publish notification")
            return False

        try:
            async with self._session.client(
                "sns",
                region_name=self._region_name,
                endpoint_url=self._endpoint_url,
                config=self._config,
            ) as sns_client:
                response = await sns_client.publish(
                    TopicArn=self._topic_arn,
                    Message=message,
                    Subject=self._subject,
                )
        except (BotoCoreError, ClientError) as exc:
            logger.error("Error sending SNS message", error=str(exc))
            return False

        logger.info("Notification published", message_id=response.get("MessageId"))
        return True


def build_aws_session(config: Settings = settings) -> aioboto3.Session:
    return aioboto3.Session(
        profile_name=config.aws_profile,
        aws_access_key_id=config.aws_access_key_id,
        aws_secret_access_key=config.aws_secret_access_key,
        aws_session_token=config.aws_session_token,
    )


def build_publisher_from_settings(config: Settings = settings) -> NotificationPublisher:
    """Pick the delivery channel configured by NOTIFICATION_CHANNEL."""
    if config.notification_channel == "webhook":
        return WebhookNotificationPublisher(
            httpx.AsyncClient(),
            url=str(config.notification_webhook_url) if config.notification_webhook_url else None,
            subject=config.notification_subject,
            timeout_seconds=config.notification_timeout_seconds,
        )

    return SnsNotificationPublisher(
        topic_arn=config.sns_topic_arn,
        region_name=config.aws_region,
        subject=config.notification_subject,
        timeout_seconds=config.notification_timeout_seconds,
        endpoint_url=str(config.sns_endpoint_url) if config.sns_endpoint_url else None,
        session=build_aws_session(config),
    )
