"""Tests for the SNS and webhook notification publishers."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from app.core.config import Settings
from app.events.publisher import SnsNotificationPublisher, build_publisher_from_settings
from app.services.webhook_publisher import WebhookNotificationPublisher

TOPIC_ARN = "arn:aws:sns:us-east-1:000000000000:test-topic"


def _mock_session(sns_client: MagicMock) -> MagicMock:
    client_context = MagicMock()
    client_context.__aenter__ = AsyncMock(return_value=sns_client)
    client_context.__aexit__ = AsyncMock(return_value=False)
    session = MagicMock()
    session.client.return_value = client_context
    return session


# ==================== SNS ====================


@pytest.mark.anyio("asyncio")
async def test_sns_publish_success():
    sns_client = MagicMock()
    sns_client.publish = AsyncMock(return_value={"MessageId": "msg-1"})
    session = _mock_session(sns_client)
    publisher = SnsNotificationPublisher(topic_arn=TOPIC_ARN, region_name="us-east-1", session=session)

    assert await publisher.publish("hello") is True
    sns_client.publish.assert_awaited_once_with(TopicArn=TOPIC_ARN, Message="hello", Subject="Home-Assistant-Event")
    assert session.client.call_args.args == ("sns",)
    assert session.client.call_args.kwargs["region_name"] == "us-east-1"


@pytest.mark.anyio("asyncio")
async def test_sns_client_error_returns_false():
    sns_client = MagicMock()
    sns_client.publish = AsyncMock(
        side_effect=ClientError({"Error": {"Code": "Throttling", "Message": "slow down"}}, "Publish")
    )
    publisher = SnsNotificationPublisher(
        topic_arn=TOPIC_ARN, region_name="us-east-1", session=_mock_session(sns_client)
    )

    assert await publisher.publish("hello") is False


@pytest.mark.anyio("asyncio")
async def test_sns_connection_error_returns_false():
    sns_client = MagicMock()
    sns_client.publish = AsyncMock(side_effect=EndpointConnectionError(endpoint_url="https://sns.local"))
    publisher = SnsNotificationPublisher(
        topic_arn=TOPIC_ARN, region_name="us-east-1", session=_mock_session(sns_client)
    )

    assert await publisher.publish("hello") is False


@pytest.mark.anyio("asyncio")
async def test_sns_missing_topic_returns_false():
    session = MagicMock()
    publisher = SnsNotificationPublisher(topic_arn=None, region_name="us-east-1", session=session)

    assert await publisher.publish("hello") is False
    session.client.assert_not_called()


# ==================== Webhook ====================


@pytest.mark.anyio("asyncio")
async def test_webhook_publish_success():
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(202)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        publisher = WebhookNotificationPublisher(client, url="http://hooks.test/notify", subject="Alerts")
        assert await publisher.publish("hello") is True

    body = json.loads(captured[0].content)
    assert body["subject"] == "Alerts"
    assert body["message"] == "hello"
    assert "sent_at" in body


@pytest.mark.anyio("asyncio")
async def test_webhook_error_status_returns_false():
    async with httpx.AsyncClient(transport=httpx.MockTransport(lambda _: httpx.Response(503))) as client:
        publisher = WebhookNotificationPublisher(client, url="http://hooks.test/notify")
        assert await publisher.publish("hello") is False


@pytest.mark.anyio("asyncio")
async def test_webhook_transport_error_returns_false():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        publisher = WebhookNotificationPublisher(client, url="http://hooks.test/notify")
        assert await publisher.publish("hello") is False


@pytest.mark.anyio("asyncio")
async def test_webhook_missing_url_returns_false():
    client = MagicMock(spec=httpx.AsyncClient)
    publisher = WebhookNotificationPublisher(client, url=None)

    assert await publisher.publish("hello") is False
    client.post.assert_not_called()


# ==================== Factory ====================


def test_factory_builds_sns_publisher():
    config = Settings(AWS_REGION="us-east-1", NOTIFICATION_CHANNEL="sns", AWS_SNS_TOPIC_ARN=TOPIC_ARN)

    assert isinstance(build_publisher_from_settings(config), SnsNotificationPublisher)


def test_factory_builds_webhook_publisher():
    config = Settings(
        AWS_REGION="us-east-1",
        NOTIFICATION_CHANNEL="webhook",
        NOTIFICATION_WEBHOOK_URL="http://hooks.test/notify",
    )

    assert isinstance(build_publisher_from_settings(config), WebhookNotificationPublisher)


def test_factory_uses_credentials_from_given_config():
    config = Settings(
        AWS_REGION="eu-west-1",
        AWS_SNS_TOPIC_ARN=TOPIC_ARN,
        AWS_ACCESS_KEY_ID="custom-key",
        AWS_SECRET_ACCESS_KEY="custom-secret",
        AWS_SESSION_TOKEN="custom-token",
        AWS_PROFILE="relay",
    )

    with patch("app.events.publisher.aioboto3.Session") as session_cls:
        publisher = build_publisher_from_settings(config)

    session_cls.assert_called_once_with(
        profile_name="relay",
        aws_access_key_id="custom-key",
        aws_secret_access_key="custom-secret",
        aws_session_token="custom-token",
    )
    assert publisher._session is session_cls.return_value
    assert publisher._region_name == "eu-west-1"
