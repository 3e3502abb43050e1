from functools import lru_cache
from typing import Literal

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    project_name: str = "Event Notification Relay"
    environment: Literal["local", "dev", "staging", "prod", "test"] = Field("local", alias="ENVIRONMENT")
    api_v1_prefix: str = "/api/v1"

    # Duplicate filter
    dedup_enabled: bool = Field(True, alias="DEDUP_ENABLED")
    dedup_ttl_minutes: int = Field(5, alias="DEDUP_TTL_MINUTES", ge=0)
    dedup_max_cache_size: int = Field(1000, alias="DEDUP_MAX_CACHE_SIZE", gt=0)
    dedup_cleanup_interval_minutes: int = Field(10, alias="DEDUP_CLEANUP_INTERVAL_MINUTES", gt=0)

    # Retry policy
    retry_enabled: bool = Field(True, alias="RETRY_ENABLED")
    retry_max_attempts: int = Field(3, alias="RETRY_MAX_ATTEMPTS", gt=0)
    retry_initial_delay_seconds: int = Field(1, alias="RETRY_INITIAL_DELAY_SECONDS", ge=0)
    retry_backoff_multiplier: float = Field(2.0, alias="RETRY_BACKOFF_MULTIPLIER", ge=1.0)
    retry_cleanup_interval_minutes: int = Field(60, alias="RETRY_CLEANUP_INTERVAL_MINUTES", gt=0)
    retry_driver_interval_seconds: int = Field(30, alias="RETRY_DRIVER_INTERVAL_SECONDS", gt=0)
    retry_max_age_hours: int = Field(24, alias="RETRY_MAX_AGE_HOURS", gt=0)

    # Background workers (retry driver + cleanup sweeps)
    enable_background_workers: bool = Field(True, alias="ENABLE_BACKGROUND_WORKERS")

    # Notification delivery
    notification_channel: Literal["sns", "webhook"] = Field("sns", alias="NOTIFICATION_CHANNEL")
    notification_subject: str = Field("Home-Assistant-Event", alias="NOTIFICATION_SUBJECT")
    notification_timeout_seconds: float = Field(10.0, alias="NOTIFICATION_TIMEOUT_SECONDS", gt=0)
    notification_webhook_url: AnyHttpUrl | None = Field(default=None, alias="NOTIFICATION_WEBHOOK_URL")

    # AWS / SNS
    aws_region: str = Field(..., alias="AWS_REGION")
    aws_profile: str | None = Field(default=None, alias="AWS_PROFILE")
    aws_access_key_id: str | None = Field(default=None, alias="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: str | None = Field(default=None, alias="AWS_SECRET_ACCESS_KEY")
    aws_session_token: str | None = Field(default=None, alias="AWS_SESSION_TOKEN")
    sns_topic_arn: str | None = Field(default=None, alias="AWS_SNS_TOPIC_ARN")
    sns_endpoint_url: AnyHttpUrl | None = Field(default=None, alias="AWS_SNS_ENDPOINT_URL")

    # Observability
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_format: Literal["json", "text"] = Field("json", alias="LOG_FORMAT")

    @field_validator(
        "aws_profile",
        "aws_access_key_id",
        "aws_secret_access_key",
        "aws_session_token",
        "sns_topic_arn",
        "sns_endpoint_url",
        "notification_webhook_url",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, value: str | None):
        if isinstance(value, str) and value.strip() == "":
            return None
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]


settings = get_settings()
