import logging
import sys
from typing import Any

import structlog

from app.core.config import settings

_NOISY_LOGGERS = ("botocore", "aiobotocore", "boto3", "urllib3", "httpx")


def _configure_stdlib_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        stream=sys.stdout,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def configure_logging(*, level: str | None = None, log_format: str | None = None) -> None:
    level = level or settings.log_level
    log_format = log_format or settings.log_format
    _configure_stdlib_logging(level)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if log_format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(**initial_values: Any) -> structlog.stdlib.BoundLogger:
    logger = structlog.get_logger()
    if initial_values:
        logger = logger.bind(**initial_values)
    return logger
