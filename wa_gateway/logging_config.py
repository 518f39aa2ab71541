"""
Structured logging for the gateway (API process and Celery workers).

Every record is an event name plus key/value pairs. While a message is being
handled, the conversation it belongs to (tenant, sender, instance) is bound to
the context so records from the ledger, the bridge client and the bots can be
grepped per conversation without each call site repeating it.
"""

import logging
import sys
from contextlib import contextmanager
from typing import Any, Iterator

import structlog
from wa_gateway.config import config

SERVICE_NAME = "wa-gateway"

# Libraries that log every request or statement at INFO.
QUIET_LOGGERS = (
    "httpx",
    "httpcore",
    "openai",
    "celery",
    "sqlalchemy.engine",
)


def _add_service(logger, method_name, event_dict):
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def configure_logging():
    """
    Route stdlib logging and structlog to stdout.

    DEBUG=True renders colored console lines; otherwise one JSON object per line.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    processors = [
        structlog.contextvars.merge_contextvars,
        _add_service,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.dev.ConsoleRenderer() if config.DEBUG else structlog.processors.JSONRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = None) -> Any:
    """
    Get a structured logger.

    Usage:
        logger = get_logger(__name__)
        logger.info("slot_held", slot_key="mvp#default#2025-01-01T16:00:00.000Z")
        logger.warning("reply_not_delivered", to="5215512345678", error="timeout")

    Never pass ``event=`` as a field; the first positional argument already is the event.
    """
    return structlog.get_logger(name)


@contextmanager
def conversation_context(tenant_id: str, sender: str, instance: str) -> Iterator[None]:
    """Bind the conversation to every record logged inside the block."""
    with structlog.contextvars.bound_contextvars(tenant_id=tenant_id, sender=sender, instance=instance):
        yield


configure_logging()

logger = get_logger("wa_gateway")
