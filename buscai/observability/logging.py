"""
Structured logging for the API and the billing worker.

Every line carries the service name, the component (api or worker),
environment and version. Contact fields such as phone or WhatsApp
numbers are masked before rendering.
"""

import logging
import sys

import structlog

from buscai.config import settings
from buscai.observability.audit import SENSITIVE_KEY

MASK = "***"

# Third-party loggers held at WARNING; SQL echo is handled separately
NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "asyncio")


def add_service_context(component: str):
    """Processor that stamps service identity fields on each event."""
    static = {
        "service": settings.APP_NAME,
        "component": component,
        "environment": settings.ENVIRONMENT,
        "version": settings.APP_VERSION,
    }

    def processor(logger, method_name, event_dict):
        for key, value in static.items():
            event_dict.setdefault(key, value)
        return event_dict

    return processor


def mask_contact_fields(logger, method_name, event_dict):
    """Mask values logged under phone, WhatsApp, e-mail or token-like keys."""
    for key in list(event_dict):
        if key == "event":
            continue
        if SENSITIVE_KEY.search(key) and event_dict[key] is not None:
            event_dict[key] = MASK
    return event_dict


def setup_logging(component: str = "api") -> None:
    """Configure structlog; JSON lines unless DEBUG is on."""

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_service_context(component),
        mask_contact_fields,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.DEBUG:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.DB_ECHO else logging.WARNING
    )
    # buscai.* follows LOG_LEVEL
    logging.getLogger("buscai").setLevel(root_logger.level)
