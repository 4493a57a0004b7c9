"""structlog wiring shared by the web process and the Celery worker.

Both structlog loggers and plain stdlib loggers (Django, Celery) end up in
the same ``ProcessorFormatter`` so every line carries the correlation ID
bound by ``CorrelationIdMiddleware`` and goes through the masking step.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List

import structlog

SENSITIVE_PATTERN = re.compile(
    r"(password|passwd|secret|token|authorization)"
    r"""([=:]\s*["']?)([^\s,}"']+)""",
    re.IGNORECASE,
)

MASK = "***MASKED***"

QUIET_LOGGERS = ("django.server", "django.db.backends", "celery.worker.strategy")


def mask_sensitive_data(_, __, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Replace credential-looking substrings in string values.

    Scanner payloads (barcodes, voucher numbers) are left alone; only
    ``key=value`` / ``key: value`` fragments whose key looks like a
    credential are rewritten.
    """
    for key, value in list(event_dict.items()):
        if isinstance(value, str):
            event_dict[key] = SENSITIVE_PATTERN.sub(rf"\1\2{MASK}", value)
    return event_dict


SHARED_PROCESSORS: List[Any] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    mask_sensitive_data,
    structlog.processors.StackInfoRenderer(),
    structlog.processors.UnicodeDecoder(),
]


def configure_structlog() -> None:
    structlog.configure(
        processors=[
            *SHARED_PROCESSORS,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def build_logging_config(level: str = "INFO", json_output: bool = True) -> Dict[str, Any]:
    """Return a ``LOGGING`` dict routing everything through structlog.

    ``json_output=False`` switches to the coloured console renderer for
    local development.
    """
    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structured": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processors": [
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    renderer,
                ],
                "foreign_pre_chain": SHARED_PROCESSORS,
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "structured",
            },
        },
        "root": {"handlers": ["console"], "level": level},
        "loggers": {
            "django": {"handlers": ["console"], "level": level, "propagate": False},
            **{
                name: {"handlers": ["console"], "level": "WARNING", "propagate": False}
                for name in QUIET_LOGGERS
            },
        },
    }
