"""Structured logging setup."""

import logging
import sys
from typing import Any

import structlog

from core.config import settings

# Keys whose values must never reach a log sink verbatim.
_SENSITIVE_KEYS = ("password", "token", "secret", "authorization")


def _redact_sensitive(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Mask credential-like values, keeping a short prefix for correlation."""
    for key, value in event_dict.items():
        if isinstance(value, str) and any(s in key.lower() for s in _SENSITIVE_KEYS):
            event_dict[key] = value[:4] + "***" if len(value) > 8 else "***"
    return event_dict


def setup_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """Configure structlog and route stdlib logging through the same level."""
    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    if json_output is None:
        json_output = settings.is_production or settings.log_json
    use_json = json_output

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _redact_sensitive,
        structlog.processors.StackInfoRenderer(),
    ]
    if use_json:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s", level=log_level)
