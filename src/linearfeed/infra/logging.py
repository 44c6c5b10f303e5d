"""
Logging configuration for linearfeed.

structlog renders JSON lines on top of stdlib logging, so pure modules can
keep using ``logging.getLogger(__name__)`` and still land in the same stream.
Feed URLs and the database URL routinely carry credentials (basic-auth user
info, ``token=``/``api_key=`` query parameters); those are masked before
rendering.
"""

import logging
import re
import sys
from typing import Any

import structlog

from .settings import settings

_SECRET_KEYS = ("token", "password", "secret", "api_key", "apikey", "database_url")

_USERINFO = re.compile(r"(?P<scheme>[a-z][a-z0-9+.-]*://)[^/@\s]+@", re.IGNORECASE)
_SECRET_PARAM = re.compile(
    r"(?P<name>(?:token|access_token|api_key|apikey|password|signature|sig)=)[^&\s#]+",
    re.IGNORECASE,
)


def mask_secrets(text: str) -> str:
    """Mask credentials embedded in URLs found in ``text``."""
    text = _USERINFO.sub(lambda m: f"{m.group('scheme')}***@", text)
    return _SECRET_PARAM.sub(lambda m: f"{m.group('name')}***", text)


def redact_secrets(_, __, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog processor: drop secret-named keys, mask URL credentials elsewhere."""

    def scrub(value: Any) -> Any:
        if isinstance(value, str):
            return mask_secrets(value)
        if isinstance(value, dict):
            return {k: scrub(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [scrub(v) for v in value]
        return value

    for key, value in list(event_dict.items()):
        if any(secret in key.lower() for secret in _SECRET_KEYS):
            event_dict[key] = "***REDACTED***"
        else:
            event_dict[key] = scrub(value)
    return event_dict


def configure_logging(level: str | None = None) -> None:
    """Route stdlib logging to stdout and render structlog events as JSON."""
    log_level = (level or settings.log_level).upper()
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level, logging.INFO),
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            redact_secrets,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Logger bound with the service name and deployment environment."""
    return structlog.get_logger(name).bind(service="linearfeed", env=settings.env)
