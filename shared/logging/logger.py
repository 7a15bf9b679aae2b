"""
Logger Implementation
=====================

Configures structlog on top of stdlib logging:
- JSON lines in production, Rich console rendering in development
- Signer credentials and store secrets replaced before rendering
- Credentials stripped from RPC and IPFS endpoint URLs
- Contextvar binding for per-request and per-issuance fields

Version: 0.1.0
"""

import logging
import sys
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit, urlunsplit

import structlog
from structlog.types import EventDict, Processor, WrappedLogger


if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger


REDACTED = "***REDACTED***"

# Substrings of keys whose values are never logged
_SENSITIVE_KEYS = (
    "private_key",
    "mnemonic",
    "seed",
    "secret",
    "password",
    "token",
    "authorization",
)

# Third-party loggers that report every request at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "urllib3", "asyncio", "web3", "aiohttp")

_service_name = "diploma-registry"


def _add_service(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service", _service_name)
    event_dict.setdefault("version", "0.1.0")
    return event_dict


def _strip_url_credentials(url: str) -> str:
    """Drop userinfo and query string; hosted RPC and IPFS URLs carry keys there."""
    parts = urlsplit(url)
    if not parts.netloc:
        return url
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    return urlunsplit((parts.scheme, host, parts.path, "", ""))


def _redact(key: str, value: Any) -> Any:
    key_lower = key.lower()
    if any(s in key_lower for s in _SENSITIVE_KEYS):
        return REDACTED
    if isinstance(value, dict):
        return {k: _redact(k, v) for k, v in value.items()}
    if key_lower.endswith("_url") and isinstance(value, str):
        return _strip_url_credentials(value)
    return value


def _censor_secrets(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Replace credential values before any renderer sees them."""
    return {key: _redact(key, value) for key, value in event_dict.items()}


def _build_processors(json_logs: bool) -> tuple[list[Processor], Processor]:
    """Return the shared processor chain and the final renderer."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _add_service,
        _censor_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_logs:
        processors.append(structlog.processors.format_exc_info)
        return processors, structlog.processors.JSONRenderer()

    # Locals would print signer objects and raw payloads
    processors.append(structlog.dev.set_exc_info)
    renderer = structlog.dev.ConsoleRenderer(
        colors=True,
        exception_formatter=structlog.dev.RichTracebackFormatter(
            show_locals=False,
            max_frames=10,
        ),
    )
    return processors, renderer


def setup_logging(
    log_level: str = "INFO",
    json_logs: bool = False,
    service_name: str = "diploma-registry",
) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Emit JSON lines (production) instead of console output
        service_name: Value of the `service` field on every entry
    """
    global _service_name
    _service_name = service_name

    level = logging.getLevelName(log_level.upper())
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    shared_processors, renderer = _build_processors(json_logs)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)


def get_logger(name: str | None = None) -> "BoundLogger":
    """
    Get a structured logger.

    Example:
        logger = get_logger(__name__)
        logger.info("content_uploaded", content_id="bafkrei...", size=1024)
    """
    return structlog.stdlib.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """
    Bind fields to every log entry emitted from the current async context.

    Example:
        bind_context(method="POST", path="/api/v1/diplomas")
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()
