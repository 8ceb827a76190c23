# app/core/logging.py
import logging
import os
import sys
from typing import Any

import structlog
from structlog.stdlib import ProcessorFormatter

_SECRET_KEYS = frozenset({"password", "password_hash", "token", "secret", "authorization"})


def _scrub_event_dict(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key in list(event_dict):
        if key.lower() in _SECRET_KEYS:
            event_dict[key] = "***"
    return event_dict


def _resolve_log_format(json_logs_default: bool) -> str:
    raw = (os.environ.get("LOG_FORMAT") or "").strip().lower()
    if raw in {"json", "human"}:
        return raw
    return "json" if json_logs_default else "human"


def configure_logging(*, log_level: str = "INFO", json_logs: bool = False) -> None:
    """
    structlog on top of stdlib logging.

    LOG_FORMAT=human|json overrides `json_logs`.
    """
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _scrub_event_dict,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    renderer: Any
    if _resolve_log_format(json_logs) == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    formatter = ProcessorFormatter(processor=renderer, foreign_pre_chain=shared_processors)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level.upper())

    for noisy in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logger = logging.getLogger(noisy)
        logger.handlers = []
        logger.propagate = True

    # Pillow logs every plugin import at DEBUG
    logging.getLogger("PIL").setLevel(logging.WARNING)

    structlog.configure(
        processors=[*shared_processors, ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
