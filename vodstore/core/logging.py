from __future__ import annotations

import logging
from typing import Any, Union

import structlog
from structlog.types import EventDict, Processor

NOISY_LOGGERS: tuple[str, ...] = ("aiosqlite", "sqlalchemy.engine", "multipart")


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), logging.INFO)


def _add_service(service: str) -> Processor:
    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", service)
        return event_dict

    return processor


def configure_logging(level: Union[int, str] = logging.INFO, *, service: str = "vodstore") -> None:
    """JSON logs on stdout. Accepts a numeric level or a name such as ``"debug"``."""
    resolved = _resolve_level(level)
    logging.basicConfig(format="%(message)s", level=resolved)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _add_service(service),
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(resolved),
        cache_logger_on_first_use=True,
    )


def get_logger(**initial_values: Any) -> structlog.BoundLogger:
    return structlog.get_logger().bind(**initial_values)


__all__ = ["configure_logging", "get_logger"]
