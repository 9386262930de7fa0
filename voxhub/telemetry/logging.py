from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator

import structlog

_configured = False


def configure_logging(level: str = "INFO") -> None:
    """Routes structlog through stdlib logging and renders one JSON object per event.

    Context bound with :func:`bind_client` is merged into every event logged
    while it is active, including events from the orchestrator and providers.
    """
    global _configured
    if _configured:
        return

    numeric = logging.getLevelName(level.upper())
    logging.basicConfig(
        format="%(message)s",
        level=numeric if isinstance(numeric, int) else logging.INFO,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: str) -> Any:
    return structlog.get_logger(name)


@contextmanager
def bind_client(client_id: str, **extra: Any) -> Iterator[None]:
    # Tasks spawned inside inherit a copy of the context, so their events carry the id too.
    with structlog.contextvars.bound_contextvars(client_id=client_id, **extra):
        yield


__all__ = ["bind_client", "configure_logging", "get_logger"]
