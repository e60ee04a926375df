"""
Structured logging for relay.

All modules obtain their logger through get_logger(__name__) and log an
event name plus keyword fields:

    logger.info("run_started", agent="triage", run_id=run_id)
"""

import logging
import sys
from typing import Any

import structlog

_configured = False


def configure_logging(level: str = "INFO", fmt: str = "console", force: bool = False) -> None:
    """
    Configure structlog and the stdlib root handler.

    Args:
        level: Minimum log level name
        fmt: "console" for human readable output, "json" for one JSON object per line
        force: Reconfigure even if already configured
    """
    global _configured
    if _configured and not force:
        return

    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root = logging.getLogger("relay")
    root.handlers = [handler]
    root.setLevel(log_level)
    root.propagate = False

    renderer: Any
    if fmt == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: str = "relay") -> structlog.stdlib.BoundLogger:
    """Get a structured logger, configuring logging from settings on first use."""
    if not _configured:
        from relay.config.settings import settings

        configure_logging(settings.log_level, settings.log_format)
    return structlog.get_logger(name)


__all__ = ["configure_logging", "get_logger"]
