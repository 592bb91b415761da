"""structlog setup shared by library users and tooling."""

from __future__ import annotations

import logging
import os
import sys

import structlog

_NOISY_LOGGERS = ("web3", "urllib3", "asyncio")


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Route structlog through the stdlib root logger.

    Args:
        level: Log level name. Defaults to RLN_LOG_LEVEL or INFO.
        fmt: "json" or "console". Defaults to RLN_LOG_FORMAT or console.
    """
    level_name = (level or os.getenv("RLN_LOG_LEVEL", "INFO")).upper()
    fmt = fmt or os.getenv("RLN_LOG_FORMAT", "console")
    log_level = logging.getLevelName(level_name)
    if not isinstance(log_level, int):
        raise ValueError(f"Unknown log level: {level_name!r}")

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    renderer: structlog.types.Processor
    if fmt == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
