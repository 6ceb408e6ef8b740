"""Structured logging for the gas tracker, built on structlog.

Feed events carry wei amounts as ints and prices as Decimal. Decimals are
rendered as plain strings so JSON output keeps their exact value.
"""

import logging
import os
from decimal import Decimal
from typing import Any, TextIO

import structlog

# Transport libraries log every request at DEBUG
NOISY_LOGGERS = ("web3", "websockets", "urllib3", "aiohttp")


def stringify_decimals(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """structlog processor: render Decimal values with ``str`` instead of ``repr``."""
    for key, value in event_dict.items():
        if isinstance(value, Decimal):
            event_dict[key] = str(value)
    return event_dict


def build_renderer(log_format: str) -> structlog.types.Processor:
    """Return the final renderer for ``"json"`` or ``"console"`` output."""
    if log_format.lower() == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=False)


def setup_logging(
    log_level: str = "INFO",
    log_format: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """Route structlog and stdlib records through one handler on the root logger.

    Args:
        log_level: Root level name, e.g. "DEBUG". Transport libraries stay at
            WARNING regardless.
        log_format: "json" or "console". Defaults to LOG_FORMAT, then "console".
        stream: Handler output; stderr when None.
    """
    renderer = build_renderer(log_format or os.environ.get("LOG_FORMAT", "console"))

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        stringify_decimals,
    ]
    structlog.configure(
        processors=[
            *pre_chain,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger named after the calling module."""
    return structlog.get_logger(name)
