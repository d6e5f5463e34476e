"""
Logging configuration using structlog.

Log calls go through the stdlib logging tree so third-party libraries
(SQLAlchemy, aiosqlite) share the same handlers. Console output is
human-readable unless JSON is requested; the rotating log file is
always JSON.
"""

import logging
import sys
from contextlib import contextmanager
from decimal import Decimal
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterator, Optional

import structlog
from structlog.typing import EventDict, Processor, WrappedLogger

APP_NAME = "stakebook"

NOISY_LOGGERS = ("asyncio", "aiosqlite", "sqlalchemy.engine", "sqlalchemy.pool")


def add_app_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    event_dict["app"] = APP_NAME
    return event_dict


def render_decimals(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Log odds and fees as written ('1.16'), not as Decimal('1.16')."""
    for key, value in event_dict.items():
        if isinstance(value, Decimal):
            event_dict[key] = str(value)
    return event_dict


def _formatter(renderer: Processor, pre_chain: list[Processor]) -> logging.Formatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
    json_format: bool = False,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to a rotating JSON log file
        json_format: If True, console output is JSON too (for production)
    """
    level = getattr(logging, log_level.upper())

    pre_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_app_context,
        render_decimals,
    ]

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(
        _formatter(
            structlog.processors.JSONRenderer()
            if json_format
            else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()),
            pre_chain,
        )
    )
    handlers: list[logging.Handler] = [console]

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        # 5 files of 10MB
        file_handler = RotatingFileHandler(log_file, maxBytes=10 * 1024 * 1024, backupCount=5)
        file_handler.setFormatter(
            _formatter(structlog.processors.JSONRenderer(), pre_chain)
        )
        handlers.append(file_handler)

    root = logging.getLogger()
    root.handlers = handlers
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *pre_chain,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, typically with the calling module's __name__."""
    return structlog.get_logger(name)


@contextmanager
def log_context(**kwargs) -> Iterator[None]:
    """
    Attach key/values to every log line emitted inside the block.

    Example:
        with log_context(bet_id=bet.bet_id):
            logger.info("Placing stake")  # includes bet_id
    """
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield
