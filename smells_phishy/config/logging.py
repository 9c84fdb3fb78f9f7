"""
Structured logging setup.

Configures structlog on top of the standard library so that every module can
call ``get_logger(__name__)`` and emit key/value events.
"""

import logging
import sys
from typing import Optional, TextIO

import structlog

_handler: Optional[logging.StreamHandler] = None


def configure_logging(log_level: Optional[str] = None, log_format: Optional[str] = None,
                      stream: Optional[TextIO] = None) -> None:
    """
    Configure stdlib logging and structlog processors.

    Log lines go to stderr unless another stream is given, so stdout stays
    free for command output. Calling again reconfigures the same handler.
    """
    global _handler

    if log_level is None or log_format is None:
        from smells_phishy.config.settings import settings
        log_level = log_level or settings.LOG_LEVEL
        log_format = log_format or settings.LOG_FORMAT

    level = getattr(logging, log_level.upper(), logging.INFO)
    stream = stream or sys.stderr

    root = logging.getLogger()
    if _handler is None:
        _handler = logging.StreamHandler(stream)
        _handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(_handler)
    else:
        _handler.setStream(stream)
    root.setLevel(level)

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
