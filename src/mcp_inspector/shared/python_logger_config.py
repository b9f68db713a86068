"""Python logging configuration for the inspector.

Sets up console output for the whole process. When the protocol server runs
over stdio, stdout is the protocol channel, so the handler is pointed at
stderr instead.

Environment Variables:
    LOG_LEVEL: Logging level (TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL)
    PYTHON_LOG_FORMAT: Log message format (default: see below)
"""

import os
import sys
import logging
from typing import Optional, TextIO

from .log_levels import TRACE, setup_trace_logging

setup_trace_logging()

DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class ColoredFormatter(logging.Formatter):
    """Colored formatter for console output."""

    # ANSI color codes
    COLORS = {
        'TRACE': '\033[90m',     # Dark gray
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        msg = super().format(record)
        color = self.COLORS.get(record.levelname, '')
        if color:
            msg = f"{color}{msg}{self.RESET}"
        return msg


def resolve_level(log_level: str) -> int:
    """Map a level name (including TRACE) to its numeric value."""
    log_level = log_level.upper()
    if log_level == 'TRACE':
        return TRACE
    return getattr(logging, log_level, logging.INFO)


def setup_python_logging(
    log_level: Optional[str] = None,
    use_colors: bool = True,
    log_format: Optional[str] = None,
    stream: Optional[TextIO] = None
) -> logging.Logger:
    """Configure Python logging with console output.

    Args:
        log_level: Logging level (if None, reads from env)
        use_colors: Whether to use colored output for TTY
        log_format: Custom log format (if None, uses default)
        stream: Output stream (defaults to stdout)

    Returns:
        Configured root logger
    """
    if log_level is None:
        log_level = os.getenv('LOG_LEVEL', 'INFO')
    if log_format is None:
        log_format = os.getenv('PYTHON_LOG_FORMAT', DEFAULT_LOG_FORMAT)
    if stream is None:
        stream = sys.stdout

    level = resolve_level(log_level)

    # Remove any existing handlers to avoid duplicates
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(stream)
    console_handler.setLevel(level)

    colored = use_colors and hasattr(stream, 'isatty') and stream.isatty()
    if colored:
        formatter = ColoredFormatter(log_format)
    else:
        formatter = logging.Formatter(log_format)
    console_handler.setFormatter(formatter)

    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)
    logging.getLogger('mcp_inspector').setLevel(level)

    root_logger.info(f"Python logging configured: level={log_level.upper()}, colors={colored}")
    return root_logger


def silence_noisy_loggers():
    """Reduce verbosity of noisy third-party loggers."""
    noisy_loggers = [
        'asyncio',
        'redis',
        'httpx',
        'httpcore',
        'hpack',
        'hypercorn.access',
        'hypercorn.error',
        'sse_starlette',
        'mcp.server.lowlevel.server',
        'python_multipart',
    ]

    for logger_name in noisy_loggers:
        logging.getLogger(logger_name).setLevel(logging.WARNING)
