"""Component logging helpers.

Relay components log through these helpers instead of holding their own
logger objects. Each call goes to the stdlib logger
``mcp_inspector.<component>`` with the keyword arguments appended as
``key=value`` fields.

Usage:
    from ..shared.logger import log_info, log_error

    log_info("Observer connected", component="hub", connection_id=cid)
    log_error("Append failed", component="message_store", error=e, session_id=sid)
"""

import logging
from typing import Any, Dict, Optional

from .log_levels import TRACE

ROOT_LOGGER_NAME = "mcp_inspector"


def get_component_logger(component: Optional[str] = None) -> logging.Logger:
    """Get the stdlib logger backing a component."""
    if not component:
        return logging.getLogger(ROOT_LOGGER_NAME)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{component}")


def format_fields(fields: Dict[str, Any]) -> str:
    """Render structured fields as ``key=value`` pairs, skipping None."""
    return " ".join(f"{key}={value}" for key, value in fields.items() if value is not None)


def _log(level: int, message: str, component: Optional[str], /, **kwargs):
    logger = get_component_logger(component)
    if not logger.isEnabledFor(level):
        return
    fields = format_fields(kwargs)
    if fields:
        message = f"{message} | {fields}"
    logger.log(level, message)


def log_trace(message: str, component: Optional[str] = None, **kwargs):
    """Trace log (very verbose debugging).

    Args:
        message: Log message
        component: Optional component name
        **kwargs: Additional structured data
    """
    _log(TRACE, message, component, **kwargs)


def log_debug(message: str, component: Optional[str] = None, **kwargs):
    """Debug log.

    Args:
        message: Log message
        component: Optional component name
        **kwargs: Additional structured data
    """
    _log(logging.DEBUG, message, component, **kwargs)


def log_info(message: str, component: Optional[str] = None, **kwargs):
    """Info log.

    Args:
        message: Log message
        component: Optional component name
        **kwargs: Additional structured data
    """
    _log(logging.INFO, message, component, **kwargs)


def log_warning(message: str, component: Optional[str] = None, **kwargs):
    """Warning log.

    Args:
        message: Log message
        component: Optional component name
        **kwargs: Additional structured data
    """
    _log(logging.WARNING, message, component, **kwargs)


def log_error(message: str, component: Optional[str] = None, error: Optional[BaseException] = None, **kwargs):
    """Error log.

    Args:
        message: Log message
        component: Optional component name
        error: Optional exception to log
        **kwargs: Additional structured data
    """
    if error is not None:
        kwargs['error'] = str(error)
        kwargs['error_type'] = type(error).__name__
    _log(logging.ERROR, message, component, **kwargs)


def log_critical(message: str, component: Optional[str] = None, **kwargs):
    """Critical log.

    Args:
        message: Log message
        component: Optional component name
        **kwargs: Additional structured data
    """
    _log(logging.CRITICAL, message, component, **kwargs)
