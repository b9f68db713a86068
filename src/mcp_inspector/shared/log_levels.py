"""Custom logging levels for the inspector.

This module defines additional logging levels like TRACE for very verbose debugging.
"""

import logging

# Define TRACE level (below DEBUG)
TRACE = 5


def setup_trace_logging():
    """Register the TRACE level and a ``Logger.trace`` method."""
    logging.addLevelName(TRACE, "TRACE")

    def trace(self, message, *args, **kwargs):
        if self.isEnabledFor(TRACE):
            self._log(TRACE, message, args, **kwargs)

    logging.Logger.trace = trace

    def adapter_trace(self, message, *args, **kwargs):
        self.log(TRACE, message, *args, **kwargs)

    logging.LoggerAdapter.trace = adapter_trace
    logging.TRACE = TRACE

    return TRACE


TRACE_LEVEL = setup_trace_logging()
