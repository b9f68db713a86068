"""Remote client session tracking."""

from .registry import SessionRegistry

__all__ = ["SessionRegistry"]
