"""HTTP and WebSocket surface of the inspector."""

from .app import create_app

__all__ = ["create_app"]
