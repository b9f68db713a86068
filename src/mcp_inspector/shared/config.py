"""Centralized configuration management for the MCP client inspector."""

import os
from typing import Optional
from functools import lru_cache

VALID_TRANSPORTS = ("http", "stdio")
VALID_LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Config:
    """Configuration class with all environment variables."""

    # Server Configuration
    SERVER_HOST: str = os.getenv('SERVER_HOST', '0.0.0.0')
    HTTP_PORT: int = int(os.getenv('HTTP_PORT', '3000'))
    MCP_TRANSPORT: str = os.getenv('MCP_TRANSPORT', 'http').lower()

    # Redis Configuration
    REDIS_URL: str = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
    REDIS_PASSWORD: Optional[str] = os.getenv('REDIS_PASSWORD')

    # Logging
    LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO').upper()

    # Message history retention
    MESSAGE_HISTORY_LIMIT: int = int(os.getenv('MESSAGE_HISTORY_LIMIT', '1000'))
    MESSAGE_HISTORY_RETENTION_DAYS: int = int(os.getenv('MESSAGE_HISTORY_RETENTION_DAYS', '7'))
    RETENTION_QUEUE_SIZE: int = int(os.getenv('RETENTION_QUEUE_SIZE', '1000'))

    # Session registry
    MCP_SESSION_TIMEOUT: int = int(os.getenv('MCP_SESSION_TIMEOUT', '3600'))  # 1 hour
    SESSION_SWEEP_INTERVAL: int = int(os.getenv('SESSION_SWEEP_INTERVAL', '60'))

    # Shutdown
    COMMAND_DRAIN_TIMEOUT: float = float(os.getenv('COMMAND_DRAIN_TIMEOUT', '5'))

    @classmethod
    def validate(cls) -> None:
        """Validate required configuration values."""
        errors = []

        if not cls.REDIS_URL:
            errors.append("REDIS_URL is required")

        if not cls.SERVER_HOST:
            errors.append("SERVER_HOST is required")

        if not (1 <= cls.HTTP_PORT <= 65535):
            errors.append(f"HTTP_PORT must be between 1 and 65535, got {cls.HTTP_PORT}")

        if cls.MCP_TRANSPORT not in VALID_TRANSPORTS:
            errors.append(f"MCP_TRANSPORT must be one of {', '.join(VALID_TRANSPORTS)}, got {cls.MCP_TRANSPORT}")

        if cls.LOG_LEVEL not in VALID_LOG_LEVELS:
            errors.append(f"LOG_LEVEL must be one of {', '.join(VALID_LOG_LEVELS)}, got {cls.LOG_LEVEL}")

        for name in ('MESSAGE_HISTORY_LIMIT', 'MESSAGE_HISTORY_RETENTION_DAYS', 'RETENTION_QUEUE_SIZE',
                     'MCP_SESSION_TIMEOUT', 'SESSION_SWEEP_INTERVAL', 'COMMAND_DRAIN_TIMEOUT'):
            value = getattr(cls, name)
            if value <= 0:
                errors.append(f"{name} must be positive, got {value}")

        if errors:
            raise ValueError(f"Configuration errors: {'; '.join(errors)}")

    @classmethod
    def get_redis_url_with_password(cls) -> str:
        """Get Redis URL with password if configured."""
        if cls.REDIS_PASSWORD and cls.REDIS_URL:
            from urllib.parse import urlparse, urlunparse
            parsed = urlparse(cls.REDIS_URL)
            if not parsed.password:
                netloc = f":{cls.REDIS_PASSWORD}@{parsed.hostname}"
                if parsed.port:
                    netloc += f":{parsed.port}"
                return urlunparse((
                    parsed.scheme,
                    netloc,
                    parsed.path,
                    parsed.params,
                    parsed.query,
                    parsed.fragment
                ))
        return cls.REDIS_URL

    def retention_seconds(self) -> int:
        """Age window for message history, in seconds."""
        return self.MESSAGE_HISTORY_RETENTION_DAYS * 24 * 60 * 60


@lru_cache()
def get_config() -> Config:
    """Get validated configuration instance."""
    Config.validate()
    return Config()
