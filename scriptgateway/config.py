# -*- coding: utf-8 -*-
"""Location: ./scriptgateway/config.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0

Script Gateway Configuration.
This module defines configuration settings for the script execution gateway
using Pydantic settings management. Every field can be overridden through an
environment variable of the same name (case-insensitive) or a ``.env`` file.

Examples:
    >>> from scriptgateway.config import Settings
    >>> s = Settings(ws_reconnect_attempts=3)
    >>> s.ws_reconnect_attempts
    3
    >>> s.ws_max_message_size
    100000
    >>> s.rate_limit_for("ngs")
    (5, 300.0)
"""

# Standard
from functools import lru_cache
from typing import Literal, Tuple

# Third-Party
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Script gateway configuration settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore")

    # Backend endpoints
    backend_ws_url: str = Field(default="ws://localhost:8000/ws/scripts", description="Websocket endpoint of the execution backend")
    script_api_base_url: str = Field(default="http://localhost:8000", description="Base URL of the script catalog REST API")
    script_catalog_timeout: float = Field(default=5.0, description="Timeout in seconds for script catalog lookups")
    script_catalog_max_retries: int = Field(default=2, ge=1, description="Attempts made for a catalog lookup before giving up")

    # Connection management
    ws_reconnect_attempts: int = Field(default=5, ge=1)
    ws_reconnect_cooldown: float = Field(default=60.0, ge=0, description="Seconds to stay idle after exhausting reconnect attempts")
    ws_connection_timeout: float = Field(default=5.0, gt=0)
    ws_heartbeat_interval: float = Field(default=30.0, ge=0, description="Seconds between heartbeat frames; 0 disables heartbeats")
    ws_max_message_size: int = Field(default=100_000, gt=0, description="Maximum serialised frame size in bytes")
    ws_backoff_base_ms: int = Field(default=1000, gt=0)
    ws_backoff_max_ms: int = Field(default=30_000, gt=0)
    ws_outbound_queue_size: int = Field(default=1000, gt=0, description="Frames buffered for sending before send() reports backpressure")

    # Execution
    execution_startup_delay: float = Field(default=0.5, ge=0)
    execution_fallback_enabled: bool = Field(default=True, description="Run the local simulator when the backend is unreachable")
    simulator_start_delay: float = Field(default=0.5, ge=0)
    simulator_step_delay: float = Field(default=0.8, ge=0)
    simulator_completion_delay: float = Field(default=1.0, ge=0)

    # Admission control
    rate_limit_default_max_requests: int = Field(default=10, gt=0)
    rate_limit_default_window_seconds: float = Field(default=60.0, gt=0)
    rate_limit_lightweight_max_requests: int = Field(default=20, gt=0)
    rate_limit_lightweight_window_seconds: float = Field(default=60.0, gt=0)
    rate_limit_ngs_max_requests: int = Field(default=5, gt=0)
    rate_limit_ngs_window_seconds: float = Field(default=300.0, gt=0)

    # Logging
    log_level: Literal["debug", "info", "notice", "warning", "error", "critical", "alert", "emergency"] = "info"
    log_format: Literal["text", "json"] = "text"
    log_to_file: bool = False
    log_file: str = "scriptgateway.log"
    log_folder: str = ""

    # Notifications
    notification_history_size: int = Field(default=200, gt=0)

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        """Accept upper-case level names from the environment.

        Args:
            value: Raw level name.

        Returns:
            str: Lower-case level name.
        """
        return value.lower() if isinstance(value, str) else value

    def rate_limit_for(self, script_class: str) -> Tuple[int, float]:
        """Return ``(max_requests, window_seconds)`` for a script class.

        Args:
            script_class: One of ``default``, ``lightweight`` or ``ngs``.

        Returns:
            Tuple[int, float]: The configured limit and window length.

        Raises:
            ValueError: If the script class is unknown.
        """
        try:
            return (
                getattr(self, f"rate_limit_{script_class}_max_requests"),
                getattr(self, f"rate_limit_{script_class}_window_seconds"),
            )
        except AttributeError as exc:
            raise ValueError(f"Unknown script class: {script_class}") from exc


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: A cached instance of the Settings class.

    Examples:
        >>> get_settings() is get_settings()
        True
    """
    return Settings()


settings = get_settings()
