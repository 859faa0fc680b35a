"""Environment-driven runtime settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return int(value)


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return float(value)


@dataclass(frozen=True)
class Settings:
    app_name: str = "Agent Scheduler"
    app_version: str = "1.0.0"
    log_level: str = "INFO"
    default_time_zone: str = "America/Los_Angeles"
    default_utilization: float = 1.0
    default_capacity_per_hour: int = 0
    default_output_format: str = "text"
    server_host: str = "127.0.0.1"
    server_port: int = 8000
    admin_token: Optional[str] = None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings once per process from environment variables."""
    admin_token = os.getenv("ADMIN_TOKEN")
    return Settings(
        app_name=_env_str("AGENT_SCHEDULER_APP_NAME", Settings.app_name),
        app_version=_env_str("AGENT_SCHEDULER_APP_VERSION", Settings.app_version),
        log_level=_env_str("LOG_LEVEL", Settings.log_level),
        default_time_zone=_env_str(
            "AGENT_SCHEDULER_DEFAULT_TIME_ZONE", Settings.default_time_zone
        ),
        default_utilization=_env_float(
            "AGENT_SCHEDULER_DEFAULT_UTILIZATION", Settings.default_utilization
        ),
        default_capacity_per_hour=_env_int(
            "AGENT_SCHEDULER_DEFAULT_CAPACITY", Settings.default_capacity_per_hour
        ),
        default_output_format=_env_str(
            "AGENT_SCHEDULER_DEFAULT_FORMAT", Settings.default_output_format
        ),
        server_host=_env_str("AGENT_SCHEDULER_HOST", Settings.server_host),
        server_port=_env_int("AGENT_SCHEDULER_PORT", Settings.server_port),
        admin_token=admin_token.strip() if admin_token and admin_token.strip() else None,
    )
