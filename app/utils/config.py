"""
Configuration management for PDF Watchman.

Uses pydantic-settings to load process-level settings from environment
variables and .env files. The watch configuration edited at runtime
(paths and compression policy) lives in ``app.utils.config_store``.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # API Configuration
    api_host: str = "127.0.0.1"
    api_port: int = 3000
    log_level: str = "INFO"
    api_title: str = "PDF Watchman API"
    api_version: str = "1.0.0"

    # Persisted watch configuration
    config_file: Path = Path("config.json")

    # Organization subtrees and temp artifacts
    processed_dir_name: str = "_Processed"
    error_dir_name: str = "_Processed_Error"
    temp_marker: str = ".pdfw-tmp"

    # Directory monitor
    stability_threshold: float = 2.0  # seconds without size/mtime change
    poll_interval: float = 0.1

    # Ghostscript invocation
    handle_release_delay: float = 0.5  # seconds
    tool_timeout: Optional[float] = None

    # Retry policy
    move_max_attempts: int = 5
    move_base_delay: float = 1.0
    copy_max_attempts: int = 5
    copy_base_delay: float = 0.5

    # Controller
    restart_delay: float = 1.0

    # Log buffer exposed to the control surface
    log_buffer_size: int = 200

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
