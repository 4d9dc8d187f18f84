"""
Configuration management for the application.
"""

import logging
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Keys (optional - without one the language model reports unavailable)
    openai_api_key: Optional[str] = None

    # Model Configuration
    openai_llm_model: str = "gpt-4o-mini"
    request_timeout: float = 30.0

    # Storage Configuration
    storage_backend: str = "sqlite"  # "sqlite" or "memory"
    db_path: Path = Path("./data/tabmind.db")

    # Page content
    page_content_source: str = "host"  # "host" or "http"
    max_content_chars: int = 5000
    min_content_chars: int = 100

    # Orchestration
    coalesce_tab_events: bool = True

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


# Global settings instance
settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure application-wide logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
