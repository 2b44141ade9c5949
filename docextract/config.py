"""Configuration management for the document extraction pipeline.

This module uses Pydantic Settings to load configuration from environment
variables (or a .env file). All settings are validated at startup to catch
configuration errors early.
"""

import logging
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    The Gemini API key must be provided via environment variables or .env
    file; everything else has a working default.
    """

    # Gemini API Configuration
    gemini_api_key: str = Field(
        ...,
        description="Google Gemini API key for classification and extraction"
    )
    model_name: str = Field(
        default="gemini-3-flash-preview",
        description="Gemini model used for every completion call"
    )
    completion_max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Retries for transient Gemini failures (429/5xx/network)"
    )

    # Storage
    database_path: str = Field(
        default="outputs/documents_database.json",
        description="Flat JSON database holding every extracted record"
    )
    downloads_dir: str = Field(
        default="outputs",
        description="Where PDFs fetched from URLs are saved"
    )

    # Pipeline behaviour
    classification_excerpt_chars: int = Field(
        default=2000,
        ge=100,
        description="Leading characters of the document sent to the classifier"
    )
    enable_confidence_scoring: bool = Field(
        default=True,
        description="Ask the model for a relevancy score during evaluation"
    )
    batch_workers: int = Field(
        default=1,
        ge=1,
        le=50,
        description="PDFs processed concurrently in batch mode (1 = sequential)"
    )

    # Downloads
    max_download_size_mb: int = Field(default=50, ge=1)
    download_timeout_seconds: float = Field(default=30.0, gt=0)

    # Service
    log_level: str = Field(default="INFO")
    trusted_proxies: str = Field(
        default="",
        description="Comma separated proxy IPs whose X-Forwarded-For is trusted"
    )

    # Model configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        protected_namespaces=(),
    )

    @field_validator("gemini_api_key")
    @classmethod
    def validate_gemini_api_key(cls, v: str) -> str:
        """Validate that GEMINI_API_KEY is present and non-empty."""
        if not v or not v.strip():
            raise ValueError(
                "GEMINI_API_KEY must be set in environment variables. "
                "Get your API key from https://ai.google.dev/"
            )
        return v.strip()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize LOG_LEVEL and reject names the logging module doesn't know."""
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"LOG_LEVEL must be a logging level name (got: {v})")
        return level


@lru_cache
def get_settings() -> Settings:
    """Get cached Settings instance.

    Settings are loaded only once and reused across the application lifetime.

    Returns:
        Settings: Validated application settings

    Raises:
        ValueError: If required environment variables are missing or invalid
    """
    return Settings()
