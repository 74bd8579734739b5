"""Centralized settings management for the FedSync importer."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class ImportSettings(BaseSettings):
    """
    Importer settings powered by pydantic-settings.

    Values are read from ``FEDSYNC_``-prefixed environment variables and an
    optional ``.env`` file in the working directory.
    """

    # -------------------------------------------------------------------------
    # PATHS
    # -------------------------------------------------------------------------
    DATA_PATH: Path = Path("data/fedsync")
    LOG_FILE_PATH: Path = Path("logs/import/import.log")
    ERROR_LOG_PATH: Path = Path("logs/import/errors.log")

    # -------------------------------------------------------------------------
    # IMPORT TUNING
    # -------------------------------------------------------------------------
    BATCH_SIZE: int = Field(50, ge=1)
    MAX_CONCURRENCY: int = Field(5, ge=1)
    RETRY_ATTEMPTS: int = Field(3, ge=0)
    RETRY_DELAY_MS: int = Field(1000, ge=0)
    ITEM_TIMEOUT_S: float = Field(30.0, gt=0)
    RUN_DEADLINE_S: float | None = None

    # -------------------------------------------------------------------------
    # VALIDATION LIMITS
    # -------------------------------------------------------------------------
    MAX_TITLE_LENGTH: int = 200
    MAX_DESCRIPTION_LENGTH: int = 5000

    # -------------------------------------------------------------------------
    # CONTENT STORE
    # -------------------------------------------------------------------------
    STORE_URL: str = "http://localhost:3000"
    STORE_API_KEY: SecretStr | None = None

    # -------------------------------------------------------------------------
    # HTTP JOB WRAPPER
    # -------------------------------------------------------------------------
    SYNC_COMMAND: str | None = None
    MAX_RETAINED_JOBS: int = Field(100, ge=1)

    # -------------------------------------------------------------------------
    # LOGGING & REPORTING
    # -------------------------------------------------------------------------
    LOG_LEVEL: str = "INFO"
    JSON_LOGS: bool = False
    ERROR_DISPLAY_LIMIT: int = 10

    # -------------------------------------------------------------------------
    # CONFIGURATION
    # -------------------------------------------------------------------------
    model_config = SettingsConfigDict(
        env_prefix="FEDSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        # Allow extra fields in .env but ignore them in the model
        extra="ignore",
    )


@lru_cache
def get_settings() -> ImportSettings:
    """
    Get cached importer settings.

    Returns
    -------
    ImportSettings
        The singleton settings instance.
    """
    return ImportSettings()
