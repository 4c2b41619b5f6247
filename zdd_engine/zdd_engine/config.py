"""zdd configuration loaded from environment variables."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_DEPLOYMENTS_PATH = Path("migrations")


class Settings(BaseSettings):
    """Settings loaded from environment variables with the ZDD_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="ZDD_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    debug: bool = False

    # Database
    database_url: str | None = None
    database_pool_size: int = 5
    database_max_overflow: int = 5

    # Deployments
    deployments_path: Path = DEFAULT_DEPLOYMENTS_PATH

    # Execution
    script_timeout_seconds: float = Field(default=300.0, gt=0)

    # Telemetry
    structured_logging: bool = False

    @field_validator("database_url", mode="before")
    @classmethod
    def blank_url_is_unset(cls, v: str | None) -> str | None:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def is_database_configured(self) -> bool:
        return self.database_url is not None


def load_settings(**overrides: object) -> Settings:
    """Load settings from environment, with optional overrides for testing."""
    settings = Settings(**overrides)  # type: ignore[arg-type]

    if settings.debug:
        logger.info("Loaded settings: deployments_path=%s", settings.deployments_path)

    return settings
