from __future__ import annotations

import logging
import re
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RepositorySettings(BaseSettings):
    """
    Settings for the data-access layer.

    Reads from environment variables (or .env via pydantic-settings), all
    prefixed with REPOKIT_:
      - REPOKIT_DATABASE_URL
      - REPOKIT_SQL_ECHO
      - REPOKIT_EXPIRE_ON_COMMIT
      - REPOKIT_LOG_LEVEL
    """

    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///:memory:",
        description="SQLAlchemy database URL. Sync driver URLs are upgraded to async drivers.",
    )
    SQL_ECHO: bool = Field(
        default=False, description="Echo SQL statements for debugging (default False)"
    )
    EXPIRE_ON_COMMIT: bool = Field(
        default=False,
        description="Expire loaded instances on commit. Off so untracked copies stay readable.",
    )
    LOG_LEVEL: int = Field(default=logging.INFO, description="Root log level")

    # Environment label
    ENVIRONMENT: Optional[str] = Field(
        default=None, description="Environment label (dev/test/prod)"
    )

    model_config = SettingsConfigDict(
        env_prefix="REPOKIT_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _parse_log_level(cls, v):
        """Accept level names (``debug``, ``INFO``) as well as numbers."""
        if isinstance(v, str) and not v.strip().isdigit():
            level = logging.getLevelName(v.strip().upper())
            if not isinstance(level, int):
                raise ValueError(f"Unknown log level: {v}")
            return level
        return v

    @property
    def async_database_url(self) -> str:
        """
        Convert the configured URL to an async-driver SQLAlchemy URL, required
        for AsyncEngine.
        """
        url = self.DATABASE_URL
        if url.startswith(("postgresql+asyncpg://", "sqlite+aiosqlite://")):
            return url
        if url.startswith("sqlite"):
            return re.sub(r"^sqlite(\+\w+)?://", "sqlite+aiosqlite://", url)
        # Replace any existing driver marker or bare scheme with +asyncpg
        return re.sub(r"^postgres(ql)?(\+\w+)?://", "postgresql+asyncpg://", url)


# PUBLIC_INTERFACE
def get_settings() -> RepositorySettings:
    """
    Return a new RepositorySettings instance populated from environment variables.

    Note:
      Settings is cheap to construct; callers that need a stable snapshot
      should hold on to the returned instance.
    """
    return RepositorySettings()
