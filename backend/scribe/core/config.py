"""Application configuration powered by Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Strongly typed application settings."""

    model_config = SettingsConfigDict(
        env_prefix="SCRIBE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: Literal["dev", "staging", "prod"] = Field(default="dev")
    project_name: str = Field(default="Scribe")
    version: str = Field(default="0.1.0")

    database_url: str = Field(default="sqlite+aiosqlite:///./data/scribe.db")
    echo_sql: bool = Field(default=False)

    schema_path: str | None = Field(default=None, description="JSON schema applied to every component.")
    naive_timezone: str = Field(default="UTC", description="Zone assumed for timestamps without an offset.")

    log_level: str = Field(default="INFO")
    cors_allowed_origins: list[str] = Field(default_factory=list)


@lru_cache
def get_settings() -> AppSettings:
    """Provide a cached singleton settings instance."""

    return AppSettings()
