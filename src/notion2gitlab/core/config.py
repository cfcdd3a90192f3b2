"""Application configuration powered by Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Strongly typed application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="NOTION2GITLAB_",
        extra="ignore",
    )

    environment: Literal["dev", "staging", "prod"] = Field(default="dev")
    project_name: str = Field(default="Notion to GitLab Importer")
    version: str = Field(default="0.1.0")

    gitlab_domain: str | None = None
    gitlab_token: str | None = Field(default=None, min_length=1)

    rate_limit_seconds: float = Field(default=1.0, ge=0.0)
    project_page_size: int = Field(default=100, ge=1, le=100)
    project_max_pages: int = Field(default=10, ge=1)
    request_timeout_seconds: float = Field(default=30.0, gt=0.0)

    state_path: str = Field(default="./data/wizard-state.json")
    results_dir: str = Field(default="./data/results")

    log_level: str = Field(default="INFO")

    cors_allowed_origins: list[str] = Field(default_factory=list)


@lru_cache
def get_settings() -> AppSettings:
    """Provide a cached singleton settings instance."""

    return AppSettings()
