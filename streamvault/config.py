"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="StreamVault", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")

    database_url: str = Field(
        default="sqlite+aiosqlite:///./streamvault.db", alias="DATABASE_URL"
    )

    my_list_storage_path: str = Field(
        default="./streamvault-state.json", alias="MY_LIST_STORAGE_PATH"
    )
    my_list_storage_key: str = Field(
        default="streamvault-content-storage", alias="MY_LIST_STORAGE_KEY"
    )

    watch_history_limit: int = Field(
        default=20, alias="WATCH_HISTORY_LIMIT", ge=1, le=100
    )
    search_result_limit: int = Field(
        default=50, alias="SEARCH_RESULT_LIMIT", ge=1, le=500
    )

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_log_level(cls, value: object) -> str:
        """Accept log levels in any case."""

        if value is None:
            return "INFO"
        text = str(value).strip().upper()
        if text not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError("LOG_LEVEL must be a standard logging level name")
        return text

    @field_validator("my_list_storage_key", mode="before")
    @classmethod
    def _strip_storage_key(cls, value: object) -> object:
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValueError("MY_LIST_STORAGE_KEY must not be blank")
            return stripped
        return value

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
