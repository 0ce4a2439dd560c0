"""Application configuration objects."""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pydantic settings used to configure the client and its controllers."""

    model_config = SettingsConfigDict(
        env_prefix="TEATRADE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    app_name: str = Field(
        default="Tea Trade Console",
        description="Human friendly name used in log lines and export titles.",
    )
    environment: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        description="Deployment environment flag used for logging.",
    )
    api_base_url: str = Field(
        default="http://localhost:3001",
        description="Base URL of the tea-trading REST API.",
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Transport timeout in seconds for every API request.",
    )
    page_limit: int = Field(
        default=100,
        ge=1,
        description="Rows requested per page by list controllers.",
    )
    fetch_all_limit: int = Field(
        default=10000,
        ge=1,
        description="Row cap for the unbounded fetch that materializes every matching id.",
    )
    url_debounce_seconds: float = Field(
        default=0.3,
        ge=0,
        description="Debounce window before filter changes are written to the URL.",
    )
    bulk_delete_timeout_seconds: float | None = Field(
        default=10.0,
        description="Abort guard for delete calls; unset to rely on the transport timeout.",
    )
    max_upload_bytes: int = Field(
        default=10 * 1024 * 1024,
        ge=1,
        description="Largest CSV file accepted for upload.",
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level passed to logging setup.",
    )

    @field_validator("api_base_url")
    @classmethod
    def _validate_base_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("api_base_url must start with http:// or https://")
        return value.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Return a cached instance of :class:`Settings`."""

    return Settings()


__all__ = ["Settings", "get_settings"]
