"""Application configuration.

Configuration is loaded from environment variables. For local development, you can provide a
`.env` file and set `WEBHARVEST_ENV_FILE` to point to it.

The resulting :class:`Settings` object is built once at process start and handed to the
orchestrator, render pool and content extractor constructors. Nothing below the service layer
reads the environment.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

BrowserFamily = str

_SUPPORTED_FAMILIES = ("chromium", "firefox", "webkit")


class Settings(BaseSettings):
    """webharvest settings.

    All fields are environment-configurable. Prefix is `WEBHARVEST_`.
    """

    model_config = SettingsConfigDict(
        env_prefix="WEBHARVEST_",
        env_file=None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    log_level: str = Field(default="INFO")

    # Content
    # 0 disables truncation entirely
    max_content_length: int = Field(default=500_000, ge=0)
    content_preview_length: int = Field(default=500, ge=1)
    min_content_chars: int = Field(default=200, ge=1)
    max_download_bytes: int = Field(default=10 * 1024 * 1024, ge=1024)

    # Timeouts (seconds)
    default_timeout_s: float = Field(default=6.0, gt=0.0, le=120.0)
    search_timeout_s: float = Field(default=10.0, gt=0.0, le=300.0)
    attempt_timeout_cap_s: float = Field(default=6.0, gt=0.0, le=120.0)
    extraction_item_timeout_s: float = Field(default=8.0, gt=0.0, le=300.0)

    # Browser
    browser_headless: bool = Field(default=True)
    browser_types: Annotated[list[BrowserFamily], NoDecode] = Field(
        default_factory=lambda: ["chromium", "firefox"]
    )
    max_browsers: int = Field(default=3, ge=1, le=10)
    browser_health_probe: bool = Field(default=True)
    # recently used browsers skip the throwaway-context probe
    browser_probe_idle_s: float = Field(default=30.0, ge=0.0)
    browser_close_timeout_s: float = Field(default=5.0, gt=0.0)
    browser_fallback_threshold: int = Field(default=3, ge=1)
    max_tracked_failure_hosts: int = Field(default=1024, ge=1)

    # Search orchestration
    enable_relevance_checking: bool = Field(default=True)
    relevance_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    high_confidence_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    force_multi_engine_search: bool = Field(default=False)
    max_query_length: int = Field(default=1000, ge=1)

    # Governor
    rate_limit_per_minute: int = Field(default=10, ge=1)
    max_concurrent_requests: int = Field(default=5, ge=1)

    # Batch extraction
    extraction_max_batch: int = Field(default=10, ge=1, le=50)
    extraction_concurrency: int = Field(default=10, ge=1, le=50)

    @field_validator("browser_types", mode="before")
    @classmethod
    def _split_browser_types(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            if value.startswith("["):
                value = json.loads(value)
            else:
                value = [part.strip() for part in value.split(",")]
        return value

    @field_validator("browser_types")
    @classmethod
    def _check_browser_types(cls, value: list[str]) -> list[str]:
        families = [v.lower() for v in value if v]
        if not families:
            raise ValueError("browser_types must name at least one browser family")
        unknown = [f for f in families if f not in _SUPPORTED_FAMILIES]
        if unknown:
            raise ValueError(f"unsupported browser families: {', '.join(unknown)}")
        return families


def load_settings() -> Settings:
    """Load settings from env.

    Returns:
        Settings: Parsed settings.
    """

    env_file_override = os.getenv("WEBHARVEST_ENV_FILE")
    if env_file_override:
        env_path = Path(env_file_override)
        return Settings(_env_file=env_path)

    default_env = Path.cwd() / ".env"
    if default_env.exists():
        return Settings(_env_file=default_env)

    return Settings()
