"""
Configuration and settings for the gatekeeper service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # GitHub repository that holds the JSON documents
    github_token: Optional[str] = Field(default=None)
    github_api_url: str = Field(default="https://api.github.com")
    repo_owner: str = Field(default="IYAOAA")
    repo_name: str = Field(default="1000HomeVibes")
    branch: str = Field(default="main")
    user_agent: str = Field(default="catalog-gatekeeper")

    # Document paths inside the repository
    products_path: str = Field(
        default="data/products.json",
        validation_alias=AliasChoices("products_path", "file_path"),
    )
    clicks_path: str = Field(default="data/clicks.json")
    wisdom_path: str = Field(default="data/product-wisdom.json")

    # Shared secret for every mutating route
    admin_secret: Optional[str] = Field(default=None)

    # LLM / Gemini
    gemini_api_key: Optional[str] = Field(default=None)
    gemini_model: str = Field(default="gemini-2.5-flash")
    generated_count: int = Field(default=3, ge=1, le=10)

    # Catalog behaviour
    default_provider: str = Field(default="Amazon")
    conflict_retries: int = Field(default=1, ge=0)
    request_timeout: float = Field(default=30.0)
    analytics_window_days: int = Field(default=7, ge=1)

    # HTTP surface
    cors_origins: str = Field(default="*")
    log_level: str = Field(default="INFO")

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
