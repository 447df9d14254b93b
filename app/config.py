"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Iterable, Literal

from pydantic import Field, HttpUrl, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .categories import DEFAULT_CATEGORIES, DEFAULT_CATEGORY_KEYS, CategoryQuery


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="HomeFeed", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")

    tmdb_api_url: HttpUrl = Field(
        default="https://api.themoviedb.org/3", alias="TMDB_API_URL"
    )
    tmdb_api_key: str | None = Field(default=None, alias="TMDB_API_KEY")
    tmdb_read_access_token: str | None = Field(
        default=None, alias="TMDB_READ_ACCESS_TOKEN"
    )
    tmdb_image_base_url: str = Field(
        default="https://image.tmdb.org/t/p/original", alias="TMDB_IMAGE_BASE_URL"
    )
    tmdb_language: str = Field(default="en-US", alias="TMDB_LANGUAGE")

    category_keys: tuple[str, ...] = Field(
        default=DEFAULT_CATEGORY_KEYS,
        alias="CATEGORY_KEYS",
    )
    feed_stale_ms: int = Field(default=300_000, alias="FEED_STALE_MS", ge=0)
    continue_watching_limit: int = Field(
        default=8, alias="CONTINUE_WATCHING_LIMIT", ge=1, le=100
    )
    continue_watching_fetch_limit: int = Field(
        default=50, alias="CONTINUE_WATCHING_FETCH_LIMIT", ge=1, le=1_000
    )
    request_timeout_seconds: float = Field(
        default=15.0, alias="REQUEST_TIMEOUT", gt=0
    )

    database_url: str = Field(
        default="sqlite+aiosqlite:///./homefeed.db", alias="DATABASE_URL"
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("category_keys", mode="before")
    @classmethod
    def _parse_category_keys(cls, value: object) -> tuple[str, ...]:
        """Normalise category key selections from environment values."""

        if value is None:
            return DEFAULT_CATEGORY_KEYS
        if isinstance(value, str):
            raw_values = [part.strip() for part in value.split(",")]
        elif isinstance(value, Iterable):
            raw_values = [str(part).strip() for part in value]
        else:
            raise TypeError("CATEGORY_KEYS must be a string or iterable of strings")

        cleaned: list[str] = []
        for entry in raw_values:
            if not entry:
                continue
            slug = entry.replace("_", "-").replace(" ", "-").lower()
            slug = "-".join(filter(None, slug.split("-")))
            if not slug:
                continue
            if slug not in DEFAULT_CATEGORY_KEYS:
                raise ValueError("Unknown category keys configured")
            if slug not in cleaned:
                cleaned.append(slug)
        if not cleaned:
            return DEFAULT_CATEGORY_KEYS
        return tuple(cleaned)

    @model_validator(mode="after")
    def _require_single_spotlight(self) -> "Settings":
        """Ensure exactly one selected category can supply the spotlight."""

        eligible = [query for query in self.categories if query.spotlight]
        if len(eligible) != 1:
            raise ValueError(
                "CATEGORY_KEYS must include exactly one spotlight category"
            )
        return self

    @property
    def categories(self) -> tuple[CategoryQuery, ...]:
        """Return ordered category definitions for the selected keys."""

        definition_map = {query.key: query for query in DEFAULT_CATEGORIES}
        return tuple(definition_map[key] for key in self.category_keys)

    @property
    def feed_stale_seconds(self) -> float:
        return self.feed_stale_ms / 1000

    @property
    def tmdb_image_language(self) -> str:
        """Return the bare language code used for localized artwork."""

        return self.tmdb_language.split("-", 1)[0]

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
