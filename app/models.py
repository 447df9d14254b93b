"""Pydantic models describing catalog and feed payloads."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field

from .utils import build_image_url, format_release_date, format_runtime

MediaKind = Literal["movie", "series"]

ROUTE_SEGMENTS: dict[str, str] = {"movie": "movie", "series": "tv"}


def media_kind_from_type(value: str | None) -> MediaKind | None:
    """Map TMDB/legacy media type labels onto a :data:`MediaKind`."""

    if not value:
        return None
    lowered = value.strip().lower()
    if lowered == "movie":
        return "movie"
    if lowered in {"tv", "series", "show"}:
        return "series"
    return None


class CatalogItem(BaseModel):
    """A movie or series record as returned by TMDB list or detail routes."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    title: str | None = None
    name: str | None = None
    media_type: str | None = None
    overview: str | None = None
    backdrop_path: str | None = None
    poster_path: str | None = None
    vote_average: float | None = None
    release_date: str | None = None
    first_air_date: str | None = None
    runtime: int | None = None
    number_of_seasons: int | None = None
    images: dict[str, Any] | None = None
    content_ratings: dict[str, Any] | None = None
    release_dates: dict[str, Any] | None = None

    @property
    def kind(self) -> MediaKind:
        explicit = media_kind_from_type(self.media_type)
        if explicit is not None:
            return explicit
        return "movie" if self.title else "series"

    @property
    def route_segment(self) -> str:
        return ROUTE_SEGMENTS[self.kind]

    def display_title(self) -> str:
        title = (self.title or self.name or "").strip()
        return title or "Untitled"

    def logo_path(self, language: str = "en") -> str | None:
        """Return the first logo localized for ``language``."""

        logos = (self.images or {}).get("logos") or []
        for logo in logos:
            if isinstance(logo, dict) and logo.get("iso_639_1") == language:
                path = logo.get("file_path")
                if path:
                    return str(path)
        return None

    def content_rating(self, region: str = "US") -> str | None:
        """Return the certification for ``region`` if TMDB supplied one."""

        if self.kind == "movie":
            results = (self.release_dates or {}).get("results") or []
            for result in results:
                if not isinstance(result, dict) or result.get("iso_3166_1") != region:
                    continue
                for release in result.get("release_dates") or []:
                    certification = (release or {}).get("certification")
                    if certification:
                        return str(certification)
            return None

        results = (self.content_ratings or {}).get("results") or []
        for result in results:
            if isinstance(result, dict) and result.get("iso_3166_1") == region:
                rating = result.get("rating")
                if rating:
                    return str(rating)
        return None

    def release_label(self) -> str | None:
        return format_release_date(self.release_date or self.first_air_date)

    def runtime_label(self) -> str | None:
        if self.runtime:
            return format_runtime(self.runtime)
        if self.number_of_seasons:
            suffix = "season" if self.number_of_seasons == 1 else "seasons"
            return f"{self.number_of_seasons} {suffix}"
        return None

    def to_feed_stub(self, image_base_url: str) -> dict[str, object]:
        """Return the compact representation used inside category rows."""

        stub: dict[str, object] = {
            "id": self.id,
            "type": self.kind,
            "name": self.display_title(),
        }
        if self.overview:
            stub["overview"] = self.overview
        poster = build_image_url(self.poster_path, image_base_url)
        if poster:
            stub["poster"] = poster
        backdrop = build_image_url(self.backdrop_path, image_base_url)
        if backdrop:
            stub["backdrop"] = backdrop
        if self.vote_average is not None:
            stub["rating"] = round(self.vote_average, 1)
        release = self.release_date or self.first_air_date
        if release:
            stub["releaseDate"] = release
        return stub

    def to_spotlight_payload(
        self,
        image_base_url: str,
        *,
        language: str = "en",
        in_watchlist: bool = False,
    ) -> dict[str, object]:
        """Return the hero payload including the extended detail fields."""

        payload = self.to_feed_stub(image_base_url)
        payload["background"] = build_image_url(
            self.backdrop_path, image_base_url
        ) or build_image_url(self.poster_path, image_base_url)
        payload["logo"] = build_image_url(self.logo_path(language), image_base_url)
        payload["releaseLabel"] = self.release_label()
        payload["runtimeLabel"] = self.runtime_label()
        payload["contentRating"] = self.content_rating()
        payload["path"] = f"/{self.route_segment}/{self.id}"
        payload["watchPath"] = f"/{self.route_segment}/{self.id}?watch=1"
        payload["inWatchlist"] = in_watchlist
        return payload


class NavigationTarget(BaseModel):
    """Where a continue-watching card resumes playback."""

    model_config = ConfigDict(frozen=True)

    kind: MediaKind
    id: int | str
    season: int = 1
    episode: int = 1

    @property
    def path(self) -> str:
        segment = ROUTE_SEGMENTS[self.kind]
        return (
            f"/{segment}/{self.id}?watch=1"
            f"&season={self.season}&episode={self.episode}"
        )


class ContinueWatchingCard(BaseModel):
    """Projection of a progress entry joined with its catalog metadata."""

    model_config = ConfigDict(frozen=True)

    id: int | str
    target: NavigationTarget
    title: str
    image: str | None = None
    percent: int = Field(default=0, ge=0, le=100)
    remaining: str
    label: str

    def to_payload(self) -> dict[str, object]:
        return {
            "id": self.id,
            "type": self.target.kind,
            "season": self.target.season,
            "episode": self.target.episode,
            "path": self.target.path,
            "title": self.title,
            "image": self.image,
            "percent": self.percent,
            "remaining": self.remaining,
            "label": self.label,
        }


@dataclass(frozen=True, slots=True)
class FeedSnapshot:
    """Category rows plus spotlight captured by one successful refresh."""

    categories: Mapping[str, tuple[CatalogItem, ...]]
    spotlight: CatalogItem | None
    captured_at: float

    def has_content(self) -> bool:
        return any(items for items in self.categories.values())


@dataclass(slots=True)
class HomeFeed:
    """Render-ready result of loading the home screen."""

    categories: Mapping[str, tuple[CatalogItem, ...]] = field(default_factory=dict)
    spotlight: CatalogItem | None = None
    spotlight_in_watchlist: bool = False
    continue_watching: list[ContinueWatchingCard] = field(default_factory=list)
    error: str | None = None
    cached: bool = False
    captured_at: float | None = None

    def visible_continue_watching(self, limit: int) -> list[ContinueWatchingCard]:
        return self.continue_watching[:limit]

    def to_payload(
        self,
        image_base_url: str,
        *,
        continue_watching_limit: int = 8,
        language: str = "en",
    ) -> dict[str, object]:
        visible = self.visible_continue_watching(continue_watching_limit)
        spotlight = None
        if self.spotlight is not None:
            spotlight = self.spotlight.to_spotlight_payload(
                image_base_url,
                language=language,
                in_watchlist=self.spotlight_in_watchlist,
            )
        return {
            "spotlight": spotlight,
            "continueWatching": {
                "items": [card.to_payload() for card in visible],
                "total": len(self.continue_watching),
                "hasMore": len(self.continue_watching) > len(visible),
            },
            "categories": [
                {
                    "title": title,
                    "items": [item.to_feed_stub(image_base_url) for item in items],
                }
                for title, items in self.categories.items()
            ],
            "error": self.error,
            "cached": self.cached,
            "capturedAt": self.captured_at,
        }
