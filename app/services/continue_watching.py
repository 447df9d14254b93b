"""Projection of locally tracked playback progress into feed cards.

Progress entries have been written by several schema versions over time, so
each logical value is read through a resolver that walks the known field
names in priority order: the nested ``__progress`` object first, then the
flat snake_case and camelCase variants.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from pydantic import ValidationError

from ..models import (
    ContinueWatchingCard,
    MediaKind,
    NavigationTarget,
    media_kind_from_type,
)
from ..utils import (
    build_image_url,
    coerce_number,
    first_present,
    format_remaining,
    round_half_up,
)

logger = logging.getLogger(__name__)

PROGRESS_KEY = "__progress"


def _progress(entry: Mapping[str, Any]) -> Mapping[str, Any]:
    progress = entry.get(PROGRESS_KEY)
    return progress if isinstance(progress, Mapping) else {}


def _positive_int(value: Any) -> int:
    number = coerce_number(value, default=1.0)
    return max(1, int(number))


def resolve_media_kind(entry: Mapping[str, Any]) -> MediaKind:
    explicit = first_present(entry.get("mediaType"), entry.get("media_type"))
    kind = media_kind_from_type(explicit) if isinstance(explicit, str) else None
    if kind is not None:
        return kind
    return "movie" if entry.get("title") else "series"


def resolve_season(entry: Mapping[str, Any]) -> int:
    if resolve_media_kind(entry) == "movie":
        return 1
    return _positive_int(
        first_present(
            _progress(entry).get("season"),
            entry.get("season_number"),
            entry.get("season"),
            default=1,
        )
    )


def resolve_episode(entry: Mapping[str, Any]) -> int:
    if resolve_media_kind(entry) == "movie":
        return 1
    return _positive_int(
        first_present(
            _progress(entry).get("episode"),
            entry.get("episode_number"),
            entry.get("episode"),
            default=1,
        )
    )


def resolve_full_duration(entry: Mapping[str, Any]) -> float:
    return coerce_number(
        first_present(
            _progress(entry).get("fullDuration"),
            entry.get("full_duration"),
            entry.get("fullDuration"),
            default=0,
        )
    )


def resolve_watched_duration(entry: Mapping[str, Any]) -> float:
    return coerce_number(
        first_present(
            _progress(entry).get("watchedDuration"),
            entry.get("watched_duration"),
            entry.get("watchedDuration"),
            default=0,
        )
    )


def completion_percent(watched: float, full: float) -> int:
    """Return watched/full as an integer percentage clamped to 0..100."""

    if full <= 0:
        return 0
    return max(0, round_half_up(min(100.0, watched / full * 100)))


class ContinueWatchingProjector:
    """Turn raw progress entries into :class:`ContinueWatchingCard` objects."""

    def __init__(self, image_base_url: str):
        self._image_base_url = image_base_url

    def project(
        self,
        entries: Iterable[Mapping[str, Any]],
        limit: int | None = None,
    ) -> list[ContinueWatchingCard]:
        cards: list[ContinueWatchingCard] = []
        for entry in entries:
            if limit is not None and len(cards) >= limit:
                break
            if not isinstance(entry, Mapping):
                continue
            try:
                card = self.project_entry(entry)
            except (ValidationError, TypeError, ValueError) as exc:
                logger.warning(
                    "Skipping malformed progress entry %r: %s", entry.get("id"), exc
                )
                continue
            if card is not None:
                cards.append(card)
        return cards

    def project_entry(self, entry: Mapping[str, Any]) -> ContinueWatchingCard | None:
        item_id = entry.get("id")
        if item_id is None or item_id == "":
            logger.debug("Skipping progress entry without an id: %s", entry)
            return None

        kind = resolve_media_kind(entry)
        season = resolve_season(entry)
        episode = resolve_episode(entry)
        full = resolve_full_duration(entry)
        watched = resolve_watched_duration(entry)
        remaining = format_remaining(full, watched)

        if kind == "movie":
            label = f"Movie • {remaining}"
        else:
            label = f"S{season} • E{episode} • {remaining}"

        image = build_image_url(
            entry.get("backdrop_path"), self._image_base_url
        ) or build_image_url(entry.get("poster_path"), self._image_base_url)

        return ContinueWatchingCard(
            id=item_id,
            target=NavigationTarget(
                kind=kind, id=item_id, season=season, episode=episode
            ),
            title=entry.get("title") or entry.get("name") or "Untitled",
            image=image,
            percent=completion_percent(watched, full),
            remaining=remaining,
            label=label,
        )
