"""Category row definitions for the home feed.

Routes carry only their paging and ``append_to_response`` fields. The
language parameters are applied per request from the configured locale.
"""

from __future__ import annotations

from dataclasses import dataclass


_QUERY_SUFFIX = "append_to_response=images,content_ratings"


@dataclass(frozen=True)
class CategoryQuery:
    """Describes a single category row fetched from TMDB."""

    key: str
    title: str
    route: str
    spotlight: bool = False


DEFAULT_CATEGORIES: tuple[CategoryQuery, ...] = (
    CategoryQuery(
        key="trending-movies",
        title="Trending Movies",
        route=f"/trending/movie/week?{_QUERY_SUFFIX}",
        spotlight=True,
    ),
    CategoryQuery(
        key="trending-tv",
        title="Trending TV Shows",
        route=f"/trending/tv/week?{_QUERY_SUFFIX}",
    ),
    CategoryQuery(
        key="top-rated-movies",
        title="Top Rated Movies",
        route=f"/movie/top_rated?page=1&{_QUERY_SUFFIX}",
    ),
    CategoryQuery(
        key="top-rated-tv",
        title="Top Rated TV Shows",
        route=f"/tv/top_rated?page=1&{_QUERY_SUFFIX}",
    ),
    CategoryQuery(
        key="popular-movies",
        title="Popular Movies",
        route=f"/movie/popular?page=1&{_QUERY_SUFFIX}",
    ),
    CategoryQuery(
        key="popular-tv",
        title="Popular TV Shows",
        route=f"/tv/popular?page=1&{_QUERY_SUFFIX}",
    ),
)

DEFAULT_CATEGORY_KEYS: tuple[str, ...] = tuple(
    category.key for category in DEFAULT_CATEGORIES
)


def spotlight_query(queries: tuple[CategoryQuery, ...]) -> CategoryQuery | None:
    """Return the category allowed to supply the spotlight, if any."""

    for query in queries:
        if query.spotlight:
            return query
    return None
