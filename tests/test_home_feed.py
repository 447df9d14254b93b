"""End-to-end behaviour of the home feed service against a fake TMDB."""

from __future__ import annotations

from typing import Any

import httpx
import pytest

from app.categories import DEFAULT_CATEGORIES
from app.config import Settings
from app.models import CatalogItem
from app.services.feed_cache import FeedCache
from app.services.home_feed import HomeFeedService, LoadCancelled
from app.services.tmdb import TMDBClient


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class InMemoryProgressStore:
    """Dictionary backed progress store used to exercise the service."""

    def __init__(self, entries: list[dict[str, Any]] | None = None):
        self.entries = entries or []
        self.watchlist: set[tuple[str, str]] = set()
        self.fail = False
        self.requested_limits: list[int] = []

    def _check(self) -> None:
        if self.fail:
            raise RuntimeError("storage unavailable")

    async def is_watchlisted(self, item_id, kind) -> bool:
        self._check()
        return (kind, str(item_id)) in self.watchlist

    async def toggle_watchlist(self, item: CatalogItem) -> bool:
        self._check()
        key = (item.kind, str(item.id))
        if key in self.watchlist:
            self.watchlist.remove(key)
            return False
        self.watchlist.add(key)
        return True

    async def list_continue_watching(self, limit: int) -> list[dict[str, Any]]:
        self.requested_limits.append(limit)
        self._check()
        return self.entries[:limit]

    async def record_progress(self, item, **progress) -> None:
        self._check()
        self.entries.insert(0, {**item.model_dump(exclude_none=True), "__progress": progress})

    async def remove_progress(self, item_id, kind) -> bool:
        self._check()
        return False


SPOTLIGHT_DETAIL = {
    "id": 1,
    "title": "Movie 1",
    "runtime": 142,
    "images": {"logos": [{"iso_639_1": "en", "file_path": "/logo.png"}]},
    "release_dates": {
        "results": [{"iso_3166_1": "US", "release_dates": [{"certification": "PG-13"}]}]
    },
}


def _routes() -> dict[str, Any]:
    def movies(*ids: int) -> dict:
        return {"results": [{"id": i, "title": f"Movie {i}"} for i in ids]}

    def shows(*ids: int) -> dict:
        return {"results": [{"id": i, "name": f"Show {i}"} for i in ids]}

    return {
        "/trending/movie/week": movies(1, 2),
        "/trending/tv/week": shows(10, 11),
        "/movie/top_rated": movies(3),
        "/tv/top_rated": shows(12),
        "/movie/popular": movies(4, 5),
        "/tv/popular": shows(13),
        "/movie/1": SPOTLIGHT_DETAIL,
    }


def _progress_entries(count: int) -> list[dict[str, Any]]:
    return [
        {
            "id": 100 + index,
            "name": f"Series {index}",
            "media_type": "tv",
            "__progress": {"season": 1, "episode": index + 1, "watchedDuration": 60, "fullDuration": 600},
        }
        for index in range(count)
    ]


def _service(http_client, store, clock: FakeClock) -> HomeFeedService:
    settings = Settings(_env_file=None)
    return HomeFeedService(
        settings,
        TMDBClient(settings, http_client),
        store,
        cache=FeedCache(clock=clock),
    )


@pytest.mark.anyio("asyncio")
async def test_load_home_builds_complete_feed_and_caches_it(tmdb_transport) -> None:
    requests: list[httpx.Request] = []
    clock = FakeClock()
    store = InMemoryProgressStore(_progress_entries(3))
    transport = tmdb_transport(_routes(), requests)
    async with httpx.AsyncClient(transport=transport, base_url="https://api.example.com") as http_client:
        service = _service(http_client, store, clock)
        feed = await service.load_home()

        assert feed.error is None
        assert feed.cached is False
        assert list(feed.categories) == [query.title for query in DEFAULT_CATEGORIES]
        assert feed.spotlight == CatalogItem.model_validate(SPOTLIGHT_DETAIL)
        assert [card.id for card in feed.continue_watching] == [100, 101, 102]
        assert service.cache.is_fresh(clock(), 300) is True
        assert len(requests) == 7

        clock.now += 60
        again = await service.load_home()

    assert again.cached is True
    assert again.spotlight == feed.spotlight
    assert len(requests) == 7


@pytest.mark.anyio("asyncio")
async def test_stale_cache_triggers_refetch(tmdb_transport) -> None:
    requests: list[httpx.Request] = []
    clock = FakeClock()
    transport = tmdb_transport(_routes(), requests)
    async with httpx.AsyncClient(transport=transport, base_url="https://api.example.com") as http_client:
        service = _service(http_client, InMemoryProgressStore(), clock)
        await service.load_home()
        clock.now += 300
        feed = await service.load_home()

    assert feed.cached is False
    assert len(requests) == 14


@pytest.mark.anyio("asyncio")
async def test_force_refresh_bypasses_fresh_cache(tmdb_transport) -> None:
    requests: list[httpx.Request] = []
    transport = tmdb_transport(_routes(), requests)
    async with httpx.AsyncClient(transport=transport, base_url="https://api.example.com") as http_client:
        service = _service(http_client, InMemoryProgressStore(), FakeClock())
        await service.load_home()
        feed = await service.load_home(force=True)

    assert feed.cached is False
    assert len(requests) == 14


@pytest.mark.anyio("asyncio")
async def test_category_failure_surfaces_error_without_partial_feed(tmdb_transport) -> None:
    routes = _routes()
    routes["/movie/popular"] = 500
    store = InMemoryProgressStore(_progress_entries(2))
    transport = tmdb_transport(routes)
    async with httpx.AsyncClient(transport=transport, base_url="https://api.example.com") as http_client:
        service = _service(http_client, store, FakeClock())
        feed = await service.load_home()

    assert feed.error is not None
    assert "Popular Movies" in feed.error
    assert feed.categories == {}
    assert feed.spotlight is None
    assert len(feed.continue_watching) == 2
    assert service.cache.get() is None


@pytest.mark.anyio("asyncio")
async def test_spotlight_detail_failure_keeps_summary(tmdb_transport) -> None:
    routes = _routes()
    routes["/movie/1"] = 404
    clock = FakeClock()
    transport = tmdb_transport(routes)
    async with httpx.AsyncClient(transport=transport, base_url="https://api.example.com") as http_client:
        service = _service(http_client, InMemoryProgressStore(), clock)
        feed = await service.load_home()

    assert feed.error is None
    assert feed.spotlight == CatalogItem(id=1, title="Movie 1")
    assert service.cache.is_fresh(clock(), 300) is True


@pytest.mark.anyio("asyncio")
async def test_empty_spotlight_category_leaves_spotlight_unset(tmdb_transport) -> None:
    routes = _routes()
    routes["/trending/movie/week"] = {"results": []}
    clock = FakeClock()
    transport = tmdb_transport(routes)
    async with httpx.AsyncClient(transport=transport, base_url="https://api.example.com") as http_client:
        service = _service(http_client, InMemoryProgressStore(), clock)
        feed = await service.load_home()

    assert feed.spotlight is None
    assert feed.categories["Trending TV Shows"]
    assert service.cache.is_fresh(clock(), 300) is False


@pytest.mark.anyio("asyncio")
async def test_progress_failure_degrades_to_empty_row(tmdb_transport) -> None:
    store = InMemoryProgressStore(_progress_entries(2))
    store.fail = True
    transport = tmdb_transport(_routes())
    async with httpx.AsyncClient(transport=transport, base_url="https://api.example.com") as http_client:
        service = _service(http_client, store, FakeClock())
        feed = await service.load_home()

    assert feed.error is None
    assert feed.continue_watching == []
    assert feed.spotlight_in_watchlist is False
    assert len(feed.categories) == 6


@pytest.mark.anyio("asyncio")
async def test_cancelled_load_is_not_applied_to_cache(tmdb_transport) -> None:
    service_holder: dict[str, Any] = {}
    routes = _routes()

    def cancel_while_in_flight(_: httpx.Request) -> dict:
        service_holder["token"].cancel()
        return {"results": [{"id": 3, "title": "Movie 3"}]}

    routes["/movie/top_rated"] = cancel_while_in_flight
    transport = tmdb_transport(routes)
    async with httpx.AsyncClient(transport=transport, base_url="https://api.example.com") as http_client:
        service = _service(http_client, InMemoryProgressStore(), FakeClock())
        token = service.begin_load()
        service_holder["token"] = token
        with pytest.raises(LoadCancelled):
            await service.load_home(token)

    assert token.cancelled is True
    assert service.cache.get() is None


@pytest.mark.anyio("asyncio")
async def test_continue_watching_cap_applies_at_presentation(tmdb_transport) -> None:
    store = InMemoryProgressStore(_progress_entries(12))
    transport = tmdb_transport(_routes())
    async with httpx.AsyncClient(transport=transport, base_url="https://api.example.com") as http_client:
        service = _service(http_client, store, FakeClock())
        feed = await service.load_home()

    assert store.requested_limits == [50]
    assert len(feed.continue_watching) == 12
    payload = feed.to_payload("https://image.example.com", continue_watching_limit=8)
    row = payload["continueWatching"]
    assert [card["id"] for card in row["items"]] == list(range(100, 108))
    assert row["hasMore"] is True
    assert row["total"] == 12
    assert payload["spotlight"]["logo"] == "https://image.example.com/logo.png"
    assert payload["spotlight"]["contentRating"] == "PG-13"
    assert payload["spotlight"]["runtimeLabel"] == "2h 22m"


@pytest.mark.anyio("asyncio")
async def test_spotlight_watchlist_state_and_toggle(tmdb_transport) -> None:
    store = InMemoryProgressStore()
    store.watchlist.add(("movie", "1"))
    transport = tmdb_transport(_routes())
    async with httpx.AsyncClient(transport=transport, base_url="https://api.example.com") as http_client:
        service = _service(http_client, store, FakeClock())
        feed = await service.load_home()
        assert feed.spotlight_in_watchlist is True

        removed = await service.toggle_watchlist(feed.spotlight)
        assert removed is False

        store.fail = True
        assert await service.toggle_watchlist(feed.spotlight) is False
        assert await service.is_watchlisted(1, "movie") is False
        assert await service.record_progress(feed.spotlight, watched_duration=10) is False


@pytest.mark.anyio("asyncio")
async def test_malformed_progress_entry_does_not_break_the_feed(tmdb_transport) -> None:
    store = InMemoryProgressStore(
        [
            {"id": 7, "title": "Ok", "backdrop_path": 123},
            {"id": 8, "title": 404},
            *_progress_entries(1),
        ]
    )
    transport = tmdb_transport(_routes())
    async with httpx.AsyncClient(transport=transport, base_url="https://api.example.com") as http_client:
        service = _service(http_client, store, FakeClock())
        feed = await service.load_home()

    assert feed.error is None
    assert len(feed.categories) == 6
    assert [card.id for card in feed.continue_watching] == [7, 100]


@pytest.mark.anyio("asyncio")
async def test_load_with_cancelled_token_raises_without_touching_sources(tmdb_transport) -> None:
    requests: list[httpx.Request] = []
    store = InMemoryProgressStore(_progress_entries(2))
    transport = tmdb_transport(_routes(), requests)
    async with httpx.AsyncClient(transport=transport, base_url="https://api.example.com") as http_client:
        service = _service(http_client, store, FakeClock())
        token = service.begin_load()
        token.cancel()
        with pytest.raises(LoadCancelled):
            await service.load_home(token)

    assert requests == []
    assert store.requested_limits == []
    assert service.cache.get() is None
