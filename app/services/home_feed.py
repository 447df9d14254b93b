"""High level orchestration of the home feed."""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from ..categories import CategoryQuery
from ..config import Settings
from ..models import CatalogItem, ContinueWatchingCard, FeedSnapshot, HomeFeed, MediaKind
from .aggregator import CategoryAggregator, CategoryLoadError
from .continue_watching import ContinueWatchingProjector
from .feed_cache import FeedCache
from .progress_store import ProgressStore
from .spotlight import SpotlightResolver
from .tmdb import TMDBClient

logger = logging.getLogger(__name__)


class LoadCancelled(Exception):
    """Raised when a load finishes after its consumer abandoned it."""


class LoadToken:
    """Cancellation handle passed through one consumer's load."""

    __slots__ = ("_cancelled",)

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise LoadCancelled()


class HomeFeedService:
    """Coordinates category aggregation, spotlight hydration and progress."""

    def __init__(
        self,
        settings: Settings,
        catalog_client: TMDBClient,
        progress_store: ProgressStore,
        *,
        cache: FeedCache | None = None,
        categories: Sequence[CategoryQuery] | None = None,
    ):
        self._settings = settings
        self._store = progress_store
        self._cache = cache or FeedCache()
        self._categories = tuple(categories or settings.categories)
        self._aggregator = CategoryAggregator(catalog_client)
        self._spotlight = SpotlightResolver(catalog_client)
        self._projector = ContinueWatchingProjector(settings.tmdb_image_base_url)
        self._refresh_lock = asyncio.Lock()

    @property
    def cache(self) -> FeedCache:
        return self._cache

    @property
    def categories(self) -> tuple[CategoryQuery, ...]:
        return self._categories

    def begin_load(self) -> LoadToken:
        return LoadToken()

    def _is_fresh(self) -> bool:
        return self._cache.is_fresh(
            self._cache.now(), self._settings.feed_stale_seconds
        )

    async def load_feed(
        self, token: LoadToken, *, force: bool = False
    ) -> tuple[FeedSnapshot, bool]:
        """Return the current snapshot and whether it came from the cache."""

        token.raise_if_cancelled()
        if not force and self._is_fresh():
            snapshot = self._cache.get()
            if snapshot is not None:
                return snapshot, True

        async with self._refresh_lock:
            # Another load may have refreshed while we waited for the lock.
            if not force and self._is_fresh():
                snapshot = self._cache.get()
                if snapshot is not None:
                    return snapshot, True

            logger.info("Refreshing home feed (%s categories)", len(self._categories))
            categories = await self._aggregator.fetch_all(self._categories)
            token.raise_if_cancelled()

            candidate = SpotlightResolver.pick(categories, self._categories)
            spotlight = await self._spotlight.resolve(candidate)
            token.raise_if_cancelled()

            snapshot = FeedSnapshot(
                categories={title: tuple(items) for title, items in categories.items()},
                spotlight=spotlight,
                captured_at=self._cache.now(),
            )
            self._cache.put(snapshot)
            return snapshot, False

    async def load_continue_watching(
        self, token: LoadToken, *, limit: int | None = None
    ) -> list[ContinueWatchingCard]:
        """Project stored progress into cards, degrading to ``[]`` on failure."""

        token.raise_if_cancelled()
        try:
            entries = await self._store.list_continue_watching(
                self._settings.continue_watching_fetch_limit
            )
        except Exception:
            logger.exception("Failed to read continue watching entries")
            entries = []
        token.raise_if_cancelled()
        return self._projector.project(entries or [], limit)

    async def load_home(
        self, token: LoadToken | None = None, *, force: bool = False
    ) -> HomeFeed:
        """Load categories, spotlight and continue watching concurrently."""

        token = token or self.begin_load()
        results = await asyncio.gather(
            self._load_feed_or_error(token, force=force),
            self.load_continue_watching(token),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        feed_result, cards = results
        snapshot, cached, error = feed_result

        in_watchlist = False
        if snapshot is not None and snapshot.spotlight is not None:
            spotlight = snapshot.spotlight
            in_watchlist = await self.is_watchlisted(spotlight.id, spotlight.kind)
        token.raise_if_cancelled()

        if snapshot is None:
            return HomeFeed(continue_watching=cards, error=error)
        return HomeFeed(
            categories=snapshot.categories,
            spotlight=snapshot.spotlight,
            spotlight_in_watchlist=in_watchlist,
            continue_watching=cards,
            cached=cached,
            captured_at=snapshot.captured_at,
        )

    async def _load_feed_or_error(
        self, token: LoadToken, *, force: bool
    ) -> tuple[FeedSnapshot | None, bool, str | None]:
        try:
            snapshot, cached = await self.load_feed(token, force=force)
        except CategoryLoadError as exc:
            logger.warning("Home feed load failed: %s", exc)
            return None, False, str(exc)
        return snapshot, cached, None

    async def is_watchlisted(self, item_id: int | str, kind: MediaKind) -> bool:
        try:
            return await self._store.is_watchlisted(item_id, kind)
        except Exception:
            logger.exception("Watchlist lookup failed for %s %s", kind, item_id)
            return False

    async def toggle_watchlist(self, item: CatalogItem) -> bool:
        """Toggle watchlist membership; a failed toggle leaves state unchanged."""

        try:
            return await self._store.toggle_watchlist(item)
        except Exception:
            logger.exception("Watchlist toggle failed for %s %s", item.kind, item.id)
            return await self.is_watchlisted(item.id, item.kind)

    async def record_progress(
        self,
        item: CatalogItem,
        *,
        season: int = 1,
        episode: int = 1,
        watched_duration: float = 0.0,
        full_duration: float = 0.0,
    ) -> bool:
        try:
            await self._store.record_progress(
                item,
                season=season,
                episode=episode,
                watched_duration=watched_duration,
                full_duration=full_duration,
            )
        except Exception:
            logger.exception("Failed to record progress for %s %s", item.kind, item.id)
            return False
        return True

    async def remove_progress(self, item_id: int | str, kind: MediaKind) -> bool:
        try:
            return await self._store.remove_progress(item_id, kind)
        except Exception:
            logger.exception("Failed to remove progress for %s %s", kind, item_id)
            return False
