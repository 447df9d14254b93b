"""Concurrent fan-out over the configured category queries."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable, Sequence

from pydantic import ValidationError

from ..categories import CategoryQuery
from ..models import CatalogItem
from .tmdb import CatalogFetchError, TMDBClient

logger = logging.getLogger(__name__)


class CategoryLoadError(RuntimeError):
    """Raised when any category request of a feed refresh fails."""

    def __init__(self, title: str, cause: Exception):
        super().__init__(f"Failed to load category {title!r}: {cause}")
        self.title = title


class CategoryAggregator:
    """Fetch every category concurrently and fail as soon as one fails."""

    def __init__(self, client: TMDBClient):
        self._client = client

    async def fetch_all(
        self, queries: Sequence[CategoryQuery]
    ) -> dict[str, list[CatalogItem]]:
        """Return ``title -> items`` in configured order.

        The first failing request raises :class:`CategoryLoadError` and the
        remaining in-flight requests are cancelled.
        """

        tasks = [asyncio.create_task(self._fetch_category(query)) for query in queries]
        try:
            results = await asyncio.gather(*tasks)
        except Exception:
            for task in tasks:
                task.cancel()
            raise

        return {query.title: items for query, items in zip(queries, results)}

    async def _fetch_category(self, query: CategoryQuery) -> list[CatalogItem]:
        try:
            payload = await self._client.fetch(
                query.route, self._client.locale_params()
            )
        except CatalogFetchError as exc:
            raise CategoryLoadError(query.title, exc) from exc
        results = payload.get("results")
        if results is None:
            results = []
        if not isinstance(results, list):
            raise CategoryLoadError(
                query.title,
                CatalogFetchError(query.route, "unexpected results structure"),
            )
        items = self.parse_results(results)
        logger.debug("Loaded %s items for %s", len(items), query.title)
        return items

    @staticmethod
    def parse_results(raw_results: Iterable[Any]) -> list[CatalogItem]:
        """Validate TMDB results, dropping malformed and duplicate entries."""

        items: list[CatalogItem] = []
        seen: set[int] = set()
        for entry in raw_results:
            if not isinstance(entry, dict):
                continue
            try:
                item = CatalogItem.model_validate(entry)
            except ValidationError:
                logger.debug("Skipping malformed TMDB result: %s", entry)
                continue
            if item.id in seen:
                continue
            seen.add(item.id)
            items.append(item)
        return items
