"""Selection and hydration of the hero spotlight item."""

from __future__ import annotations

import logging
from typing import Mapping, Sequence

from pydantic import ValidationError

from ..categories import CategoryQuery, spotlight_query
from ..models import CatalogItem
from .tmdb import CatalogFetchError, TMDBClient

logger = logging.getLogger(__name__)


class SpotlightResolver:
    """Promote one catalog item to the spotlight, hydrated with detail fields."""

    def __init__(self, client: TMDBClient):
        self._client = client

    @staticmethod
    def pick(
        categories: Mapping[str, Sequence[CatalogItem]],
        queries: Sequence[CategoryQuery],
    ) -> CatalogItem | None:
        """Return the first item of the spotlight-eligible category."""

        query = spotlight_query(tuple(queries))
        if query is None:
            return None
        items = categories.get(query.title) or ()
        return items[0] if items else None

    @staticmethod
    def detail_fields(item: CatalogItem) -> list[str]:
        fields = ["images", "content_ratings"]
        if item.kind == "movie":
            fields.append("release_dates")
        return fields

    async def resolve(self, item: CatalogItem | None) -> CatalogItem | None:
        """Return the detail record for ``item`` or ``item`` itself on failure."""

        if item is None:
            return None
        try:
            payload = await self._client.fetch_detail(
                item.kind, item.id, self.detail_fields(item)
            )
            return CatalogItem.model_validate(payload)
        except (CatalogFetchError, ValidationError) as exc:
            logger.warning(
                "Spotlight detail fetch failed for %s %s, using summary: %s",
                item.kind,
                item.id,
                exc,
            )
            return item
