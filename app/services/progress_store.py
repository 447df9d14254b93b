"""Local persistence of watchlist membership and playback progress."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import ProgressRecord, WatchlistRecord
from ..models import ROUTE_SEGMENTS, CatalogItem, MediaKind
from .continue_watching import PROGRESS_KEY

logger = logging.getLogger(__name__)


class ProgressStore(Protocol):
    """Interface the feed service relies on for per-user local state."""

    async def is_watchlisted(self, item_id: int | str, kind: MediaKind) -> bool:
        ...

    async def toggle_watchlist(self, item: CatalogItem) -> bool:
        ...

    async def list_continue_watching(self, limit: int) -> list[dict[str, Any]]:
        ...

    async def record_progress(
        self,
        item: CatalogItem,
        *,
        season: int,
        episode: int,
        watched_duration: float,
        full_duration: float,
    ) -> None:
        ...

    async def remove_progress(self, item_id: int | str, kind: MediaKind) -> bool:
        ...


class SQLProgressStore:
    """:class:`ProgressStore` backed by the SQLAlchemy async session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def is_watchlisted(self, item_id: int | str, kind: MediaKind) -> bool:
        async with self._session_factory() as session:
            record = await session.get(
                WatchlistRecord, (ROUTE_SEGMENTS[kind], str(item_id))
            )
            return record is not None

    async def toggle_watchlist(self, item: CatalogItem) -> bool:
        """Add or remove ``item`` and return the resulting membership."""

        key = (item.route_segment, str(item.id))
        async with self._session_factory() as session:
            record = await session.get(WatchlistRecord, key)
            if record is not None:
                await session.delete(record)
                await session.commit()
                logger.info("Removed %s %s from watchlist", *key)
                return False
            session.add(
                WatchlistRecord(
                    media_type=key[0],
                    content_id=key[1],
                    payload=item.model_dump(mode="json", exclude_none=True),
                )
            )
            await session.commit()
            logger.info("Added %s %s to watchlist", *key)
            return True

    async def record_progress(
        self,
        item: CatalogItem,
        *,
        season: int,
        episode: int,
        watched_duration: float,
        full_duration: float,
    ) -> None:
        key = (item.route_segment, str(item.id))
        now = datetime.utcnow()
        async with self._session_factory() as session:
            record = await session.get(ProgressRecord, key)
            if record is None:
                record = ProgressRecord(media_type=key[0], content_id=key[1])
                session.add(record)
            record.season = season
            record.episode = episode
            record.watched_duration = watched_duration
            record.full_duration = full_duration
            record.payload = item.model_dump(mode="json", exclude_none=True)
            record.updated_at = now
            await session.commit()

    async def remove_progress(self, item_id: int | str, kind: MediaKind) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                delete(ProgressRecord).where(
                    ProgressRecord.media_type == ROUTE_SEGMENTS[kind],
                    ProgressRecord.content_id == str(item_id),
                )
            )
            await session.commit()
            return bool(result.rowcount)

    async def list_continue_watching(self, limit: int) -> list[dict[str, Any]]:
        """Return raw progress entries, most recently watched first."""

        async with self._session_factory() as session:
            stmt = (
                select(ProgressRecord)
                .order_by(ProgressRecord.updated_at.desc())
                .limit(limit)
            )
            result = await session.execute(stmt)
            records = result.scalars().all()

        return [self._record_to_entry(record) for record in records]

    @staticmethod
    def _record_to_entry(record: ProgressRecord) -> dict[str, Any]:
        entry: dict[str, Any] = dict(record.payload or {})
        entry["media_type"] = record.media_type
        entry[PROGRESS_KEY] = {
            "season": record.season,
            "episode": record.episode,
            "watchedDuration": record.watched_duration,
            "fullDuration": record.full_duration,
        }
        return entry
