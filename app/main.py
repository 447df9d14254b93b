"""Entry point for the FastAPI-powered home feed service."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, Literal

import httpx
from fastapi import FastAPI, HTTPException, Query, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from .config import settings
from .database import Database
from .models import CatalogItem
from .services.home_feed import HomeFeedService
from .services.progress_store import SQLProgressStore
from .services.tmdb import TMDBClient

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app: FastAPI


class ProgressUpdate(BaseModel):
    """Body of a playback progress report."""

    model_config = ConfigDict(populate_by_name=True)

    item: CatalogItem
    season: int = Field(default=1, ge=1)
    episode: int = Field(default=1, ge=1)
    watched_duration: float = Field(default=0.0, ge=0, alias="watchedDuration")
    full_duration: float = Field(default=0.0, ge=0, alias="fullDuration")


@asynccontextmanager
async def lifespan(_: FastAPI):
    exit_stack = AsyncExitStack()
    tmdb_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.tmdb_api_url),
            timeout=httpx.Timeout(settings.request_timeout_seconds, connect=5.0),
        )
    )
    if not (settings.tmdb_api_key or settings.tmdb_read_access_token):
        logger.warning("No TMDB credentials configured; category loads will fail")

    database = Database(settings.database_url)
    await database.create_all()

    tmdb = TMDBClient(settings, tmdb_http_client)
    store = SQLProgressStore(database.session_factory)
    feed_service = HomeFeedService(settings, tmdb, store)

    app.state.feed_service = feed_service

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await database.dispose()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Home feed aggregation over the TMDB catalog",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_feed_service(app: FastAPI) -> HomeFeedService:
    service = getattr(app.state, "feed_service", None)
    if not isinstance(service, HomeFeedService):
        raise RuntimeError("Feed service not initialised")
    return service


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/api/home")
    async def home(refresh: bool = False) -> dict[str, Any]:
        service = get_feed_service(fastapi_app)
        feed = await service.load_home(force=refresh)
        if feed.error:
            raise HTTPException(status_code=502, detail=feed.error)
        return feed.to_payload(
            settings.tmdb_image_base_url,
            continue_watching_limit=settings.continue_watching_limit,
            language=settings.tmdb_image_language,
        )

    @fastapi_app.get("/api/continue-watching")
    async def continue_watching(
        limit: int | None = Query(default=None, ge=1, le=1_000),
    ) -> dict[str, Any]:
        service = get_feed_service(fastapi_app)
        cards = await service.load_continue_watching(service.begin_load(), limit=limit)
        return {"items": [card.to_payload() for card in cards]}

    @fastapi_app.get("/api/watchlist/{kind}/{item_id}")
    async def watchlist_status(
        kind: Literal["movie", "series"], item_id: int
    ) -> dict[str, bool]:
        service = get_feed_service(fastapi_app)
        return {"inWatchlist": await service.is_watchlisted(item_id, kind)}

    @fastapi_app.post("/api/watchlist")
    async def toggle_watchlist(item: CatalogItem) -> dict[str, bool]:
        service = get_feed_service(fastapi_app)
        return {"inWatchlist": await service.toggle_watchlist(item)}

    @fastapi_app.put("/api/progress", status_code=204)
    async def record_progress(update: ProgressUpdate) -> Response:
        service = get_feed_service(fastapi_app)
        stored = await service.record_progress(
            update.item,
            season=update.season,
            episode=update.episode,
            watched_duration=update.watched_duration,
            full_duration=update.full_duration,
        )
        if not stored:
            raise HTTPException(status_code=503, detail="Progress could not be saved")
        return Response(status_code=204)

    @fastapi_app.delete("/api/progress/{kind}/{item_id}", status_code=204)
    async def remove_progress(kind: Literal["movie", "series"], item_id: int) -> Response:
        service = get_feed_service(fastapi_app)
        if not await service.remove_progress(item_id, kind):
            raise HTTPException(status_code=404, detail="No progress recorded")
        return Response(status_code=204)


app = create_app()
