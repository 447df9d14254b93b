"""HTTP client for The Movie Database (TMDB) metadata API."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

import httpx

from ..config import Settings
from ..models import ROUTE_SEGMENTS, MediaKind

logger = logging.getLogger(__name__)


class CatalogFetchError(RuntimeError):
    """Raised when a TMDB request fails or returns an unusable payload."""

    def __init__(self, route: str, reason: str, *, status_code: int | None = None):
        super().__init__(f"TMDB request {route} failed: {reason}")
        self.route = route
        self.reason = reason
        self.status_code = status_code


class TMDBClient:
    """Thin wrapper issuing GET requests against the TMDB API."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "User-Agent": f"{self._settings.app_name} (homefeed)",
        }
        if self._settings.tmdb_read_access_token:
            headers["Authorization"] = (
                f"Bearer {self._settings.tmdb_read_access_token}"
            )
        return headers

    def _auth_params(self) -> dict[str, str]:
        if self._settings.tmdb_read_access_token or not self._settings.tmdb_api_key:
            return {}
        return {"api_key": self._settings.tmdb_api_key}

    async def fetch(
        self, route: str, params: Mapping[str, Any] | None = None
    ) -> dict[str, Any]:
        """Return the decoded JSON object served at ``route``.

        ``route`` is relative to the configured API base URL and may already
        carry its own query string; ``params`` are merged into it.
        """

        url = httpx.URL(route)
        merged: dict[str, Any] = {**self._auth_params(), **(params or {})}
        if merged:
            url = url.copy_merge_params(merged)
        try:
            response = await self._client.get(url, headers=self._headers())
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.warning("TMDB request %s returned %s", route, status)
            raise CatalogFetchError(
                route, f"HTTP {status}", status_code=status
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("TMDB request %s failed: %s", route, exc)
            raise CatalogFetchError(route, exc.__class__.__name__) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise CatalogFetchError(route, "invalid JSON") from exc
        if not isinstance(payload, dict):
            raise CatalogFetchError(route, "unexpected payload structure")
        return payload

    async def fetch_detail(
        self,
        kind: MediaKind,
        item_id: int | str,
        include_fields: Iterable[str] = (),
    ) -> dict[str, Any]:
        """Fetch the detail record for a movie or series."""

        route = f"/{ROUTE_SEGMENTS[kind]}/{item_id}"
        params: dict[str, Any] = {"language": self._settings.tmdb_language}
        fields = [field for field in include_fields if field]
        if fields:
            params["append_to_response"] = ",".join(fields)
        if "images" in fields:
            params["include_image_language"] = self._settings.tmdb_image_language
        return await self.fetch(route, params)

    def locale_params(self) -> dict[str, str]:
        """Language parameters applied to every category list request."""

        return {
            "language": self._settings.tmdb_language,
            "include_image_language": self._settings.tmdb_image_language,
        }
