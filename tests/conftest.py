"""Pytest configuration and test helpers."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest


# Ensure the application package is importable when running tests without an
# editable install. This mirrors the expected runtime layout where ``app`` sits
# at the project root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


TMDB_BASE_URL = "https://api.example.com"


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO tests to run on asyncio without requiring trio."""

    return "asyncio"


@pytest.fixture
def tmdb_transport() -> Callable[..., httpx.MockTransport]:
    """Return a factory building a fake TMDB keyed by request path.

    Route values may be a JSON payload, an HTTP status code, or a callable
    receiving the request and returning either of those.
    """

    def factory(
        routes: dict[str, Any], requests: list[httpx.Request] | None = None
    ) -> httpx.MockTransport:
        async def handler(request: httpx.Request) -> httpx.Response:
            if requests is not None:
                requests.append(request)
            response = routes.get(request.url.path)
            if callable(response):
                response = response(request)
                if hasattr(response, "__await__"):
                    response = await response
            if response is None:
                return httpx.Response(404, json={"status_message": "not found"})
            if isinstance(response, int):
                return httpx.Response(response, json={"status_message": "error"})
            return httpx.Response(200, json=response)

        return httpx.MockTransport(handler)

    return factory
