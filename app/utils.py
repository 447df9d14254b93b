"""Utility helpers for the home feed service."""

from __future__ import annotations

import math
from datetime import date
from typing import Any


def first_present(*values: Any, default: Any = None) -> Any:
    """Return the first value that is not ``None``."""

    for value in values:
        if value is not None:
            return value
    return default


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up."""

    return int(math.floor(value + 0.5))


def coerce_number(value: Any, default: float = 0.0) -> float:
    """Parse ``value`` as a float, returning ``default`` when impossible."""

    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except (TypeError, ValueError):
            return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def build_image_url(path: str | None, base_url: str) -> str | None:
    if not isinstance(path, str) or not path:
        return None
    if path.startswith("http"):
        return path
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def format_release_date(value: str | None) -> str | None:
    """Return a label like ``Mar 5, 2024`` for an ISO date string."""

    if not value:
        return None
    try:
        parsed = date.fromisoformat(value[:10])
    except ValueError:
        return None
    return f"{parsed:%b} {parsed.day}, {parsed.year}"


def format_runtime(minutes: int) -> str:
    return f"{minutes // 60}h {minutes % 60}m"


def format_remaining(full_seconds: float, watched_seconds: float) -> str:
    """Return how much playback time is left, e.g. ``1h5m left``."""

    if not full_seconds:
        return "0 left"
    remaining = max(0.0, full_seconds - watched_seconds)
    minutes = round_half_up(remaining / 60)
    if minutes >= 60:
        return f"{minutes // 60}h{minutes % 60}m left"
    return f"{minutes}m left"
