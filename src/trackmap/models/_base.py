"""Base model and timestamp handling for trackmap data models.

Every trackmap model inherits from :class:`TrackMapModel` which is
frozen, ignores unknown keys, and accepts both field names and the
aliases data sources commonly send (``latitude``, ``gpsTime``, ...).

Timestamps go through :data:`TrackTimestamp`, which accepts datetimes,
epoch seconds, epoch milliseconds and ISO-8601 strings and always
yields a timezone-aware UTC datetime.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def parse_timestamp(value: Any) -> datetime:
    """Convert an epoch (seconds **or** milliseconds) or ISO string to a UTC datetime.

    Raises ``ValueError`` for values that cannot be interpreted, so the
    surrounding pydantic validation reports them as field errors.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value
    if isinstance(value, bool):
        raise ValueError("boolean is not a timestamp")
    if isinstance(value, (int, float)):
        ts = float(value)
        if ts >= _MS_THRESHOLD:
            ts /= 1000.0
        try:
            return datetime.fromtimestamp(ts, tz=UTC)
        except (OverflowError, OSError) as exc:
            raise ValueError(f"timestamp out of range: {value!r}") from exc
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("empty timestamp")
        try:
            return parse_timestamp(float(text))
        except ValueError:
            pass
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        return parse_timestamp(parsed)
    raise ValueError(f"unsupported timestamp: {value!r}")


TrackTimestamp = Annotated[datetime, BeforeValidator(parse_timestamp)]
"""Annotated type that coerces epoch ints (seconds or ms) and ISO strings to UTC datetimes."""


class TrackMapModel(BaseModel):
    """Base for trackmap data models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )
