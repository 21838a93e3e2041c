"""Location point model."""

from __future__ import annotations

import math
from typing import Any

from pydantic import AliasChoices, Field, field_validator

from trackmap.models._base import TrackMapModel, TrackTimestamp


class Point(TrackMapModel):
    """A single GPS fix.

    Parameters
    ----------
    lat : float
        Latitude in degrees.
    lng : float
        Longitude in degrees.
    time : datetime
        Capture time (UTC).
    speed : float or None
        Speed in km/h, when the source reports it.
    accuracy : float or None
        Horizontal accuracy in metres, when the source reports it.
    """

    lat: float = Field(validation_alias=AliasChoices("lat", "latitude", "gpsLatitude"))
    lng: float = Field(validation_alias=AliasChoices("lng", "longitude", "lon", "gpsLongitude"))
    time: TrackTimestamp = Field(
        validation_alias=AliasChoices("time", "timestamp", "gpsTime", "gpsTimeStamp", "gps_timestamp"),
    )
    speed: float | None = Field(default=None, validation_alias=AliasChoices("speed", "gpsSpeed"))
    accuracy: float | None = Field(default=None, validation_alias=AliasChoices("accuracy", "hdop"))

    @field_validator("lat", "lng")
    @classmethod
    def _finite_coordinate(cls, value: float) -> float:
        if math.isnan(value) or math.isinf(value):
            raise ValueError("coordinate must be finite")
        return value

    @field_validator("speed", "accuracy", mode="before")
    @classmethod
    def _optional_number(cls, value: Any) -> Any:
        if value is None or value == "" or value == "--":
            return None
        return value

    @property
    def coordinates(self) -> tuple[float, float]:
        """``(lat, lng)`` pair as map widgets expect it."""
        return (self.lat, self.lng)
