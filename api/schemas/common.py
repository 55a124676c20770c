"""Common shared schemas used across multiple domains."""

from typing import List

from pydantic import BaseModel, Field


class Position(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)

    def as_point(self):
        """(lng, lat) tuple as the routing core expects it."""
        return (self.lon, self.lat)


class LineStringGeometry(BaseModel):
    type: str = "LineString"
    coordinates: List[List[float]]
