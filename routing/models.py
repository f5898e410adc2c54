"""
Purpose: Core geographic and route data models.
What it does:
- Defines the value types every other package speaks:
  - Coordinate (lat, lng)
  - Viewport (south, west, north, east bounding box of the visible map)
  - RadiusArea (center + radius in meters)
  - GeocodeResult (display_name, lat, lng)
  - RouteResult (distance_km, duration_min, path)
  - RouteOption (one named route variant shown to the rider)

Rule: No HTTP calls, no session logic. Models only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence, Tuple
import math


def round_half_up(value: float, digits: int = 0) -> float:
    """
    Rounds the way map providers and UIs do (2.5 -> 3), not banker's rounding.
    """
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


@dataclass(frozen=True)
class Coordinate:
    """A point in floating point degrees."""
    lat: float
    lng: float

    def key(self) -> str:
        return f"{self.lat},{self.lng}"

    def as_tuple(self) -> Tuple[float, float]:
        return (self.lat, self.lng)


@dataclass(frozen=True)
class Viewport:
    """
    Bounding box of the visible map. Replaced every time the map pans,
    zooms or is fitted to a route.
    """
    south: float
    west: float
    north: float
    east: float

    def key(self, precision: int = 5) -> str:
        # two viewports that only differ by float noise query the same corridor
        return ",".join(
            f"{edge:.{precision}f}" for edge in (self.south, self.west, self.north, self.east)
        )

    def center(self) -> Coordinate:
        return Coordinate(
            lat=(self.south + self.north) / 2,
            lng=(self.west + self.east) / 2,
        )

    def contains(self, point: Coordinate) -> bool:
        return (
            self.south <= point.lat <= self.north
            and self.west <= point.lng <= self.east
        )

    @classmethod
    def around(cls, points: Sequence[Coordinate]) -> Viewport:
        """Smallest box containing every point of a path."""
        if not points:
            raise ValueError("Cannot build a viewport around an empty path.")
        lats = [point.lat for point in points]
        lngs = [point.lng for point in points]
        return cls(south=min(lats), west=min(lngs), north=max(lats), east=max(lngs))


@dataclass(frozen=True)
class RadiusArea:
    """Circle around a point, used for the nearby-stations search."""
    center: Coordinate
    radius_m: int


@dataclass(frozen=True)
class GeocodeResult:
    display_name: str
    lat: float
    lng: float

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.lat, self.lng)


@dataclass(frozen=True)
class RouteResult:
    """
    Normalized output of the routing provider.
    path is empty when the route was requested without geometry.
    """
    distance_km: float
    duration_min: int
    path: Tuple[Coordinate, ...] = ()


class WeatherImpact(str, Enum):
    CLEAR = "clear"
    WARNING = "warning"
    RAIN = "rain"


@dataclass(frozen=True)
class RouteOption:
    """
    One named route variant presented to the rider.

    requires_charging_stop = battery_impact_pct > current battery level
    at the time the variant was generated.
    """
    id: str
    name: str
    distance_km: float
    duration_min: int
    battery_impact_pct: int
    elevation_gain_m: int
    requires_charging_stop: bool = False
    smart_summary: str = ""
    suggested_station_id: Optional[str] = None
    is_recommended: bool = False
    weather_impact: WeatherImpact = WeatherImpact.CLEAR
    # citations attached by the advisory service, if any
    sources: Tuple[object, ...] = field(default=(), compare=False)
