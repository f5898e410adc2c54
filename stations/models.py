"""
Purpose: Core data models for the stations domain.
What it does:
Defines a ChargingStation and its status, plus the conversion of a station
into a direct route option ("navigate to this charger").
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from routing.models import Coordinate, RouteOption


class StationStatus(str, Enum):
    """
    Advisory only: there is no live occupancy feed, so the locator always
    reports AVAILABLE.
    """
    AVAILABLE = "available"
    BUSY = "busy"
    OFFLINE = "offline"


@dataclass(frozen=True)
class ChargingStation:
    id: str
    name: str
    lat: float
    lng: float
    available_connectors: int
    total_connectors: int
    power_kw: float
    price_eur: float
    status: StationStatus = StationStatus.AVAILABLE

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.lat, self.lng)


# a short hop to a charger is assumed to cost this much battery
STATION_ROUTE_BATTERY_IMPACT_PCT = 5


def station_route_option(station: ChargingStation) -> RouteOption:
    """
    Route option used when the rider picks a charger directly from the
    stations list. Distance/duration are filled in once the session routes it.
    """
    return RouteOption(
        id=f"charge-{station.id}",
        name=f"Stop: {station.name}",
        distance_km=0,
        duration_min=0,
        battery_impact_pct=STATION_ROUTE_BATTERY_IMPACT_PCT,
        elevation_gain_m=0,
        smart_summary=f"Priority navigation to a {station.power_kw:g}kW charger.",
        suggested_station_id=station.id,
    )
