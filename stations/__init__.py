"""
Stations domain package.

Public API:
- Domain models: ChargingStation, StationStatus, station_route_option
- Discovery: StationLocator, StationSource, OverpassMirror
- Selection: select_smart_stop
"""
from .models import ChargingStation, StationStatus, station_route_option
from .policy import StationPolicy, default_station_policy
from .sources import OverpassMirror, StationSource, StationSourceError, overpass_mirrors
from .locator import StationLocator, StationFetchExhausted
from .smart_stop import select_smart_stop, SMART_STOP_THRESHOLD_PCT

__all__ = [
    "ChargingStation",
    "StationStatus",
    "station_route_option",
    "StationPolicy",
    "default_station_policy",
    "OverpassMirror",
    "StationSource",
    "StationSourceError",
    "overpass_mirrors",
    "StationLocator",
    "StationFetchExhausted",
    "select_smart_stop",
    "SMART_STOP_THRESHOLD_PCT",
]
