"""
Purpose: Smart Stop Selector.
What it does:
Decides whether a charging stop should be suggested for a route and which
station to recommend.

Policy:
- only when route.battery_impact_pct > threshold (40 %)
- and at least one station was discovered in the corridor
- pick stations[len(stations) // 2]

The index midpoint is NOT a geometric midpoint along the path. It is kept
as-is until product decides otherwise.
"""

from __future__ import annotations

from typing import Optional, Sequence

from routing.models import RouteOption
from .models import ChargingStation

SMART_STOP_THRESHOLD_PCT = 40


def select_smart_stop(
    route: Optional[RouteOption],
    stations_along_route: Sequence[ChargingStation],
    threshold_pct: int = SMART_STOP_THRESHOLD_PCT,
) -> Optional[ChargingStation]:
    if route is None or not stations_along_route:
        return None

    if route.battery_impact_pct <= threshold_pct:
        return None

    return stations_along_route[len(stations_along_route) // 2]
