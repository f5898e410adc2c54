"""
Purpose: Station Locator.
What it does:
Discovers charging stations inside a Viewport or around a point by asking a
priority-ordered list of interchangeable StationSources (mirrors).

- Mirrors are tried strictly in order.
- The first mirror that answers with a parseable, non-error payload is
  authoritative, even if it lists zero stations. Later mirrors are NOT asked.
- If every mirror fails the result is an empty list. "No stations" and
  "could not fetch" look the same to callers; the UI degrades either way.

Cancellation: pass a token (anything with a boolean `cancelled` attribute).
It is checked before each mirror; cancelling the task running find_stations
aborts the HTTP request in flight.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from routing.models import Coordinate, RadiusArea
from .models import ChargingStation
from .policy import StationPolicy, default_station_policy
from .sources import Area, StationSource, StationSourceError, overpass_mirrors

logger = logging.getLogger(__name__)


class StationFetchExhausted(Exception):
    """Every mirror failed. Resolved to an empty list, never surfaced."""
    pass


class StationLocator:
    def __init__(
        self,
        sources: Optional[Sequence[StationSource]] = None,
        policy: Optional[StationPolicy] = None,
    ):
        self.policy = policy or default_station_policy()
        self.sources: List[StationSource] = list(
            sources if sources is not None else overpass_mirrors(policy=self.policy)
        )

    async def query_mirrors(self, area: Area, token=None) -> List[ChargingStation]:
        """
        Strict variant: raises StationFetchExhausted when no mirror answered.
        """
        for source in self.sources:
            if token is not None and token.cancelled:
                logger.debug("Station query for %s cancelled before %s", area, source.name)
                return []
            try:
                stations = await source.fetch(area)
            except StationSourceError as exc:
                logger.warning("Mirror %s failed: %s", source.name, exc)
                continue
            logger.debug("Mirror %s returned %d stations", source.name, len(stations))
            return stations

        raise StationFetchExhausted(f"all {len(self.sources)} mirrors failed")

    async def find_stations(self, area: Area, token=None) -> List[ChargingStation]:
        try:
            return await self.query_mirrors(area, token=token)
        except StationFetchExhausted as exc:
            logger.warning("No station data for %s: %s", area, exc)
            return []

    async def find_nearby(self, center: Coordinate, radius_m: Optional[int] = None) -> List[ChargingStation]:
        """Radius search around the rider for the stations list screen."""
        area = RadiusArea(center=center, radius_m=radius_m or self.policy.nearby_radius_m)
        return await self.find_stations(area)
