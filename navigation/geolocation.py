"""
Purpose: Device geolocation seam.
What it does:
The device is an external collaborator: the UI layer plugs in a
LocationProvider that answers a single-shot "current position" query.
resolve_location() never blocks the flow: denial or device error resolves
to the fallback coordinate.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

from routing.models import Coordinate

logger = logging.getLogger(__name__)


class LocationUnavailable(Exception):
    """Permission denied or the device could not produce a fix."""
    pass


class LocationProvider(ABC):
    @abstractmethod
    async def current_position(self) -> Coordinate:
        """Single-shot fix. Raises LocationUnavailable."""
        pass


class FixedLocationProvider(LocationProvider):
    """A provider pinned to one coordinate (desktop runs, simulations)."""
    def __init__(self, coordinate: Optional[Coordinate]):
        self.coordinate = coordinate

    async def current_position(self) -> Coordinate:
        if self.coordinate is None:
            raise LocationUnavailable("no fixed position configured")
        return self.coordinate


async def resolve_location(provider: Optional[LocationProvider], fallback: Coordinate) -> Coordinate:
    if provider is None:
        return fallback
    try:
        return await provider.current_position()
    except LocationUnavailable as exc:
        logger.warning("Location unavailable (%s), using fallback %s", exc, fallback.key())
        return fallback
