#Purpose: The OSRM "adapter/client" (the Router).
#Sole responsibility: talk to OSRM via HTTP and return normalized outputs.
#Encapsulates OSRM-specific details:
#coordinate formatting (lng,lat) - OSRM wants longitude first
#URL construction (/route/v1/{profile}/...)
#error handling: zero routes or a failed request -> RouteUnavailable
#parsing response JSON into RouteResult (km with 1 decimal, whole minutes)
#It should not contain variant, battery or session rules.

from __future__ import annotations

import logging
import os
from typing import List, Optional

import httpx
from dotenv import load_dotenv

from .models import Coordinate, RouteResult, round_half_up

# Read OSRM base URL from environment
# Example in .env:
# OSRM_BASE_URL=http://router.project-osrm.org
load_dotenv()
BASE_URL = os.getenv("OSRM_BASE_URL", "https://router.project-osrm.org")

logger = logging.getLogger(__name__)


class RouteUnavailable(Exception):
    """The provider returned no route or the request failed."""
    pass


class OSRMClient:
    """
    OSRM Adapter / Client

    Sole responsibility:
    - Talk to OSRM via HTTP
    - Convert internal Coordinate(lat, lng) -> OSRM "lng,lat"
    - Return normalized RouteResult

    Route fetches are idempotent GETs, so callers supersede stale results by
    checking the destination they asked for instead of cancelling requests.
    """
    def __init__(
        self,
        profile: str = "driving",
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or BASE_URL).rstrip("/")
        self.profile = profile #the mode of transportation (driving, walking, cycling)
        # no local deadline: OSRM answers fast or the connection fails
        self._client = client or httpx.AsyncClient(timeout=None)

    #----------------
    # Internal helpers
    #----------------
    def format_coordinates(self, coords: List[Coordinate]) -> str:
        """Convert list of Coordinate to OSRM format 'lng,lat;lng,lat;...'"""
        return ";".join(f"{coord.lng},{coord.lat}" for coord in coords)

    def _parse_route(self, data: dict, with_geometry: bool) -> RouteResult:
        routes = data.get("routes") or []
        if data.get("code", "Ok") != "Ok" or not routes:
            raise RouteUnavailable(f"OSRM error: {data.get('message', 'no route found')}")

        route = routes[0] #take the first route (OSRM may return alternatives)

        path = ()
        if with_geometry:
            geometry = route.get("geometry") or {}
            # geojson positions are [lng, lat]
            path = tuple(
                Coordinate(lat=float(lat), lng=float(lng))
                for lng, lat in geometry.get("coordinates", [])
            )

        return RouteResult(
            distance_km=round_half_up(route["distance"] / 1000, 1),
            duration_min=int(round_half_up(route["duration"] / 60)),
            path=path,
        )

    #----------------
    # Public methods
    #----------------
    async def route(
        self,
        origin: Coordinate,
        destination: Coordinate,
        *,
        with_geometry: bool = True,
    ) -> RouteResult:
        """
        Calls the OSRM /route endpoint between two coordinates.

        with_geometry=False is used while planning (only distance/duration are
        needed); the navigation session asks for the full geojson path.

        Raises:
            RouteUnavailable: zero routes, malformed payload or request error.
        """
        coordinates = self.format_coordinates([origin, destination])
        url = f"{self.base_url}/route/v1/{self.profile}/{coordinates}"

        if with_geometry:
            params = {"overview": "full", "geometries": "geojson"}
        else:
            params = {"overview": "false"} # we don't need the geometry of the route

        try:
            response = await self._client.get(url, params=params)
            data = response.json() #OSRM returns a JSON body even for "NoRoute"
            return self._parse_route(data, with_geometry)
        except RouteUnavailable:
            raise
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as exc:
            logger.warning("OSRM route %s -> %s failed: %s", origin.key(), destination.key(), exc)
            raise RouteUnavailable(str(exc)) from exc

    async def aclose(self) -> None:
        await self._client.aclose()
