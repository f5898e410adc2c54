#Purpose: Station data source adapters (one per Overpass mirror).
#Sole responsibility: talk to one provider endpoint and return normalized stations.
#Encapsulates Overpass-specific details:
#query language for bounding box vs radius-around-point
#[timeout:15] server-side budget
#tagged node records -> ChargingStation (name/operator/label, power default)
#Any failure is raised as StationSourceError so the locator can try the next mirror.

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from typing import List, Optional, Union

import httpx
from dotenv import load_dotenv

from routing.models import RadiusArea, Viewport
from .models import ChargingStation, StationStatus
from .policy import StationPolicy, default_station_policy

load_dotenv()
DEFAULT_MIRRORS = [
    "https://lz4.overpass-api.de/api/interpreter",
    "https://overpass.kumi.systems/api/interpreter",
]

logger = logging.getLogger(__name__)

Area = Union[Viewport, RadiusArea]


def mirrors_from_env() -> List[str]:
    """
    OVERPASS_MIRRORS=https://a/api/interpreter,https://b/api/interpreter
    Order is priority order.
    """
    raw = os.getenv("OVERPASS_MIRRORS")
    if not raw:
        return list(DEFAULT_MIRRORS)
    return [url.strip() for url in raw.split(",") if url.strip()]


class StationSourceError(Exception):
    """One source could not produce a usable answer."""
    pass


class StationSource(ABC):
    """
    Capability interface for interchangeable station providers.
    The locator only ever sees this.
    """
    name: str = "source"

    @abstractmethod
    async def fetch(self, area: Area) -> List[ChargingStation]:
        """Return every station inside the area or raise StationSourceError."""
        pass


def build_overpass_query(area: Area, policy: StationPolicy) -> str:
    header = f"[out:json][timeout:{policy.server_timeout_s}];"
    if isinstance(area, Viewport):
        bbox = f"{area.south},{area.west},{area.north},{area.east}"
        return f'{header}node["amenity"="charging_station"]({bbox});out {policy.bbox_result_limit};'
    if isinstance(area, RadiusArea):
        around = f"around:{area.radius_m},{area.center.lat},{area.center.lng}"
        return f'{header}node["amenity"="charging_station"]({around});out;'
    raise TypeError(f"Unsupported area type: {type(area).__name__}")


def _parse_power(raw, fallback: float) -> float:
    # the power tag is free text in OSM ("22", "22 kW", "")
    if raw is None:
        return fallback
    try:
        return float(str(raw).lower().replace("kw", "").strip())
    except ValueError:
        return fallback


def normalize_element(element: dict, price_eur: float, policy: StationPolicy) -> Optional[ChargingStation]:
    """
    Convert one Overpass node into a ChargingStation.
    Returns None for records without a position.
    """
    if element.get("lat") is None or element.get("lon") is None:
        return None

    tags = element.get("tags") or {}
    name = tags.get("name") or tags.get("operator") or policy.generic_station_name

    return ChargingStation(
        id=str(element["id"]),
        name=name,
        lat=float(element["lat"]),
        lng=float(element["lon"]),
        available_connectors=policy.placeholder_available_connectors,
        total_connectors=policy.placeholder_total_connectors,
        power_kw=_parse_power(tags.get("power"), policy.fallback_power_kw),
        price_eur=price_eur,
        status=StationStatus.AVAILABLE,
    )


class OverpassMirror(StationSource):
    """
    One Overpass interpreter endpoint.
    Cancelling the awaiting task aborts the underlying HTTP request.
    """
    def __init__(
        self,
        url: str,
        client: Optional[httpx.AsyncClient] = None,
        policy: Optional[StationPolicy] = None,
    ):
        self.url = url
        self.name = url
        self.policy = policy or default_station_policy()
        self._client = client or httpx.AsyncClient(timeout=None)

    def _price_for(self, area: Area) -> float:
        if isinstance(area, RadiusArea):
            return self.policy.nearby_placeholder_price_eur
        return self.policy.placeholder_price_eur

    async def fetch(self, area: Area) -> List[ChargingStation]:
        query = build_overpass_query(area, self.policy)
        try:
            response = await self._client.get(
                self.url,
                params={"data": query},
                timeout=self.policy.client_timeout_s,
            )
        except httpx.HTTPError as exc:
            raise StationSourceError(f"{self.url}: {exc}") from exc

        if not response.is_success:
            raise StationSourceError(f"{self.url}: HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise StationSourceError(f"{self.url}: unparseable body") from exc

        elements = data.get("elements") if isinstance(data, dict) else None
        if not isinstance(elements, list):
            raise StationSourceError(f"{self.url}: no elements in response")

        price = self._price_for(area)
        stations: List[ChargingStation] = []
        for element in elements:
            try:
                station = normalize_element(element, price, self.policy)
            except (KeyError, TypeError, ValueError) as exc:
                logger.debug("Skipping malformed element from %s: %s", self.url, exc)
                continue
            if station is not None:
                stations.append(station)
        return stations

    async def aclose(self) -> None:
        await self._client.aclose()


def overpass_mirrors(
    urls: Optional[List[str]] = None,
    client: Optional[httpx.AsyncClient] = None,
    policy: Optional[StationPolicy] = None,
) -> List[StationSource]:
    """
    Priority-ordered mirror list sharing one HTTP client.
    """
    policy = policy or default_station_policy()
    client = client or httpx.AsyncClient(timeout=None)
    return [OverpassMirror(url, client=client, policy=policy) for url in (urls or mirrors_from_env())]
