#Purpose: The Nominatim "adapter/client" (the Geocoder).
#Sole responsibility: resolve free-text place queries to candidate coordinates.
#Encapsulates Nominatim-specific details:
#query parameters (format, limit, contact email)
#string lat/lon in the payload -> float
#soft failure: any network or parse problem resolves to an empty list
#Debouncing and last-query-wins live in navigation/search.py, not here.

from __future__ import annotations

import logging
import os
from typing import List, Optional

import httpx
from dotenv import load_dotenv

from .models import GeocodeResult

load_dotenv()
NOMINATIM_URL = os.getenv("NOMINATIM_URL", "https://nominatim.openstreetmap.org/search")
NOMINATIM_EMAIL = os.getenv("NOMINATIM_EMAIL", "greenpath@example.com")

# Nominatim usage policy: keep result sets small
MAX_RESULTS = 5

logger = logging.getLogger(__name__)


class GeocodeEmpty(Exception):
    """No candidates matched the query. Never surfaced to the rider."""
    pass


class NominatimClient:
    def __init__(
        self,
        url: Optional[str] = None,
        email: Optional[str] = None,
        limit: int = MAX_RESULTS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url or NOMINATIM_URL
        self.email = email or NOMINATIM_EMAIL
        self.limit = min(limit, MAX_RESULTS)
        self._client = client or httpx.AsyncClient(timeout=None)

    def _parse(self, data) -> List[GeocodeResult]:
        if not isinstance(data, list) or not data:
            raise GeocodeEmpty("no candidates")

        results: List[GeocodeResult] = []
        for item in data[: self.limit]:
            try:
                results.append(
                    GeocodeResult(
                        display_name=item["display_name"],
                        lat=float(item["lat"]),
                        lng=float(item["lon"]),
                    )
                )
            except (KeyError, TypeError, ValueError):
                # skip a malformed candidate, keep provider order for the rest
                continue

        if not results:
            raise GeocodeEmpty("no usable candidates")
        return results

    async def lookup(self, text: str) -> List[GeocodeResult]:
        """
        Strict variant of search(): raises GeocodeEmpty / httpx.HTTPError.
        """
        response = await self._client.get(
            self.url,
            params={
                "format": "json",
                "q": text,
                "addressdetails": 1,
                "limit": self.limit,
                "email": self.email,
            },
        )
        response.raise_for_status()
        return self._parse(response.json())

    async def search(self, text: str) -> List[GeocodeResult]:
        """
        Returns up to 5 candidates in provider relevance order.
        Fails softly: an empty list on no match, network or parse failure.
        """
        try:
            return await self.lookup(text)
        except GeocodeEmpty:
            return []
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Geocode failed for %r: %s", text, exc)
            return []

    async def aclose(self) -> None:
        await self._client.aclose()
