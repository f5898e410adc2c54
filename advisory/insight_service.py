"""
Purpose: Grounded advisory text for routes and charging stations.
What it does:
Asks Gemini (with the Google Maps grounding tool) for a short, energy and
safety focused remark about a route, or for the reliability/amenities of a
charging station, and collects the map citations it was grounded on.

It is an enrichment only:
- any failure returns canned fallback text and an empty citation list
- a model answer that refuses ("I can't analyze...") is replaced by a neutral remark
Nothing in route or station availability waits on it.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv
from google import genai

from routing.models import Coordinate

load_dotenv()
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

logger = logging.getLogger(__name__)

ROUTE_FALLBACK_TEXT = (
    "Consider the efficient route to save battery given the expected terrain and traffic."
)
ROUTE_DEFAULT_TEXT = "Analysis based on real geographic data."
ROUTE_REFUSAL_REPLACEMENT = (
    "Route analysed: typical elevation changes for the area. Ride defensively and "
    "watch regeneration on descents."
)
STATION_FALLBACK_TEXT = "Charging point detected."
STATION_DEFAULT_TEXT = "Charging point available with basic services nearby."

REFUSAL_MARKERS = ("i can't", "i cannot", "i am unable", "i'm unable")


@dataclass(frozen=True)
class GroundingSource:
    title: str
    uri: str


@dataclass(frozen=True)
class GroundedResponse:
    text: str
    sources: List[GroundingSource] = field(default_factory=list)


def _maps_tool_config(user_location: Optional[Coordinate]) -> dict:
    config = {"tools": [{"google_maps": {}}]}
    if user_location is not None:
        config["tool_config"] = {
            "retrieval_config": {
                "lat_lng": {"latitude": user_location.lat, "longitude": user_location.lng}
            }
        }
    return config


def extract_sources(response, default_title: str, dedupe: bool = True) -> List[GroundingSource]:
    """Collect Google Maps grounding chunks from the first candidate."""
    sources: List[GroundingSource] = []
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return sources

    metadata = getattr(candidates[0], "grounding_metadata", None)
    chunks = getattr(metadata, "grounding_chunks", None) or []
    for chunk in chunks:
        maps = getattr(chunk, "maps", None)
        if maps is None or not getattr(maps, "uri", None):
            continue
        if dedupe and any(source.uri == maps.uri for source in sources):
            continue
        sources.append(GroundingSource(title=getattr(maps, "title", None) or default_title, uri=maps.uri))
    return sources


class InsightService:
    """
    client is a google.genai.Client; one is built from GOOGLE_API_KEY when omitted.
    """
    def __init__(self, client=None, model: Optional[str] = None):
        self.model = model or GEMINI_MODEL
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = genai.Client(api_key=GOOGLE_API_KEY)
        return self._client

    def route_insight(
        self,
        origin: str,
        destination: str,
        relief: str,
        weather: str,
        battery_pct: float,
        user_location: Optional[Coordinate] = None,
    ) -> GroundedResponse:
        prompt = (
            f"Using the Google Maps tool, describe the characteristics of the route from "
            f"{origin} to {destination} ({relief}, weather: {weather}).\n"
            f"The rider is on an electric bike with {battery_pct:g}% battery.\n"
            "Assess the terrain, typical traffic and whether there are many steep climbs.\n"
            "Give a short recommendation (max 2 sentences) focused on saving energy and safety."
        )
        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=prompt,
                config=_maps_tool_config(user_location),
            )
        except Exception as exc:
            logger.error("Route insight grounding error: %s", exc)
            return GroundedResponse(text=ROUTE_FALLBACK_TEXT, sources=[])

        text = getattr(response, "text", None) or ROUTE_DEFAULT_TEXT
        if any(marker in text.lower() for marker in REFUSAL_MARKERS):
            text = ROUTE_REFUSAL_REPLACEMENT

        return GroundedResponse(text=text, sources=extract_sources(response, "Place details"))

    def station_details(
        self,
        station_name: str,
        location: str,
        user_location: Coordinate,
    ) -> GroundedResponse:
        prompt = (
            f'Using Google Maps, check the status and reviews of the charging station "{station_name}" '
            f'in "{location}".\n'
            "Report on its recent reliability and whether there are cafes or services nearby "
            "to wait while charging."
        )
        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=prompt,
                config=_maps_tool_config(user_location),
            )
        except Exception as exc:
            logger.error("Station details grounding error: %s", exc)
            return GroundedResponse(text=STATION_FALLBACK_TEXT, sources=[])

        return GroundedResponse(
            text=getattr(response, "text", None) or STATION_DEFAULT_TEXT,
            sources=extract_sources(response, "Google Maps info", dedupe=False),
        )
