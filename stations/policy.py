"""
Purpose: Central configuration for station discovery.
What it does:

Stores all tunable constants for querying and normalizing station data:

SERVER_TIMEOUT_S = 15 (Overpass [timeout:15])
BBOX_RESULT_LIMIT = 40
NEARBY_RADIUS_M = 8000
FALLBACK_POWER_KW = 22

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _client_timeout_from_env() -> Optional[float]:
    raw = os.getenv("STATION_CLIENT_TIMEOUT_S")
    return float(raw) if raw else None


@dataclass(frozen=True)
class StationPolicy:
    """
    Central configuration for the Station Locator.
    """

    # --- Upstream budget ---
    # Enforced by the provider through the query itself, not by the client.
    server_timeout_s: int = 15

    # Optional client-side deadline per mirror. None = wait for the provider.
    client_timeout_s: Optional[float] = None

    # --- Query shape ---
    bbox_result_limit: int = 40
    nearby_radius_m: int = 8000

    # --- Normalization defaults ---
    # Most public AC posts are 22 kW when the tag is missing
    fallback_power_kw: float = 22.0
    generic_station_name: str = "Public charging point"

    # No real-time pricing feed exists, these are placeholders (EUR/kWh)
    placeholder_price_eur: float = 0.35
    nearby_placeholder_price_eur: float = 0.38

    # Connector counts are not in the data either
    placeholder_available_connectors: int = 1
    placeholder_total_connectors: int = 2

    def validate(self) -> None:
        """
        Basic sanity checks.
        """
        if self.server_timeout_s <= 0:
            raise ValueError("server_timeout_s must be > 0")

        if self.client_timeout_s is not None and self.client_timeout_s <= 0:
            raise ValueError("client_timeout_s must be > 0 when set")

        if self.bbox_result_limit <= 0:
            raise ValueError("bbox_result_limit must be > 0")

        if self.nearby_radius_m <= 0:
            raise ValueError("nearby_radius_m must be > 0")

        if self.fallback_power_kw <= 0:
            raise ValueError("fallback_power_kw must be > 0")


def default_station_policy() -> StationPolicy:
    """
    Convenience factory for the default policy, honouring STATION_CLIENT_TIMEOUT_S.
    """
    p = StationPolicy(client_timeout_s=_client_timeout_from_env())
    p.validate()
    return p
