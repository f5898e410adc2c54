"""
Purpose: Central configuration for planning search and the live navigation session.
What it does:

Stores all tunable thresholds:

MIN_QUERY_LENGTH = 3
SEARCH_DEBOUNCE_S = 0.5
SMART_STOP_THRESHOLD_PCT = 40
MAP_SETTLE_DELAY_S = 0.1
FALLBACK_LOCATION = Lisbon (38.7223, -9.1393)

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from routing.models import Coordinate
from stations.smart_stop import SMART_STOP_THRESHOLD_PCT


@dataclass(frozen=True)
class NavigationPolicy:
    """
    Central configuration for the planner search box and NavigationSession.
    """

    # --- Destination search ---
    # Shorter queries are never sent (noisy provider load).
    min_query_length: int = 3

    # Input inactivity before a search fires.
    search_debounce_s: float = 0.5

    # --- Smart stop ---
    smart_stop_threshold_pct: int = SMART_STOP_THRESHOLD_PCT

    # --- Map rendering accommodations ---
    # Time for the map container to mount before the first fix is placed.
    map_settle_delay_s: float = 0.1

    # --- Geolocation ---
    # Used when the device denies or fails the position query.
    fallback_location: Coordinate = field(default_factory=lambda: Coordinate(38.7223, -9.1393))

    def validate(self) -> None:
        """
        Basic sanity checks.
        """
        if self.min_query_length < 1:
            raise ValueError("min_query_length must be >= 1")

        if self.search_debounce_s < 0 or self.map_settle_delay_s < 0:
            raise ValueError("Delays must be >= 0")

        if not 0 <= self.smart_stop_threshold_pct <= 100:
            raise ValueError("smart_stop_threshold_pct must be within 0..100")


def default_navigation_policy() -> NavigationPolicy:
    """
    Convenience factory for the default policy.
    """
    p = NavigationPolicy()
    p.validate()
    return p


def instant_policy() -> NavigationPolicy:
    """
    Same thresholds without UI delays (scripts, tests).
    """
    p = NavigationPolicy(search_debounce_s=0.0, map_settle_delay_s=0.0)
    p.validate()
    return p
