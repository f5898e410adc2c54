#Expose the live navigation pieces:
#Destination search (debounced, last query wins)
#Navigation session (viewport-reactive state machine)
#Cancellation tokens, geolocation seam, policy

from .cancellation import CancellationToken, RequestSlot
from .geolocation import FixedLocationProvider, LocationProvider, LocationUnavailable, resolve_location
from .policy import NavigationPolicy, default_navigation_policy, instant_policy
from .search import PlaceSearch
from .session import NavigationSession, SessionSnapshot
from .state_machine import SessionState, SessionStateException

__all__ = [
    "CancellationToken",
    "RequestSlot",
    "FixedLocationProvider",
    "LocationProvider",
    "LocationUnavailable",
    "resolve_location",
    "NavigationPolicy",
    "default_navigation_policy",
    "instant_policy",
    "PlaceSearch",
    "NavigationSession",
    "SessionSnapshot",
    "SessionState",
    "SessionStateException",
]
