from enum import Enum
from typing import Dict, FrozenSet


class SessionState(str, Enum):
    PLANNING = "planning"          # destination not chosen yet
    ROUTE_LOADING = "route_loading"
    ROUTE_READY = "route_ready"
    NAVIGATING = "navigating"      # immersive mode, session still live
    ENDED = "ended"


class SessionStateException(Exception):
    """Raised when an invalid session transition is attempted."""
    pass


# staying in the same state is always allowed (e.g. a second route load
# while one is already loading) and is not listed here
ALLOWED_TRANSITIONS: Dict[SessionState, FrozenSet[SessionState]] = {
    SessionState.PLANNING: frozenset({SessionState.ROUTE_LOADING, SessionState.ENDED}),
    SessionState.ROUTE_LOADING: frozenset({
        SessionState.ROUTE_READY,
        SessionState.PLANNING,      # first route failed, nothing to fall back to
        SessionState.ENDED,
    }),
    SessionState.ROUTE_READY: frozenset({
        SessionState.ROUTE_LOADING,
        SessionState.NAVIGATING,
        SessionState.ENDED,
    }),
    SessionState.NAVIGATING: frozenset({SessionState.ROUTE_READY, SessionState.ENDED}),
    SessionState.ENDED: frozenset(),
}


def can_transition(current: SessionState, target: SessionState) -> bool:
    if current == target:
        return current != SessionState.ENDED
    return target in ALLOWED_TRANSITIONS[current]


def transition(current: SessionState, target: SessionState) -> SessionState:
    """
    Validates a session transition and returns the new state.
    """
    if not can_transition(current, target):
        raise SessionStateException(f"Cannot move session from {current.value} to {target.value}")
    return target
