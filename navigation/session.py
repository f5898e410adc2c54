"""
Purpose: Navigation Session, the live viewport-reactive controller.
What it does:
Owns everything the map screen renders while a route is active and mediates
every mutation of it:

   user_location, destination, active_route, path, remaining distance
   charging_stations (latest completed locator call for the current viewport)
   smart_stop (always one of charging_stations, or None)
   viewport + last queried viewport key
   state: PLANNING -> ROUTE_LOADING -> ROUTE_READY <-> NAVIGATING -> ENDED

Events that drive it (all from the UI layer, never from timers):
   update_location(), select_route(), select_station(), on_viewport_change(),
   fit_to_route(), recenter(), set_navigating(), end()

Concurrency rules (single asyncio loop, no locks):
- Stations: a new query cancels the previous one (RequestSlot). A cancelled or
  superseded query never writes charging_stations.
- Routes: not cancelled. A finished route is applied only if it answers the
  latest issued request and the session still points at its destination.
  Recomputing the already drawn corridor stays in ROUTE_READY.
- Zoom-to-fit, the corridor station query and smart stop selection happen
  once per destination key, however often the route is recomputed.
- end() cancels everything in flight; late results are dropped.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Set, Tuple

from routing.models import Coordinate, RouteOption, Viewport
from routing.osrm_client import RouteUnavailable
from stations.models import ChargingStation, station_route_option
from stations.smart_stop import select_smart_stop
from .cancellation import RequestSlot
from .geolocation import LocationProvider, resolve_location
from .policy import NavigationPolicy, default_navigation_policy
from .state_machine import SessionState, SessionStateException, transition

logger = logging.getLogger(__name__)

ROUTE_UNAVAILABLE_MESSAGE = "Could not draw the route."

# roughly what a street-level zoom shows around the rider
RECENTER_SPAN_DEG = 0.01


@dataclass(frozen=True)
class SessionSnapshot:
    """
    Immutable view of the session for renderers.
    """
    state: SessionState
    user_location: Optional[Coordinate]
    destination: Optional[Coordinate]
    active_route: Optional[RouteOption]
    path: Tuple[Coordinate, ...]
    remaining_distance_km: float
    charging_stations: Tuple[ChargingStation, ...]
    smart_stop: Optional[ChargingStation]
    viewport: Optional[Viewport]
    is_navigating: bool
    is_loading_route: bool
    error: Optional[str]

    @property
    def show_smart_stop_banner(self) -> bool:
        return self.smart_stop is not None and not self.is_navigating


class NavigationSession:
    """
    router: routing.OSRMClient (or anything with the same async route()).
    locator: stations.StationLocator (or anything with async find_stations(area, token)).
    """
    def __init__(
        self,
        router,
        locator,
        *,
        location_provider: Optional[LocationProvider] = None,
        policy: Optional[NavigationPolicy] = None,
        active_route: Optional[RouteOption] = None,
        destination: Optional[Coordinate] = None,
    ):
        self.router = router
        self.locator = locator
        self.location_provider = location_provider
        self.policy = policy or default_navigation_policy()

        self.state: SessionState = SessionState.PLANNING
        self.user_location: Optional[Coordinate] = None
        self.active_route: Optional[RouteOption] = active_route
        self.destination: Optional[Coordinate] = destination

        self.path: Tuple[Coordinate, ...] = ()
        self.remaining_distance_km: float = 0.0
        self.charging_stations: List[ChargingStation] = []
        self.smart_stop: Optional[ChargingStation] = None

        self.viewport: Optional[Viewport] = None
        self.last_queried_viewport_key: Optional[str] = None

        self.is_loading_route: bool = False
        self.error: Optional[str] = None

        self._fitted_destination_key: Optional[str] = None
        self._resume_state: SessionState = SessionState.PLANNING
        # only the latest issued route request may be applied
        self._route_seq = 0
        self._route_tasks: Set[asyncio.Future] = set()
        self._station_slot = RequestSlot("stations")

    # --- Read side ---

    @property
    def is_navigating(self) -> bool:
        return self.state is SessionState.NAVIGATING

    @property
    def is_ended(self) -> bool:
        return self.state is SessionState.ENDED

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=self.state,
            user_location=self.user_location,
            destination=self.destination,
            active_route=self.active_route,
            path=self.path,
            remaining_distance_km=self.remaining_distance_km,
            charging_stations=tuple(self.charging_stations),
            smart_stop=self.smart_stop,
            viewport=self.viewport,
            is_navigating=self.is_navigating,
            is_loading_route=self.is_loading_route,
            error=self.error,
        )

    # --- Internal helpers ---

    def _set_state(self, target: SessionState) -> None:
        previous = self.state
        self.state = transition(self.state, target)
        if previous != target:
            logger.debug("Session %s -> %s", previous.value, target.value)

    def _reconcile_smart_stop(self) -> None:
        # smart_stop must always be one of the stations currently shown
        if self.smart_stop is None:
            return
        if all(station.id != self.smart_stop.id for station in self.charging_stations):
            logger.debug("Smart stop %s left the station set, clearing it", self.smart_stop.id)
            if self.active_route is not None and self.active_route.suggested_station_id == self.smart_stop.id:
                self.active_route = replace(self.active_route, suggested_station_id=None)
            self.smart_stop = None

    def _track(self, task: asyncio.Future) -> asyncio.Future:
        self._route_tasks.add(task)
        task.add_done_callback(self._route_tasks.discard)
        return task

    # --- Lifecycle ---

    async def start(self) -> Coordinate:
        """
        Wait for the map to mount, take one position fix and kick off routing.
        """
        await asyncio.sleep(self.policy.map_settle_delay_s)
        location = await resolve_location(self.location_provider, self.policy.fallback_location)
        await self.update_location(location)
        return location

    async def end(self) -> None:
        """
        Rider went back to the home screen: tear down and cancel everything in flight.
        """
        if self.is_ended:
            return
        self._set_state(SessionState.ENDED)
        self._station_slot.cancel()
        for task in list(self._route_tasks):
            task.cancel()
        self.is_loading_route = False
        logger.info("Navigation session ended")

    # --- External events ---

    async def update_location(self, location: Coordinate) -> None:
        if self.is_ended:
            return
        if location == self.user_location:
            return
        self.user_location = location
        await self._load_route()

    async def select_route(self, route: RouteOption, destination: Coordinate) -> None:
        if self.is_ended:
            raise SessionStateException("Cannot select a route on an ended session")
        previous_route, previous_destination = self.active_route, self.destination

        # same corridor, so the smart stop already picked for it still applies
        if self.smart_stop is not None and destination.key() == self._fitted_destination_key:
            route = replace(route, suggested_station_id=self.smart_stop.id)

        self.active_route = route
        self.destination = destination

        loaded = await self._load_route()

        # a failed selection leaves the session exactly as it was
        if loaded is False and self.active_route is route and not self.is_ended:
            self.active_route = previous_route
            self.destination = previous_destination

    async def select_station(self, station: ChargingStation) -> None:
        """Navigate straight to a charger picked from the stations list."""
        await self.select_route(station_route_option(station), station.coordinate)

    def set_navigating(self, active: bool) -> None:
        """
        Toggle immersive mode. Background station refresh keeps running;
        the smart stop is no longer re-evaluated while navigating.
        """
        if active == self.is_navigating:
            return
        if active:
            self._set_state(SessionState.NAVIGATING)
        else:
            self._set_state(SessionState.ROUTE_READY)

    async def on_viewport_change(self, viewport: Viewport, force: bool = False) -> Optional[List[ChargingStation]]:
        """
        The map panned, zoomed or was fitted.
        Returns the station list that was applied, or None when this query was
        superseded/cancelled before it finished.
        """
        if self.is_ended:
            return None
        self.viewport = viewport
        if not force and viewport.key() == self.last_queried_viewport_key:
            return self.charging_stations
        return await self._query_stations(viewport)

    async def fit_to_route(self) -> Optional[Viewport]:
        """The "zoom to route" control. Behaves like any other viewport change."""
        if not self.path or self.is_ended:
            return None
        viewport = Viewport.around(self.path)
        await self.on_viewport_change(viewport)
        return viewport

    async def recenter(self) -> Optional[Viewport]:
        if self.user_location is None or self.is_ended:
            return None
        half = RECENTER_SPAN_DEG / 2
        viewport = Viewport(
            south=self.user_location.lat - half,
            west=self.user_location.lng - half,
            north=self.user_location.lat + half,
            east=self.user_location.lng + half,
        )
        await self.on_viewport_change(viewport)
        return viewport

    # --- Stations ---

    async def _query_stations(self, viewport: Viewport) -> Optional[List[ChargingStation]]:
        token = self._station_slot.issue()
        self.last_queried_viewport_key = viewport.key()

        task = token.bind(asyncio.ensure_future(self.locator.find_stations(viewport, token=token)))
        await asyncio.wait({task})

        if task.cancelled() or not self._station_slot.is_current(token) or self.is_ended:
            logger.debug("Dropping superseded station result for %s", viewport.key())
            return None

        stations = task.result()
        self.charging_stations = stations
        self._reconcile_smart_stop()
        return stations

    # --- Routes ---

    async def _load_route(self) -> Optional[bool]:
        """
        True when the route was applied, False when the router failed,
        None when there was nothing to do or the result was dropped.
        """
        if self.user_location is None or self.destination is None or self.is_ended:
            return None

        origin = self.user_location
        destination = self.destination
        route_key = destination.key()

        # recomputing the drawn corridor from a new fix keeps the route usable
        new_corridor = route_key != self._fitted_destination_key or self.state is SessionState.PLANNING
        if new_corridor and not self.is_navigating:
            if self.state is not SessionState.ROUTE_LOADING:
                self._resume_state = self.state
            self._set_state(SessionState.ROUTE_LOADING)

        self._route_seq += 1
        seq = self._route_seq
        self.is_loading_route = True
        task = self._track(asyncio.ensure_future(self.router.route(origin, destination)))
        try:
            await asyncio.wait({task})
        finally:
            if seq == self._route_seq:
                self.is_loading_route = False

        if task.cancelled() or self.is_ended:
            return None

        if seq != self._route_seq:
            logger.debug("Dropping superseded route from %s", origin.key())
            return None

        if self.destination is None or self.destination.key() != route_key:
            logger.debug("Dropping route for stale destination %s", route_key)
            return None

        try:
            result = task.result()
        except RouteUnavailable as exc:
            logger.warning("Route to %s unavailable: %s", route_key, exc)
            self.error = ROUTE_UNAVAILABLE_MESSAGE
            if self.state is SessionState.ROUTE_LOADING:
                self._set_state(self._resume_state)
            return False

        self.error = None
        self.path = result.path
        self.remaining_distance_km = result.distance_km
        if self.state is SessionState.ROUTE_LOADING:
            self._set_state(SessionState.ROUTE_READY)

        if self._fitted_destination_key != route_key and self.path:
            self._fitted_destination_key = route_key
            await self._fit_new_corridor()
        return True

    async def _fit_new_corridor(self) -> None:
        viewport = Viewport.around(self.path)
        stations = await self.on_viewport_change(viewport, force=True)

        if self.is_ended or self.is_navigating:
            return

        # a newer viewport may have replaced the corridor stations meanwhile
        if stations is None or stations is not self.charging_stations:
            self.smart_stop = None
            return

        self.smart_stop = select_smart_stop(
            self.active_route,
            stations,
            threshold_pct=self.policy.smart_stop_threshold_pct,
        )
        if self.smart_stop is not None and self.active_route is not None:
            self.active_route = replace(self.active_route, suggested_station_id=self.smart_stop.id)
            logger.info("Suggesting smart stop %s (%s)", self.smart_stop.name, self.smart_stop.id)
