import asyncio

import pytest

from navigation.geolocation import FixedLocationProvider
from navigation.policy import instant_policy
from navigation.session import ROUTE_UNAVAILABLE_MESSAGE, NavigationSession
from navigation.state_machine import SessionState, SessionStateException
from routing.models import Coordinate, RouteResult, Viewport
from routing.osrm_client import RouteUnavailable
from routing.variants import generate_variants
from stations.models import ChargingStation

LISBON = Coordinate(38.7223, -9.1393)
RIDER = Coordinate(38.7369, -9.1427)
SINTRA = Coordinate(38.8029, -9.3817)
CASCAIS = Coordinate(38.6979, -9.4215)

VIEWPORT_A = Viewport(south=38.70, west=-9.20, north=38.75, east=-9.10)
VIEWPORT_B = Viewport(south=38.60, west=-9.40, north=38.65, east=-9.30)


def make_stations(count, prefix="s"):
    return [
        ChargingStation(
            id=f"{prefix}{i}",
            name=f"Station {prefix}{i}",
            lat=38.70 + i * 0.01,
            lng=-9.20,
            available_connectors=1,
            total_connectors=2,
            power_kw=22,
            price_eur=0.35,
        )
        for i in range(count)
    ]


def options_for(distance_km, battery_pct=60):
    return {option.id: option for option in generate_variants(distance_km, 40, battery_pct)}


class FakeRouter:
    """
    Straight-line router. With gated=True each destination waits until released.
    """
    def __init__(self, gated=False):
        self.gated = gated
        self.fail = False
        self.calls = []
        self.gates = {}

    async def route(self, origin, destination, with_geometry=True):
        self.calls.append((origin, destination))
        if self.gated:
            await self.gates.setdefault(destination.key(), asyncio.Event()).wait()
        if self.fail:
            raise RouteUnavailable("NoRoute")
        middle = Coordinate((origin.lat + destination.lat) / 2, (origin.lng + destination.lng) / 2)
        return RouteResult(distance_km=50.0, duration_min=40, path=(origin, middle, destination))

    def release(self, destination):
        self.gates.setdefault(destination.key(), asyncio.Event()).set()


class FakeLocator:
    """
    Returns `self.stations` for any area. With gated=True each viewport waits until released.
    """
    def __init__(self, stations=None, gated=False):
        self.stations = stations if stations is not None else make_stations(5)
        self.gated = gated
        self.areas = []
        self.gates = {}
        self.answers = {}

    async def find_stations(self, area, token=None):
        self.areas.append(area)
        if self.gated:
            await self.gates.setdefault(area.key(), asyncio.Event()).wait()
        return list(self.answers.get(area.key(), self.stations))

    def release(self, area):
        self.gates.setdefault(area.key(), asyncio.Event()).set()


def new_session(router=None, locator=None, **kwargs):
    return NavigationSession(
        router or FakeRouter(),
        locator or FakeLocator(),
        policy=instant_policy(),
        **kwargs,
    )


# --- Lifecycle ---

def test_start_falls_back_to_lisbon_and_loads_route():
    router, locator = FakeRouter(), FakeLocator()
    route = options_for(50)["efficient"]
    session = new_session(
        router, locator,
        location_provider=FixedLocationProvider(None),
        active_route=route,
        destination=SINTRA,
    )

    location = asyncio.run(session.start())

    # 1. denied location -> fallback
    assert location == LISBON
    assert session.user_location == LISBON

    # 2. route drawn and map fitted around it
    assert session.state == SessionState.ROUTE_READY
    assert session.path[0] == LISBON and session.path[-1] == SINTRA
    assert session.remaining_distance_km == 50.0
    assert session.viewport == Viewport.around(session.path)
    assert locator.areas == [session.viewport]

    # 3. 45% impact, 5 stations -> middle one
    assert session.smart_stop.id == "s2"
    assert session.active_route.suggested_station_id == "s2"
    assert session.error is None
    assert session.is_loading_route is False


def test_session_without_destination_stays_planning():
    session = new_session(location_provider=FixedLocationProvider(RIDER))

    asyncio.run(session.start())

    assert session.state == SessionState.PLANNING
    assert session.path == ()
    assert session.router.calls == []


# --- Zoom once per destination ---

def test_location_updates_do_not_refit_or_requery():
    router, locator = FakeRouter(), FakeLocator()
    session = new_session(router, locator, active_route=options_for(50)["efficient"], destination=SINTRA)

    async def scenario():
        await session.update_location(LISBON)
        fitted = session.viewport
        await session.update_location(RIDER)
        await session.update_location(RIDER)  # same fix again, ignored
        return fitted

    fitted = asyncio.run(scenario())

    assert len(router.calls) == 2
    assert len(locator.areas) == 1
    assert session.viewport == fitted
    assert session.path[0] == RIDER


def test_new_destination_fits_again():
    router, locator = FakeRouter(), FakeLocator()
    variants = options_for(50)
    session = new_session(router, locator, active_route=variants["efficient"], destination=SINTRA)

    async def scenario():
        await session.update_location(LISBON)
        await session.select_route(variants["fastest"], CASCAIS)

    asyncio.run(scenario())

    assert len(locator.areas) == 2
    assert session.viewport == Viewport.around(session.path)
    assert session.path[-1] == CASCAIS


def test_same_viewport_is_not_queried_twice():
    locator = FakeLocator()
    session = new_session(locator=locator)

    async def scenario():
        first = await session.on_viewport_change(VIEWPORT_A)
        second = await session.on_viewport_change(VIEWPORT_A)
        return first, second

    first, second = asyncio.run(scenario())

    assert locator.areas == [VIEWPORT_A]
    assert second == first
    assert session.last_queried_viewport_key == VIEWPORT_A.key()


# --- Latest station query wins ---

@pytest.mark.parametrize("release_order", ["newest_first", "oldest_first"])
def test_only_latest_viewport_result_is_applied(release_order):
    locator = FakeLocator(gated=True)
    locator.answers = {
        VIEWPORT_A.key(): make_stations(3, prefix="a"),
        VIEWPORT_B.key(): make_stations(2, prefix="b"),
    }
    session = new_session(locator=locator)

    async def scenario():
        older = asyncio.ensure_future(session.on_viewport_change(VIEWPORT_A))
        await asyncio.sleep(0.01)
        newer = asyncio.ensure_future(session.on_viewport_change(VIEWPORT_B))
        await asyncio.sleep(0.01)

        first, second = (VIEWPORT_B, VIEWPORT_A) if release_order == "newest_first" else (VIEWPORT_A, VIEWPORT_B)
        locator.release(first)
        await asyncio.sleep(0.01)
        locator.release(second)
        return await older, await newer

    older_result, newer_result = asyncio.run(scenario())

    assert older_result is None
    assert [station.id for station in newer_result] == ["b0", "b1"]
    assert [station.id for station in session.charging_stations] == ["b0", "b1"]
    assert locator.areas == [VIEWPORT_A, VIEWPORT_B]


# --- Route failure and staleness ---

def test_failed_route_keeps_previous_route_on_screen():
    router, locator = FakeRouter(), FakeLocator()
    variants = options_for(50)
    session = new_session(router, locator, active_route=variants["efficient"], destination=SINTRA)

    async def scenario():
        await session.update_location(LISBON)
        before = session.snapshot()
        router.fail = True
        await session.select_route(variants["fastest"], CASCAIS)
        return before

    before = asyncio.run(scenario())

    assert session.error == ROUTE_UNAVAILABLE_MESSAGE
    assert session.state == SessionState.ROUTE_READY
    assert session.path == before.path
    assert session.charging_stations == list(before.charging_stations)
    assert session.smart_stop == before.smart_stop
    assert session.destination == SINTRA
    assert session.active_route == before.active_route
    assert session.is_loading_route is False


def test_first_route_failure_returns_to_planning():
    router = FakeRouter()
    router.fail = True
    session = new_session(router)

    async def scenario():
        await session.update_location(LISBON)
        await session.select_route(options_for(50)["efficient"], SINTRA)

    asyncio.run(scenario())

    assert session.state == SessionState.PLANNING
    assert session.error == ROUTE_UNAVAILABLE_MESSAGE
    assert session.destination is None
    assert session.path == ()


def test_successful_route_clears_error():
    router = FakeRouter()
    session = new_session(router)
    route = options_for(50)["efficient"]

    async def scenario():
        await session.update_location(LISBON)
        router.fail = True
        await session.select_route(route, SINTRA)
        router.fail = False
        await session.select_route(route, SINTRA)

    asyncio.run(scenario())

    assert session.error is None
    assert session.state == SessionState.ROUTE_READY


@pytest.mark.parametrize("release_order", ["newest_first", "oldest_first"])
def test_route_for_previous_destination_is_dropped(release_order):
    router, locator = FakeRouter(gated=True), FakeLocator()
    variants = options_for(50)
    session = new_session(router, locator)

    async def scenario():
        session.user_location = LISBON
        to_sintra = asyncio.ensure_future(session.select_route(variants["efficient"], SINTRA))
        await asyncio.sleep(0.01)
        to_cascais = asyncio.ensure_future(session.select_route(variants["safest"], CASCAIS))
        await asyncio.sleep(0.01)
        assert session.is_loading_route is True

        first, second = (CASCAIS, SINTRA) if release_order == "newest_first" else (SINTRA, CASCAIS)
        router.release(first)
        await asyncio.sleep(0.01)
        router.release(second)
        await asyncio.gather(to_sintra, to_cascais)

    asyncio.run(scenario())

    assert session.path[-1] == CASCAIS
    assert session.destination == CASCAIS
    assert session.state == SessionState.ROUTE_READY
    assert session.is_loading_route is False
    assert len(locator.areas) == 1


class FixGatedRouter(FakeRouter):
    """
    Each origin waits until released, so answers for successive fixes can
    arrive in any order. Distance depends on the origin.
    """
    def __init__(self, distances):
        super().__init__()
        self.distances = distances

    async def route(self, origin, destination, with_geometry=True):
        self.calls.append((origin, destination))
        await self.gates.setdefault(origin.key(), asyncio.Event()).wait()
        distance = self.distances.get(origin.key(), 50.0)
        return RouteResult(distance_km=distance, duration_min=40, path=(origin, destination))

    def release(self, origin):
        self.gates.setdefault(origin.key(), asyncio.Event()).set()


@pytest.mark.parametrize("release_order", ["older_last", "older_first"])
def test_route_for_an_older_fix_never_replaces_a_newer_one(release_order):
    later = Coordinate(38.75, -9.2)
    router = FixGatedRouter({RIDER.key(): 47.5, later.key(): 46.0})
    session = new_session(router, active_route=options_for(50)["efficient"], destination=SINTRA)

    async def scenario():
        router.release(LISBON)
        await session.update_location(LISBON)

        older = asyncio.ensure_future(session.update_location(RIDER))
        await asyncio.sleep(0.01)
        newer = asyncio.ensure_future(session.update_location(later))
        await asyncio.sleep(0.01)

        first, second = (later, RIDER) if release_order == "older_last" else (RIDER, later)
        router.release(first)
        await asyncio.sleep(0.01)
        router.release(second)
        await asyncio.gather(older, newer)

    asyncio.run(scenario())

    assert session.user_location == later
    assert session.path[0] == later
    assert session.remaining_distance_km == 46.0
    assert session.state == SessionState.ROUTE_READY
    assert session.is_loading_route is False


# --- Smart stop ---

def test_other_variant_for_same_destination_keeps_suggested_stop():
    router, locator = FakeRouter(), FakeLocator()
    variants = options_for(50)
    session = new_session(router, locator, active_route=variants["efficient"], destination=SINTRA)

    async def scenario():
        await session.update_location(LISBON)
        await session.select_route(variants["safest"], SINTRA)

    asyncio.run(scenario())

    # 1. same corridor: no refit, the stop and the route agree
    assert len(locator.areas) == 1
    assert session.active_route.id == "safest"
    assert session.smart_stop.id == "s2"
    assert session.active_route.suggested_station_id == "s2"
    assert session.state == SessionState.ROUTE_READY

def test_low_impact_route_gets_no_smart_stop():
    variants = options_for(20)
    session = new_session(active_route=variants["efficient"], destination=SINTRA)

    asyncio.run(session.update_location(LISBON))

    assert variants["efficient"].battery_impact_pct == 18
    assert session.smart_stop is None
    assert session.snapshot().show_smart_stop_banner is False


def test_smart_stop_is_cleared_when_it_leaves_the_station_set():
    locator = FakeLocator()
    session = new_session(locator=locator, active_route=options_for(50)["efficient"], destination=SINTRA)

    async def scenario():
        await session.update_location(LISBON)
        assert session.smart_stop.id == "s2"

        # 1. still visible after a pan -> kept
        locator.answers[VIEWPORT_A.key()] = make_stations(4)
        await session.on_viewport_change(VIEWPORT_A)
        assert session.smart_stop.id == "s2"

        # 2. gone from the new viewport -> cleared
        locator.answers[VIEWPORT_B.key()] = make_stations(2)
        await session.on_viewport_change(VIEWPORT_B)

    asyncio.run(scenario())

    assert session.smart_stop is None
    assert [station.id for station in session.charging_stations] == ["s0", "s1"]
    assert session.active_route.suggested_station_id is None


def test_smart_stop_is_not_reevaluated_while_navigating():
    locator = FakeLocator()
    variants = options_for(50)
    session = new_session(locator=locator, active_route=variants["safest"], destination=SINTRA)

    async def scenario():
        await session.update_location(LISBON)
        assert session.smart_stop.id == "s2"
        session.set_navigating(True)

        locator.stations = make_stations(9)
        await session.select_route(variants["fastest"], CASCAIS)

    asyncio.run(scenario())

    # corridor refreshed, but the stop is whatever it was before navigating
    assert session.state == SessionState.NAVIGATING
    assert len(locator.areas) == 2
    assert len(session.charging_stations) == 9
    assert session.smart_stop.id == "s2"
    assert session.snapshot().show_smart_stop_banner is False


def test_banner_shows_when_a_stop_is_suggested_and_not_navigating():
    session = new_session(active_route=options_for(50)["efficient"], destination=SINTRA)

    asyncio.run(session.update_location(LISBON))
    snapshot = session.snapshot()

    assert snapshot.show_smart_stop_banner is True
    assert snapshot.charging_stations[2] == snapshot.smart_stop


def test_selecting_a_station_routes_to_it():
    router = FakeRouter()
    session = new_session(router, active_route=options_for(50)["efficient"], destination=SINTRA)
    target = make_stations(1, prefix="edp")[0]

    async def scenario():
        await session.update_location(LISBON)
        await session.select_station(target)

    asyncio.run(scenario())

    assert session.active_route.id == "charge-edp0"
    assert session.active_route.battery_impact_pct == 5
    assert session.destination == target.coordinate
    assert router.calls[-1] == (LISBON, target.coordinate)
    # 5% never needs a stop
    assert session.smart_stop is None


# --- Navigation mode ---

def test_navigating_needs_a_ready_route():
    session = new_session()

    with pytest.raises(SessionStateException):
        session.set_navigating(True)

    # turning it off when not navigating is a no-op
    session.set_navigating(False)
    assert session.state == SessionState.PLANNING


def test_navigation_can_start_while_route_is_recomputed():
    router = FakeRouter()
    session = new_session(router, active_route=options_for(50)["efficient"], destination=SINTRA)

    async def scenario():
        await session.update_location(LISBON)
        router.gated = True
        pending = asyncio.ensure_future(session.update_location(RIDER))
        await asyncio.sleep(0.01)

        # 1. new fix for the drawn corridor: loading, but the route stays usable
        assert session.is_loading_route is True
        assert session.state == SessionState.ROUTE_READY
        session.set_navigating(True)

        router.release(SINTRA)
        await pending

    asyncio.run(scenario())

    assert session.state == SessionState.NAVIGATING
    assert session.path[0] == RIDER
    assert session.is_loading_route is False


def test_navigating_round_trip():
    session = new_session(active_route=options_for(50)["efficient"], destination=SINTRA)

    async def scenario():
        await session.update_location(LISBON)
        session.set_navigating(True)
        assert session.is_navigating
        await session.update_location(RIDER)
        assert session.state == SessionState.NAVIGATING
        session.set_navigating(False)

    asyncio.run(scenario())

    assert session.state == SessionState.ROUTE_READY


def test_recenter_and_fit_controls():
    locator = FakeLocator()
    session = new_session(locator=locator, active_route=options_for(50)["efficient"], destination=SINTRA)

    async def scenario():
        await session.update_location(LISBON)
        recentered = await session.recenter()
        fitted = await session.fit_to_route()
        return recentered, fitted

    recentered, fitted = asyncio.run(scenario())

    assert recentered.contains(LISBON)
    assert fitted == Viewport.around(session.path)
    assert len(locator.areas) == 3


# --- Ending the session ---

def test_end_cancels_station_query_in_flight():
    locator = FakeLocator(gated=True)
    session = new_session(locator=locator)

    async def scenario():
        pending = asyncio.ensure_future(session.on_viewport_change(VIEWPORT_A))
        await asyncio.sleep(0.01)
        await session.end()
        locator.release(VIEWPORT_A)
        return await pending

    result = asyncio.run(scenario())

    assert result is None
    assert session.charging_stations == []
    assert session.state == SessionState.ENDED


def test_end_drops_late_route_and_ignores_further_events():
    router = FakeRouter(gated=True)
    session = new_session(router)

    async def scenario():
        session.user_location = LISBON
        pending = asyncio.ensure_future(session.select_route(options_for(50)["efficient"], SINTRA))
        await asyncio.sleep(0.01)
        await session.end()
        router.release(SINTRA)
        await pending

        await session.update_location(RIDER)
        assert await session.on_viewport_change(VIEWPORT_A) is None
        await session.end()  # idempotent

    asyncio.run(scenario())

    assert session.path == ()
    assert session.is_loading_route is False
    assert session.user_location == LISBON
    assert len(router.calls) == 1

    with pytest.raises(SessionStateException):
        asyncio.run(session.select_route(options_for(50)["efficient"], CASCAIS))
