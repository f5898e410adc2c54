import asyncio
import csv
import logging
import os
import sys
import time

from advisory.weather_client import WeatherClient, WeatherUnavailable
from navigation.geolocation import FixedLocationProvider
from navigation.policy import instant_policy
from navigation.session import NavigationSession
from routing.models import Coordinate
from routing.nominatim_client import NominatimClient
from routing.osrm_client import OSRMClient
from routing.route_service import RoutePlanner
from stations.locator import StationLocator


def replay_points(path, count=5):
    # evenly spaced fixes along the drawn polyline, destination excluded
    if len(path) < 2:
        return []
    step = max(1, len(path) // count)
    return list(path[step:-1:step])[:count]


async def run_simulation(destination_text="Sintra", battery_pct=60):
    print("=== STARTING END-TO-END NAVIGATION SIMULATION ===")

    start = Coordinate(38.7223, -9.1393)  # Lisbon
    osrm_client = OSRMClient()
    geocoder = NominatimClient()
    locator = StationLocator()

    # 1. Resolve destination
    candidates = await geocoder.search(destination_text)
    if not candidates:
        print(f"[FAILED] No place found for '{destination_text}'.")
        return
    destination = candidates[0]
    print(f"Destination: {destination.display_name} ({destination.lat}, {destination.lng})\n")

    # 2. Weather card (display only)
    try:
        weather = WeatherClient().current(start.lat, start.lng)
        print(f"Weather: {weather.temp_c}C, {weather.condition}, wind {weather.wind_speed_kmh} km/h\n")
    except WeatherUnavailable:
        print("Weather: unavailable\n")

    # 3. Plan the route variants
    planner = RoutePlanner(osrm_client)
    t0 = time.time()
    plan = await planner.plan(start, destination, battery_pct)
    if plan.error:
        print(f"[FAILED] {plan.error}")
        return
    print(f"Planned {len(plan.options)} variants in {time.time() - t0:.2f}s.")
    print("\n--- Route Options ---")
    for option in plan.options:
        flag = "*" if option.id == plan.selected_id else " "
        stop = " (charging stop needed)" if option.requires_charging_stop else ""
        print(f"{flag} {option.name}: {option.smart_summary}{stop}")

    # 4. Replay a ride on the recommended variant
    session = NavigationSession(
        osrm_client,
        locator,
        location_provider=FixedLocationProvider(start),
        policy=instant_policy(),
        active_route=plan.selected,
        destination=destination.coordinate,
    )
    await session.start()
    snapshot = session.snapshot()
    print(f"\nRoute drawn: {len(snapshot.path)} points, {snapshot.remaining_distance_km} km")
    print(f"Stations in corridor: {len(snapshot.charging_stations)}")
    if snapshot.show_smart_stop_banner:
        print(f"Smart stop suggested: {snapshot.smart_stop.name} ({snapshot.smart_stop.power_kw:g} kW)")

    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    output_path = os.path.join(base_dir, "navigation_results.csv")

    with open(output_path, "w", newline='') as file:
        writer = csv.writer(file)
        writer.writerow(["fix", "lat", "lng", "state", "remaining_km", "stations", "smart_stop"])

        session.set_navigating(True)
        for i, point in enumerate(replay_points(snapshot.path)):
            await session.update_location(point)
            snap = session.snapshot()
            writer.writerow([
                i + 1,
                point.lat,
                point.lng,
                snap.state.value,
                snap.remaining_distance_km,
                len(snap.charging_stations),
                snap.smart_stop.id if snap.smart_stop else "",
            ])
            print(f"[FIX {i + 1}] {point.key()} -> {snap.remaining_distance_km} km left ({snap.state.value})")

    await session.end()
    await osrm_client.aclose()
    await geocoder.aclose()

    print("\n=== SIMULATION COMPLETE ===")
    print(f"Results written to '{output_path}'.")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    asyncio.run(run_simulation(*sys.argv[1:2]))
