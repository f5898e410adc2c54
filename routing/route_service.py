#Purpose: Route planning for the planner screen.
#Returns the candidate set the rider chooses from:
#base route from OSRM (no geometry, planning only needs distance/duration)
#three variants with battery impact (routing/variants.py)
#the recommended variant preselected
#optional advisory enrichment of a summary, which can never block the options
#It's the "which route should I take" module; navigation/session.py is "draw it and keep it live".

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import List, Optional

from .models import Coordinate, GeocodeResult, RouteOption
from .osrm_client import OSRMClient, RouteUnavailable
from .variants import generate_variants, recommended_variant

logger = logging.getLogger(__name__)

ROUTE_FAILED_MESSAGE = "Route calculation failed."


@dataclass
class PlanResult:
    options: List[RouteOption] = field(default_factory=list)
    selected_id: Optional[str] = None
    destination: Optional[Coordinate] = None
    error: Optional[str] = None

    @property
    def selected(self) -> Optional[RouteOption]:
        for option in self.options:
            if option.id == self.selected_id:
                return option
        return None


class RoutePlanner:
    """
    Planning-phase orchestration: Router -> Route Variant Generator.

    insight_service is any object with
    route_insight(origin, destination, relief, weather, battery, user_location)
    returning something with .text and .sources (see advisory/insight_service.py).
    """
    def __init__(self, router: OSRMClient, insight_service=None):
        self.router = router
        self.insight_service = insight_service
        self.last_plan = PlanResult()

    async def plan(
        self,
        origin: Optional[Coordinate],
        destination: Optional[GeocodeResult],
        current_battery_pct: float,
    ) -> PlanResult:
        """
        On RouteUnavailable the previous plan is kept and only the error is set.
        """
        if origin is None or destination is None:
            return self.last_plan

        try:
            base = await self.router.route(origin, destination.coordinate, with_geometry=False)
        except RouteUnavailable as exc:
            logger.warning("Planning route to %s failed: %s", destination.display_name, exc)
            self.last_plan = replace(self.last_plan, error=ROUTE_FAILED_MESSAGE)
            return self.last_plan

        options = generate_variants(base.distance_km, base.duration_min, current_battery_pct)
        self.last_plan = PlanResult(
            options=options,
            selected_id=recommended_variant(options).id,
            destination=destination.coordinate,
        )
        return self.last_plan

    def select(self, option_id: str) -> PlanResult:
        if not any(option.id == option_id for option in self.last_plan.options):
            raise ValueError(f"Unknown route option: {option_id}")
        self.last_plan = replace(self.last_plan, selected_id=option_id)
        return self.last_plan

    async def enrich(
        self,
        option: RouteOption,
        origin_label: str,
        destination_label: str,
        current_battery_pct: float,
        user_location: Optional[Coordinate] = None,
    ) -> RouteOption:
        """
        Replace the option's smart summary with a grounded insight.
        The insight service degrades to canned text itself; anything else
        going wrong leaves the option untouched.
        """
        if self.insight_service is None:
            return option

        relief = f"{option.elevation_gain_m}m elevation gain"
        loop = asyncio.get_running_loop()
        try:
            # the advisory client is synchronous, keep it off the event loop
            insight = await loop.run_in_executor(
                None,
                lambda: self.insight_service.route_insight(
                    origin_label,
                    destination_label,
                    relief,
                    option.weather_impact.value,
                    current_battery_pct,
                    user_location,
                ),
            )
        except Exception as exc:
            logger.error("Route insight failed: %s", exc)
            return option

        enriched = replace(option, smart_summary=insight.text, sources=tuple(insight.sources))
        self.last_plan = replace(
            self.last_plan,
            options=[enriched if item.id == option.id else item for item in self.last_plan.options],
        )
        return enriched
