#Marks routing as a package.
#Re-exports the public APIs (OSRMClient, NominatimClient, generate_variants,
#RoutePlanner, the value models) so other modules import from routing without
#knowing internal file names.
#No business logic.

from .models import (
    Coordinate,
    GeocodeResult,
    RadiusArea,
    RouteOption,
    RouteResult,
    Viewport,
    WeatherImpact,
)
from .osrm_client import OSRMClient, RouteUnavailable
from .nominatim_client import NominatimClient, GeocodeEmpty
from .variants import generate_variants, recommended_variant
from .route_service import RoutePlanner, PlanResult

__all__ = [
    "Coordinate",
    "GeocodeResult",
    "RadiusArea",
    "RouteOption",
    "RouteResult",
    "Viewport",
    "WeatherImpact",
    "OSRMClient",
    "RouteUnavailable",
    "NominatimClient",
    "GeocodeEmpty",
    "generate_variants",
    "recommended_variant",
    "RoutePlanner",
    "PlanResult",
]
