"""
Purpose: Route Variant Generator.
What it does:
Derives the three named route options (fastest / efficient / safest) from one
base route, with a linear battery-impact estimate and a fixed elevation figure.

Rule: Pure function. Same inputs -> same three variants. No HTTP, no state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from .models import RouteOption, WeatherImpact, round_half_up


@dataclass(frozen=True)
class VariantProfile:
    """
    Fixed multipliers for one variant.

    battery_factor is applied to the BASE distance (not the stretched variant
    distance), so "efficient" on a 50 km route costs 45 %, not 47 %.
    """
    id: str
    name: str
    distance_factor: float
    duration_factor: float
    battery_factor: float
    elevation_gain_m: int
    recommended: bool
    remark: str
    show_duration: bool = False


VARIANT_PROFILES: List[VariantProfile] = [
    VariantProfile("fastest", "Fastest", 1.00, 1.00, 1.4, 120, False, "Steep terrain.", show_duration=True),
    VariantProfile("efficient", "Efficient", 1.05, 1.10, 0.9, 40, True, "Optimized for range."),
    VariantProfile("safest", "Safest", 1.08, 1.20, 1.1, 60, False, "Safer roads."),
]


def _summary(profile: VariantProfile, distance_km: float, duration_min: int, impact: int) -> str:
    parts = [f"{distance_km}km"]
    if profile.show_duration:
        parts.append(f"{duration_min}m")
    parts.append(f"-{impact}%")
    parts.append(profile.remark)
    return " | ".join(parts)


def build_variant(
    profile: VariantProfile,
    base_distance_km: float,
    base_duration_min: float,
    current_battery_pct: float,
) -> RouteOption:
    distance_km = round_half_up(base_distance_km * profile.distance_factor, 1)
    duration_min = int(round_half_up(base_duration_min * profile.duration_factor))
    impact = int(round_half_up(base_distance_km * profile.battery_factor))

    return RouteOption(
        id=profile.id,
        name=profile.name,
        distance_km=distance_km,
        duration_min=duration_min,
        battery_impact_pct=impact,
        elevation_gain_m=profile.elevation_gain_m,
        requires_charging_stop=impact > current_battery_pct,
        smart_summary=_summary(profile, distance_km, duration_min, impact),
        is_recommended=profile.recommended,
        weather_impact=WeatherImpact.CLEAR,
    )


def generate_variants(
    base_distance_km: float,
    base_duration_min: float,
    current_battery_pct: float,
) -> List[RouteOption]:
    """
    Returns exactly three RouteOptions in fixed order: fastest, efficient, safest.
    Exactly one of them (efficient) is recommended.
    """
    if base_distance_km < 0 or base_duration_min < 0:
        raise ValueError("Base distance and duration must be non-negative.")

    return [
        build_variant(profile, base_distance_km, base_duration_min, current_battery_pct)
        for profile in VARIANT_PROFILES
    ]


def recommended_variant(options: List[RouteOption]) -> RouteOption:
    for option in options:
        if option.is_recommended:
            return option
    raise ValueError("No recommended variant in option set.")
