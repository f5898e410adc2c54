"""
Advisory collaborators (display only, never on the critical path).

Public API:
- WeatherClient, WeatherData, describe_weather_code
- InsightService, GroundedResponse, GroundingSource
"""
from .weather_client import WeatherClient, WeatherData, WeatherUnavailable, describe_weather_code
from .insight_service import GroundedResponse, GroundingSource, InsightService

__all__ = [
    "WeatherClient",
    "WeatherData",
    "WeatherUnavailable",
    "describe_weather_code",
    "GroundedResponse",
    "GroundingSource",
    "InsightService",
]
