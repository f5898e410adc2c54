#Purpose: Open-Meteo "adapter/client" for the dashboard weather card.
#Display only: nothing in routing/stations/navigation depends on it.
#Encapsulates:
#current-conditions query (temperature, humidity, WMO weather code, wind in km/h)
#WMO code -> readable description
#failures raise WeatherUnavailable; the caller simply shows no card

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

import requests
from dotenv import load_dotenv

load_dotenv()
OPEN_METEO_URL = os.getenv("OPEN_METEO_URL", "https://api.open-meteo.com/v1/forecast")

logger = logging.getLogger(__name__)


class WeatherUnavailable(Exception):
    pass


@dataclass(frozen=True)
class WeatherData:
    temp_c: int
    condition: str
    wind_speed_kmh: int
    humidity_pct: float
    weather_code: int


def describe_weather_code(code: int) -> str:
    """Maps WMO weather interpretation codes to a short description."""
    if code == 0:
        return "Clear sky"
    if 1 <= code <= 3:
        return "Partly cloudy"
    if 45 <= code <= 48:
        return "Fog"
    if 51 <= code <= 55:
        return "Drizzle"
    if 61 <= code <= 65:
        return "Rain"
    if 71 <= code <= 77:
        return "Snow"
    if 80 <= code <= 82:
        return "Showers"
    if code >= 95:
        return "Thunderstorm"
    return "Unsettled"


class WeatherClient:
    def __init__(self, url: str = None, timeout: int = 5):
        self.url = url or OPEN_METEO_URL
        self.timeout = timeout

    def current(self, lat: float, lng: float) -> WeatherData:
        params = {
            "latitude": lat,
            "longitude": lng,
            "current": "temperature_2m,relative_humidity_2m,weather_code,wind_speed_10m",
            "wind_speed_unit": "kmh",
        }
        try:
            response = requests.get(self.url, params=params, timeout=self.timeout)
            response.raise_for_status()
            current = response.json()["current"]
            code = int(current["weather_code"])
            return WeatherData(
                temp_c=round(current["temperature_2m"]),
                condition=describe_weather_code(code),
                wind_speed_kmh=round(current["wind_speed_10m"]),
                humidity_pct=current["relative_humidity_2m"],
                weather_code=code,
            )
        except requests.exceptions.RequestException as exc:
            logger.error("Weather fetch error: %s", exc)
            raise WeatherUnavailable(str(exc)) from exc
        except (KeyError, TypeError, ValueError) as exc:
            logger.error("Weather payload could not be parsed: %s", exc)
            raise WeatherUnavailable("unexpected weather payload") from exc
