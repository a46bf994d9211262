"""Current conditions and a 5-day outlook for a location.

With an OpenWeatherMap key the data comes from the `weather` and `forecast`
endpoints. Without one, a synthetic seasonal model keeps the forecast page
usable. Both paths go through the shared RateLimitedCache, so repeated requests
for the same location inside the TTL return the identical observation.
"""
from __future__ import annotations

import datetime as dt
import math
import random
import re
from typing import Callable, List, Optional

import requests

from barback.config import Settings, settings as default_settings
from barback.domain import ForecastDay, WeatherObservation
from barback.errors import MalformedUpstreamResponse, WeatherProviderError
from barback.rate_limited_cache import RateLimitedCache
from utils.logging_utils import get_tagged_logger, mask_secret_url

logger = get_tagged_logger(__name__, tag="weather_provider")

OPENWEATHERMAP_PROVIDER = "openweathermap"
DEMO_PROVIDER = "weather-demo"

DEMO_CONDITIONS = ("Clear", "Clouds", "Rain")
DIURNAL_AMPLITUDE_F = 15.0
JITTER_F = 5.0
FORECAST_DAYS = 5
# forecast endpoint returns 3-hour steps; 8 steps per day
SAMPLES_PER_DAY = 8
MAX_LOCATION_LENGTH = 100

_CONTROL_OR_HTML = re.compile(r"[\x00-\x1f\x7f<>\"'&`]")
_WHITESPACE = re.compile(r"\s+")


def sanitize_location(location: Optional[str], default: str = "New York") -> str:
    """Trim and strip control/HTML-special characters; empty input yields `default`."""
    if not location:
        return default
    cleaned = _CONTROL_OR_HTML.sub("", location)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()[:MAX_LOCATION_LENGTH].strip()
    return cleaned or default


def seasonal_base_temperature(month: int) -> int:
    """Base °F for a calendar month (1-12)."""
    if month in (12, 1, 2):
        return 35
    if month in (3, 4, 5):
        return 65
    if month in (6, 7, 8):
        return 85
    return 60


def diurnal_offset(hour: int) -> float:
    """Daily temperature swing: trough at 06:00, peak at 18:00."""
    return -DIURNAL_AMPLITUDE_F * math.cos((hour - 6) * math.pi / 12)


class WeatherProvider:
    """Fetch WeatherObservation values through a shared cache and rate limiter."""

    def __init__(
        self,
        cache: RateLimitedCache,
        settings: Settings | None = None,
        *,
        session: requests.Session | None = None,
        rng: random.Random | None = None,
        now: Callable[[], dt.datetime] | None = None,
    ) -> None:
        self.cache = cache
        self.settings = settings or default_settings
        self.session = session or requests.Session()
        self.rng = rng or random.Random()
        self.now = now or dt.datetime.now

    @property
    def demo_mode(self) -> bool:
        return not self.settings.weather_api_key

    def get_weather_data(self, location: str | None = None) -> WeatherObservation:
        """Return current conditions and a 5-day outlook for `location`.

        Raises RateLimitExceeded when the provider budget is spent and
        WeatherProviderError when the upstream call fails.
        """
        loc = sanitize_location(location, self.settings.default_location)

        if self.demo_mode:
            limit = self.settings.limit_for(DEMO_PROVIDER)
            logger.debug("No weather API key; using synthetic observation", extra={"location": loc})
            return self.cache.get_or_fetch(
                DEMO_PROVIDER, loc, limit.ttl_ms, limit.max_calls, limit.window_ms,
                self._synthetic_observation,
            )

        limit = self.settings.limit_for(OPENWEATHERMAP_PROVIDER)
        current = self.cache.get_or_fetch(
            OPENWEATHERMAP_PROVIDER, f"current:{loc}", limit.ttl_ms, limit.max_calls, limit.window_ms,
            lambda: self._get_json("weather", loc),
        )
        forecast = self.cache.get_or_fetch(
            OPENWEATHERMAP_PROVIDER, f"forecast:{loc}", limit.ttl_ms, limit.max_calls, limit.window_ms,
            lambda: self._get_json("forecast", loc),
        )
        observation = self._parse_observation(current, forecast)
        logger.info(
            "Fetched weather",
            extra={"location": loc, "temperature": observation.temperature, "condition": observation.condition},
        )
        return observation

    # OpenWeatherMap -----------------------------------------------------
    def _get_json(self, endpoint: str, location: str) -> dict:
        url = f"{self.settings.openweathermap_base_url}/{endpoint}"
        params = {"q": location, "appid": self.settings.weather_api_key, "units": "imperial"}
        try:
            resp = self.session.get(url, params=params, timeout=self.settings.http_timeout_seconds)
        except requests.RequestException as exc:
            logger.error(
                "Weather request failed",
                extra={"endpoint": endpoint, "url": mask_secret_url(url), "error_type": type(exc).__name__},
            )
            # str(exc) embeds the full query string, appid included
            raise WeatherProviderError(OPENWEATHERMAP_PROVIDER, f"request failed: {type(exc).__name__}") from exc

        if not resp.ok:
            logger.error(
                "Weather API returned error status",
                extra={"status": resp.status_code, "url": mask_secret_url(getattr(resp, "url", url) or url)},
            )
            raise WeatherProviderError(OPENWEATHERMAP_PROVIDER, f"HTTP {resp.status_code}")

        try:
            return resp.json()
        except ValueError as exc:
            raise MalformedUpstreamResponse(OPENWEATHERMAP_PROVIDER, "invalid json") from exc

    @staticmethod
    def _parse_observation(current: dict, forecast: dict) -> WeatherObservation:
        try:
            days: List[ForecastDay] = []
            for item in forecast["list"][::SAMPLES_PER_DAY][:FORECAST_DAYS]:
                days.append(
                    ForecastDay(
                        date=dt.datetime.fromtimestamp(item["dt"], tz=dt.timezone.utc).date().isoformat(),
                        temp_high=round(item["main"]["temp_max"]),
                        temp_low=round(item["main"]["temp_min"]),
                        condition=item["weather"][0]["main"],
                    )
                )
            return WeatherObservation(
                temperature=round(current["main"]["temp"]),
                condition=current["weather"][0]["main"],
                humidity=int(current["main"]["humidity"]),
                forecast=tuple(days),
            )
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise MalformedUpstreamResponse(OPENWEATHERMAP_PROVIDER, f"unexpected payload: {exc}") from exc

    # Synthetic ----------------------------------------------------------
    def _synthetic_observation(self) -> WeatherObservation:
        now = self.now()
        base = seasonal_base_temperature(now.month)
        jitter = self.rng.uniform(-JITTER_F, JITTER_F)
        temperature = round(base + diurnal_offset(now.hour) + jitter)

        forecast = tuple(
            ForecastDay(
                date=(now.date() + dt.timedelta(days=i)).isoformat(),
                temp_high=round(temperature + self.rng.uniform(-10, 10)),
                temp_low=round(temperature - 15 + self.rng.uniform(-5, 5)),
                condition=self.rng.choice(DEMO_CONDITIONS),
            )
            for i in range(FORECAST_DAYS)
        )
        return WeatherObservation(
            temperature=temperature,
            condition=self.rng.choice(DEMO_CONDITIONS),
            humidity=self.rng.randint(40, 80),
            forecast=forecast,
        )


__all__ = ["WeatherProvider", "sanitize_location", "seasonal_base_temperature", "diurnal_offset"]
