import logging

import httpx
from pydantic import BaseModel

from taskapi.core.config import Settings
from taskapi.exceptions import WeatherAPIError, WeatherNetworkError, WeatherPayloadError

logger = logging.getLogger(__name__)


class WeatherReport(BaseModel):
    city: str
    temperature: float
    feels_like: float
    description: str
    humidity: float
    wind_speed: float


class WeatherService:
    """
    Current conditions from OpenWeatherMap.

    One GET per call with an explicit timeout. Failures are split into
    network errors, non-2xx answers and unusable payloads.
    """

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None):
        self.settings = settings
        self._client = client

    async def get_weather_for_city(self, city: str) -> WeatherReport:
        params = {
            "q": city,
            "appid": self.settings.weather_api_key,
            "units": self.settings.weather_units,
        }
        url = f"{self.settings.weather_api_base}/weather"

        try:
            if self._client is not None:
                response = await self._client.get(
                    url, params=params, timeout=self.settings.weather_timeout_seconds
                )
            else:
                async with httpx.AsyncClient(
                    timeout=self.settings.weather_timeout_seconds
                ) as client:
                    response = await client.get(url, params=params)
        except httpx.RequestError as e:
            logger.error(f"Weather request for {city!r} failed: {e}")
            raise WeatherNetworkError("Weather service unreachable") from e

        try:
            payload = response.json()
        except ValueError as e:
            if response.is_success:
                raise WeatherPayloadError("Failed to parse weather data") from e
            payload = {}

        if not response.is_success:
            message = "Failed to fetch weather data"
            if isinstance(payload, dict) and payload.get("message"):
                message = str(payload["message"])
            logger.warning(f"Weather API returned {response.status_code} for {city!r}: {message}")
            raise WeatherAPIError(message, status_code=response.status_code)

        try:
            return WeatherReport(
                city=payload["name"],
                temperature=payload["main"]["temp"],
                feels_like=payload["main"]["feels_like"],
                description=payload["weather"][0]["description"],
                humidity=payload["main"]["humidity"],
                wind_speed=payload["wind"]["speed"],
            )
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise WeatherPayloadError("Failed to parse weather data") from e
