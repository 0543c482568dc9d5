from fastapi import APIRouter, Depends

from taskapi.dependencies import get_weather_service
from taskapi.models import Envelope
from taskapi.services.weather_service import WeatherReport, WeatherService

router = APIRouter(prefix="/api/weather", tags=["weather"])


@router.get("/{city}", response_model=Envelope[WeatherReport], response_model_exclude_unset=True)
async def get_weather(city: str, service: WeatherService = Depends(get_weather_service)):
    """Current weather for a city"""
    return Envelope(data=await service.get_weather_for_city(city))
