"""Weather Routes - 현재 날씨 조회"""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..dependencies import AppServices, get_services

router = APIRouter(tags=["weather"])


@router.get("/weather")
def get_weather(city: Optional[str] = None, services: AppServices = Depends(get_services)):
    if not city or not city.strip():
        return JSONResponse(status_code=400, content={"error": "City parameter is required"})

    weather = services.weather.get_current_weather(city.strip())
    return weather.to_dict()
