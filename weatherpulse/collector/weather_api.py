"""
WeatherAPI.com 현재 날씨 조회 클라이언트
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict
from typing import Optional

import httpx

from ..config import settings
from ..errors import InvalidCity, WeatherApiUnauthorized, WeatherLookupError

logger = logging.getLogger(__name__)


@dataclass
class WeatherData:
    """현재 날씨 데이터 클래스"""
    city: str
    country: str
    temperature_celsius: float
    temperature_fahrenheit: float
    humidity: int
    description: str
    icon: str = ""

    def to_dict(self) -> dict:
        """딕셔너리로 변환"""
        return asdict(self)


class WeatherLookup(ABC):
    """날씨 조회 인터페이스"""

    @abstractmethod
    def get_current_weather(self, city: str) -> WeatherData:
        """
        도시의 현재 날씨 조회

        Raises:
            InvalidCity: 존재하지 않는 도시
            WeatherApiUnauthorized: API 키 오류
            WeatherLookupError: 그 외 조회 실패 (타임아웃 포함)
        """


class WeatherApiClient(WeatherLookup):
    """WeatherAPI.com 클라이언트"""

    CURRENT_ENDPOINT = "/current.json"

    def __init__(
        self,
        api_key: str = None,
        base_url: str = None,
        timeout: float = None,
        client: Optional[httpx.Client] = None,
    ):
        self.api_key = api_key or settings.weather_api_key
        self.base_url = (base_url or settings.weather_api_base_url).rstrip("/")

        if not self.api_key:
            logger.warning(
                "WeatherAPI 키가 설정되지 않았습니다. "
                ".env 파일에 WEATHER_API_KEY를 설정하세요."
            )

        self._client = client or httpx.Client(
            timeout=timeout or settings.http_timeout_seconds
        )

    def get_current_weather(self, city: str) -> WeatherData:
        params = {
            "key": self.api_key,
            "q": city,
        }

        try:
            response = self._client.get(f"{self.base_url}{self.CURRENT_ENDPOINT}", params=params)
            response.raise_for_status()
            data = response.json()

        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 400:
                raise InvalidCity(city) from e
            if status in (401, 403):
                raise WeatherApiUnauthorized() from e

            message = self._error_message(e.response)
            logger.error(f"날씨 API 요청 실패: {status} - {message}")
            raise WeatherLookupError(f"Weather API error: {message}") from e

        except (httpx.HTTPError, ValueError) as e:
            # 네트워크 오류, 타임아웃, 잘못된 응답 본문
            logger.error(f"날씨 조회 실패 [{city}]: {e}")
            raise WeatherLookupError() from e

        return self._parse(data)

    @staticmethod
    def _parse(data: dict) -> WeatherData:
        """API 응답 → WeatherData"""
        try:
            location = data["location"]
            current = data["current"]

            return WeatherData(
                city=location["name"],
                country=location.get("country", ""),
                temperature_celsius=current["temp_c"],
                temperature_fahrenheit=current["temp_f"],
                humidity=current.get("humidity", 0),
                description=current["condition"]["text"],
                icon=current["condition"].get("icon", ""),
            )
        except (KeyError, TypeError) as e:
            raise WeatherLookupError(f"Unexpected weather API response: missing {e}") from e

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            return response.json().get("error", {}).get("message", "Unknown error")
        except ValueError:
            return "Unknown error"

    def close(self) -> None:
        self._client.close()
