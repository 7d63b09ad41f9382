"""
WeatherPulse 설정 관리 모듈
"""

from pathlib import Path
from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache


class Settings(BaseSettings):
    """애플리케이션 설정"""

    # 프로젝트 경로
    BASE_DIR: Path = Path(__file__).parent.parent

    # 서버
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    base_url: str = Field(default="http://localhost:8000")  # 확인/해지 링크 생성용

    # WeatherAPI.com
    weather_api_key: str = Field(default="")
    weather_api_base_url: str = Field(default="https://api.weatherapi.com/v1")

    # 외부 호출 타임아웃 (날씨 조회, SMTP)
    http_timeout_seconds: float = Field(default=10.0)

    # Gmail SMTP
    gmail_address: str = Field(default="")
    gmail_app_password: str = Field(default="")
    email_from_name: str = Field(default="WeatherPulse")

    # 데이터베이스
    database_url: str = Field(default="sqlite:///./data/weatherpulse.db")

    # 토큰 (초 단위, 기본 24시간)
    token_expiry_seconds: int = Field(default=86400)

    # 스케줄러
    daily_send_hour: int = Field(default=8)

    # 로깅
    log_level: str = Field(default="INFO")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """설정 싱글톤 반환"""
    return Settings()


settings = get_settings()
