"""
WeatherPulse Web Application
Subscription API and scheduler lifecycle
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from weatherpulse import __version__
from weatherpulse.collector import WeatherApiClient
from weatherpulse.config import settings
from weatherpulse.database import (
    SqlSubscriptionRepository,
    close_db,
    init_db,
)
from weatherpulse.errors import WeatherPulseError
from weatherpulse.notifier import EmailNotifier
from weatherpulse.scheduler import SubscriptionJobScheduler
from weatherpulse.subscription import SubscriptionManager, TokenIssuer

from .dependencies import AppServices
from .routes import api_router, jobs_router, subscription_router, weather_router

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def build_services() -> AppServices:
    """설정값으로 실제 서비스 구성"""
    repository = SqlSubscriptionRepository()
    weather = WeatherApiClient()
    notifier = EmailNotifier()
    scheduler = SubscriptionJobScheduler(repository, weather, notifier)
    manager = SubscriptionManager(
        repository=repository,
        tokens=TokenIssuer(),
        notifier=notifier,
        weather=weather,
        scheduler=scheduler,
    )
    return AppServices(repository=repository, weather=weather, scheduler=scheduler, manager=manager)


def create_app(services: Optional[AppServices] = None) -> FastAPI:
    """
    FastAPI 앱 생성

    Args:
        services: 주입할 서비스 (None 이면 시작 시 DB 초기화 후 구성)
    """
    owns_database = services is None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if owns_database:
            init_db(settings.database_url)
            app.state.services = build_services()

        scheduler = app.state.services.scheduler
        scheduler.start()
        scheduler.initialize()

        yield

        # 작업을 모두 멈춘 뒤 DB 연결 해제
        scheduler.shutdown()
        if owns_database:
            close_db()

    app = FastAPI(
        title="WeatherPulse",
        description="도시별 날씨 이메일 구독 서비스",
        version=__version__,
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services

    @app.exception_handler(WeatherPulseError)
    async def weatherpulse_error_handler(request: Request, exc: WeatherPulseError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} 처리 실패: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    app.include_router(subscription_router, prefix=API_PREFIX)
    app.include_router(weather_router, prefix=API_PREFIX)
    app.include_router(jobs_router, prefix=API_PREFIX)
    app.include_router(api_router, prefix=API_PREFIX)

    return app


app = create_app()
