"""
라우트 공용 의존성
"""

from dataclasses import dataclass

from fastapi import Request

from weatherpulse.collector import WeatherLookup
from weatherpulse.database import SubscriptionRepository
from weatherpulse.scheduler import SubscriptionJobScheduler
from weatherpulse.subscription import SubscriptionManager


@dataclass
class AppServices:
    """요청 처리에 필요한 서비스 묶음"""
    repository: SubscriptionRepository
    weather: WeatherLookup
    scheduler: SubscriptionJobScheduler
    manager: SubscriptionManager


def get_services(request: Request) -> AppServices:
    """요청에서 서비스 묶음 조회"""
    return request.app.state.services
