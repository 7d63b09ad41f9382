"""
데이터베이스 모듈
"""

from .models import (
    Base,
    Subscription,
    SubscriptionFrequency,
    SubscriptionRecord,
    SubscriptionStatus,
    utcnow,
)
from .repository import (
    init_db,
    close_db,
    get_session,
    SubscriptionRepository,
    SqlSubscriptionRepository,
)

__all__ = [
    "Base",
    "Subscription",
    "SubscriptionFrequency",
    "SubscriptionRecord",
    "SubscriptionStatus",
    "utcnow",
    "init_db",
    "close_db",
    "get_session",
    "SubscriptionRepository",
    "SqlSubscriptionRepository",
]
