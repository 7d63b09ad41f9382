"""
구독 모듈
"""

from .tokens import TokenIssuer, IssuedToken, NO_EXPIRY
from .timing import cron_rule_for, next_scheduled_time, is_due
from .manager import SubscriptionManager, SubscriptionView, parse_frequency

__all__ = [
    "TokenIssuer",
    "IssuedToken",
    "NO_EXPIRY",
    "cron_rule_for",
    "next_scheduled_time",
    "is_due",
    "SubscriptionManager",
    "SubscriptionView",
    "parse_frequency",
]
