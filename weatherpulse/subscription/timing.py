"""
발송 주기별 스케줄 계산

모두 순수 함수이며, 현재 시각은 now 인자로 주입할 수 있다.
"""

from datetime import datetime, timedelta
from typing import Optional, Union

from ..database import SubscriptionFrequency, utcnow

DAILY_SEND_HOUR = 8

INTERVALS = {
    SubscriptionFrequency.HOURLY: timedelta(hours=1),
    SubscriptionFrequency.DAILY: timedelta(days=1),
}


def as_frequency(value: Union[SubscriptionFrequency, str, None]) -> Optional[SubscriptionFrequency]:
    """문자열/Enum → SubscriptionFrequency (알 수 없으면 None)"""
    if isinstance(value, SubscriptionFrequency):
        return value
    if isinstance(value, str):
        try:
            return SubscriptionFrequency(value.strip().lower())
        except ValueError:
            return None
    return None


def cron_rule_for(frequency, daily_hour: int = DAILY_SEND_HOUR) -> dict:
    """
    APScheduler CronTrigger 인자 반환

    HOURLY: 매시 정각
    DAILY: 매일 daily_hour 시 정각 (알 수 없는 주기도 DAILY 로 처리)
    """
    if as_frequency(frequency) == SubscriptionFrequency.HOURLY:
        return {"minute": 0}
    return {"hour": daily_hour, "minute": 0}


def next_scheduled_time(
    frequency,
    last_sent_at: Optional[datetime] = None,
    now: Optional[datetime] = None
) -> datetime:
    """다음 발송 가능 시각. 발송 이력이 없으면 즉시(now)."""
    if last_sent_at is None:
        return now or utcnow()

    interval = INTERVALS.get(as_frequency(frequency), INTERVALS[SubscriptionFrequency.DAILY])
    return last_sent_at + interval


def is_due(next_scheduled_at: Optional[datetime] = None, now: Optional[datetime] = None) -> bool:
    """발송 시각 도래 여부 (NULL 이면 항상 True)"""
    if next_scheduled_at is None:
        return True
    return next_scheduled_at <= (now or utcnow())
