"""
SQLAlchemy 데이터베이스 모델 정의
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import (
    Column,
    String,
    DateTime,
    Enum,
    Index,
    text,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    """현재 UTC 시각 (naive)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SubscriptionFrequency(PyEnum):
    """발송 주기"""
    HOURLY = "hourly"
    DAILY = "daily"


class SubscriptionStatus(PyEnum):
    """구독 상태"""
    PENDING = "pending"            # 확인 메일 발송, 확인 대기
    CONFIRMED = "confirmed"        # 확인 완료, 정기 발송 대상
    UNSUBSCRIBED = "unsubscribed"  # 구독 해지


class Subscription(Base):
    """날씨 구독"""
    __tablename__ = "subscriptions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    email = Column(String(255), nullable=False)
    city = Column(String(100), nullable=False)
    frequency = Column(Enum(SubscriptionFrequency), nullable=False)
    status = Column(Enum(SubscriptionStatus), nullable=False, default=SubscriptionStatus.PENDING)

    # 확인/해지 토큰
    token = Column(String(128), unique=True, nullable=False)
    token_expiry = Column(DateTime, nullable=False)

    # 타임스탬프
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # 발송 스케줄
    last_sent_at = Column(DateTime)       # 마지막 발송 성공 시각
    next_scheduled_at = Column(DateTime)  # 이 시각 이전에는 발송하지 않음 (NULL = 즉시)

    # 인덱스
    __table_args__ = (
        Index("idx_subscription_email_city", "email", "city"),
        # 해지되지 않은 (email, city) 쌍은 하나만 허용
        Index(
            "uq_subscription_active_email_city",
            "email",
            "city",
            unique=True,
            sqlite_where=text("status != 'UNSUBSCRIBED'"),
            postgresql_where=text("status != 'UNSUBSCRIBED'"),
        ),
        Index("idx_subscription_status", "status"),
        Index("idx_subscription_next_scheduled", "next_scheduled_at"),
    )

    def __repr__(self):
        return f"<Subscription(id='{self.id}', email='{self.email}', city='{self.city}', status='{self.status.value}')>"


@dataclass
class SubscriptionRecord:
    """세션과 분리된 구독 데이터"""
    id: str
    email: str
    city: str
    frequency: SubscriptionFrequency
    status: SubscriptionStatus
    token: str
    token_expiry: datetime
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_sent_at: Optional[datetime] = None
    next_scheduled_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, subscription: Subscription) -> "SubscriptionRecord":
        return cls(
            id=subscription.id,
            email=subscription.email,
            city=subscription.city,
            frequency=subscription.frequency,
            status=subscription.status,
            token=subscription.token,
            token_expiry=subscription.token_expiry,
            created_at=subscription.created_at,
            updated_at=subscription.updated_at,
            last_sent_at=subscription.last_sent_at,
            next_scheduled_at=subscription.next_scheduled_at,
        )
