"""
구독 관리자 - 구독 신청, 확인, 해지

상태 전이: PENDING → CONFIRMED → UNSUBSCRIBED (PENDING 에서 바로 해지도 허용)
메일 발송과 날씨 조회 실패는 상태 전이를 막지 않고 로깅만 한다.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Optional

from ..collector import WeatherLookup
from ..database import (
    SubscriptionFrequency,
    SubscriptionRecord,
    SubscriptionRepository,
    SubscriptionStatus,
)
from ..errors import (
    InvalidFrequency,
    InvalidSubscriptionState,
    InvalidToken,
    SubscriptionNotFound,
    WeatherLookupError,
)
from ..notifier import Notifier
from .timing import as_frequency
from .tokens import TokenIssuer

if TYPE_CHECKING:
    from ..scheduler import SubscriptionJobScheduler

logger = logging.getLogger(__name__)


@dataclass
class SubscriptionView:
    """외부로 노출되는 구독 정보 (토큰 제외)"""
    id: str
    email: str
    city: str
    frequency: SubscriptionFrequency
    status: SubscriptionStatus
    created_at: Optional[datetime]

    @classmethod
    def from_record(cls, record: SubscriptionRecord) -> "SubscriptionView":
        return cls(
            id=record.id,
            email=record.email,
            city=record.city,
            frequency=record.frequency,
            status=record.status,
            created_at=record.created_at,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "city": self.city,
            "frequency": self.frequency.value,
            "status": self.status.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


def parse_frequency(value) -> SubscriptionFrequency:
    """발송 주기 검증 (hourly/daily, 대소문자 무시)"""
    frequency = as_frequency(value)
    if frequency is None:
        raise InvalidFrequency()
    return frequency


class SubscriptionManager:
    """구독 수명 주기 관리 클래스"""

    def __init__(
        self,
        repository: SubscriptionRepository,
        tokens: TokenIssuer,
        notifier: Notifier,
        weather: WeatherLookup,
        scheduler: Optional["SubscriptionJobScheduler"] = None,
    ):
        self.repository = repository
        self.tokens = tokens
        self.notifier = notifier
        self.weather = weather
        self.scheduler = scheduler

    def create_subscription(self, email: str, city: str, frequency) -> SubscriptionView:
        """
        구독 신청

        Args:
            email: 이메일 주소
            city: 도시 이름
            frequency: 발송 주기 ("hourly" | "daily")

        Returns:
            PENDING 상태의 구독

        Raises:
            InvalidFrequency: 알 수 없는 주기 (저장소에 쓰지 않음)
            SubscriptionAlreadyExists: 해지되지 않은 동일 email/city 구독 존재
        """
        frequency = parse_frequency(frequency)
        email = email.strip().lower()
        city = city.strip()

        issued = self.tokens.issue()

        record = self.repository.create(
            email=email,
            city=city,
            frequency=frequency,
            status=SubscriptionStatus.PENDING,
            token=issued.token,
            token_expiry=issued.expiry,
        )
        logger.info(f"새 구독 신청: {email} / {city} ({frequency.value}) [subscription={record.id}]")

        self._notify(
            "send_confirmation",
            record.id,
            lambda: self.notifier.send_confirmation(email, issued.token, city, frequency.value),
        )

        return SubscriptionView.from_record(record)

    def confirm_subscription(self, token: str) -> SubscriptionView:
        """
        구독 확인

        새 해지용 토큰(만료 없음)을 발급하고, 환영 메일을 보낸 뒤
        스케줄러에 발송 작업을 등록한다.

        Raises:
            InvalidToken: 빈 토큰
            SubscriptionNotFound: 토큰에 해당하는 구독 없음
            ExpiredToken: 확인 토큰 만료
            InvalidSubscriptionState: PENDING 상태가 아님
        """
        if not token:
            raise InvalidToken()

        subscription = self._find_by_token(token)
        self.tokens.validate(token, subscription.token_expiry)

        if subscription.status != SubscriptionStatus.PENDING:
            raise InvalidSubscriptionState(
                f"Subscription is already {subscription.status.value}"
            )

        issued = self.tokens.issue(no_expiry=True)
        # 동시에 해지/확인된 경우 InvalidSubscriptionState
        updated = self.repository.update(
            subscription.id,
            expected_status=SubscriptionStatus.PENDING,
            status=SubscriptionStatus.CONFIRMED,
            token=issued.token,
            token_expiry=issued.expiry,
        )
        logger.info(f"구독 확인 완료: {updated.email} / {updated.city} [subscription={updated.id}]")

        self._send_welcome(updated)

        if self.scheduler is not None:
            try:
                self.scheduler.schedule_job(updated.id)
            except Exception as e:
                logger.exception(f"발송 작업 등록 실패 [subscription={updated.id}]: {e}")

        return SubscriptionView.from_record(updated)

    def unsubscribe(self, token: str) -> SubscriptionView:
        """
        구독 해지 (해지 토큰은 만료를 확인하지 않음)

        이미 해지된 구독이면 메일을 다시 보내지 않고 그대로 반환한다.

        Raises:
            InvalidToken: 빈 토큰
            SubscriptionNotFound: 토큰에 해당하는 구독 없음
        """
        if not token:
            raise InvalidToken()

        subscription = self._find_by_token(token)
        self.tokens.validate(token, subscription.token_expiry, is_unsubscribe_token=True)

        # 상태는 앞으로만 바뀌므로 재시도는 최대 두 번
        while True:
            if subscription.status == SubscriptionStatus.UNSUBSCRIBED:
                self._cancel_job(subscription.id)
                logger.info(f"이미 해지된 구독 [subscription={subscription.id}]")
                return SubscriptionView.from_record(subscription)

            try:
                updated = self.repository.update(
                    subscription.id,
                    expected_status=subscription.status,
                    status=SubscriptionStatus.UNSUBSCRIBED,
                )
                break
            except InvalidSubscriptionState:
                subscription = self.repository.find_by_id(subscription.id)
                if subscription is None:
                    raise SubscriptionNotFound()

        logger.info(f"구독 해지: {updated.email} / {updated.city} [subscription={updated.id}]")

        self._cancel_job(updated.id)

        self._notify(
            "send_unsubscribe_confirmation",
            updated.id,
            lambda: self.notifier.send_unsubscribe_confirmation(updated.email, updated.city),
        )

        return SubscriptionView.from_record(updated)

    def _find_by_token(self, token: str) -> SubscriptionRecord:
        subscription = self.repository.find_by_token(token)
        if subscription is None:
            raise SubscriptionNotFound()
        return subscription

    def _send_welcome(self, subscription: SubscriptionRecord) -> None:
        """현재 날씨를 포함한 환영 메일. 날씨 조회 실패 시 날씨 없이 발송."""
        description = None
        temperature = None

        try:
            weather = self.weather.get_current_weather(subscription.city)
            description = weather.description
            temperature = weather.temperature_celsius
        except WeatherLookupError as e:
            logger.error(f"환영 메일용 날씨 조회 실패 [subscription={subscription.id}]: {e}")

        self._notify(
            "send_welcome",
            subscription.id,
            lambda: self.notifier.send_welcome(
                subscription.email,
                subscription.token,
                subscription.city,
                subscription.frequency.value,
                description,
                temperature,
            ),
        )

    def _cancel_job(self, subscription_id: str) -> None:
        if self.scheduler is None:
            return
        try:
            self.scheduler.cancel_job(subscription_id)
        except Exception as e:
            logger.exception(f"발송 작업 취소 실패 [subscription={subscription_id}]: {e}")

    @staticmethod
    def _notify(operation: str, subscription_id: str, send: Callable[[], bool]) -> None:
        """메일 발송 (실패해도 예외를 전파하지 않음)"""
        try:
            if not send():
                logger.warning(f"{operation} 실패 [subscription={subscription_id}]")
        except Exception as e:
            logger.exception(f"{operation} 중 오류 [subscription={subscription_id}]: {e}")
