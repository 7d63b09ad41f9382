"""
데이터베이스 저장소 패턴 구현
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional
from contextlib import contextmanager

from sqlalchemy import create_engine, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from ..errors import (
    DatabaseError,
    InvalidSubscriptionState,
    SubscriptionAlreadyExists,
    SubscriptionNotFound,
)
from .models import (
    Base,
    Subscription,
    SubscriptionFrequency,
    SubscriptionRecord,
    SubscriptionStatus,
    utcnow,
)

logger = logging.getLogger(__name__)


# 데이터베이스 엔진 및 세션
_engine = None
_SessionLocal = None


def init_db(database_url: str = "sqlite:///./data/weatherpulse.db") -> None:
    """데이터베이스 초기화"""
    global _engine, _SessionLocal

    # data 디렉토리 생성
    if database_url.startswith("sqlite:///") and database_url != "sqlite:///:memory:":
        db_path = database_url.replace("sqlite:///", "")
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    engine_kwargs = {}
    if "sqlite" in database_url:
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # 메모리 DB는 모든 스레드가 같은 연결을 공유해야 함
            engine_kwargs["poolclass"] = StaticPool

    _engine = create_engine(database_url, echo=False, **engine_kwargs)
    _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_engine)

    # 테이블 생성
    Base.metadata.create_all(bind=_engine)
    logger.info(f"데이터베이스 초기화 완료: {database_url}")


def close_db() -> None:
    """데이터베이스 연결 해제"""
    global _engine, _SessionLocal

    if _engine is not None:
        _engine.dispose()
        logger.info("데이터베이스 연결 해제")

    _engine = None
    _SessionLocal = None


@contextmanager
def get_session():
    """세션 컨텍스트 매니저"""
    if _SessionLocal is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")

    session = _SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


class SubscriptionRepository(ABC):
    """구독 저장소 인터페이스"""

    @abstractmethod
    def create(
        self,
        email: str,
        city: str,
        frequency: SubscriptionFrequency,
        status: SubscriptionStatus,
        token: str,
        token_expiry: datetime,
    ) -> SubscriptionRecord:
        """구독 생성 (해지되지 않은 동일 email/city 가 있으면 SubscriptionAlreadyExists)"""

    @abstractmethod
    def find_by_id(self, subscription_id: str) -> Optional[SubscriptionRecord]:
        ...

    @abstractmethod
    def find_by_email_and_city(self, email: str, city: str) -> Optional[SubscriptionRecord]:
        ...

    @abstractmethod
    def find_by_token(self, token: str) -> Optional[SubscriptionRecord]:
        ...

    @abstractmethod
    def update(
        self,
        subscription_id: str,
        expected_status: Optional[SubscriptionStatus] = None,
        **fields,
    ) -> SubscriptionRecord:
        """
        부분 업데이트

        expected_status 가 주어지면 현재 상태가 같을 때만 원자적으로 변경한다.

        Raises:
            SubscriptionNotFound: 구독 없음
            InvalidSubscriptionState: 현재 상태가 expected_status 와 다름
        """

    @abstractmethod
    def update_scheduling(
        self,
        subscription_id: str,
        last_sent_at: Optional[datetime],
        next_scheduled_at: Optional[datetime],
    ) -> SubscriptionRecord:
        """발송 시각 정보만 업데이트"""

    @abstractmethod
    def find_all_active(self) -> list[SubscriptionRecord]:
        """CONFIRMED 구독 목록"""

    @abstractmethod
    def find_due_for_sending(self, now: Optional[datetime] = None) -> list[SubscriptionRecord]:
        """발송 시각이 지난 CONFIRMED 구독 목록"""

    @abstractmethod
    def delete(self, subscription_id: str) -> bool:
        ...


class SqlSubscriptionRepository(SubscriptionRepository):
    """SQLAlchemy 기반 구독 저장소"""

    # update() 로 변경 가능한 필드
    UPDATABLE_FIELDS = {"status", "token", "token_expiry", "last_sent_at", "next_scheduled_at"}

    def __init__(self, session_factory: Callable = None):
        self._session_factory = session_factory or get_session

    @contextmanager
    def _session(self, operation: str):
        try:
            with self._session_factory() as session:
                yield session
        except (SubscriptionAlreadyExists, SubscriptionNotFound, InvalidSubscriptionState):
            raise
        except SQLAlchemyError as e:
            logger.error(f"DB 작업 실패 [{operation}]: {e}")
            raise DatabaseError(f"Database query failed: {e}") from e

    @staticmethod
    def _get_or_raise(session: Session, subscription_id: str) -> Subscription:
        subscription = session.get(Subscription, subscription_id)
        if subscription is None:
            raise SubscriptionNotFound()
        return subscription

    def create(
        self,
        email: str,
        city: str,
        frequency: SubscriptionFrequency,
        status: SubscriptionStatus,
        token: str,
        token_expiry: datetime,
    ) -> SubscriptionRecord:
        logger.info(f"구독 생성: email={email}, city={city}")

        try:
            with self._session("create") as session:
                existing = session.query(Subscription).filter(
                    Subscription.email == email,
                    Subscription.city == city,
                ).all()

                for row in existing:
                    if row.status != SubscriptionStatus.UNSUBSCRIBED:
                        raise SubscriptionAlreadyExists()
                    # 해지된 이력은 재구독 시 정리
                    session.delete(row)

                session.flush()

                subscription = Subscription(
                    email=email,
                    city=city,
                    frequency=frequency,
                    status=status,
                    token=token,
                    token_expiry=token_expiry,
                )
                session.add(subscription)
                session.flush()

                return SubscriptionRecord.from_model(subscription)

        except DatabaseError as e:
            # 동시 요청으로 인한 유니크 제약 위반
            if isinstance(e.__cause__, IntegrityError):
                raise SubscriptionAlreadyExists() from e.__cause__
            raise

    def find_by_id(self, subscription_id: str) -> Optional[SubscriptionRecord]:
        with self._session("find_by_id") as session:
            subscription = session.get(Subscription, subscription_id)
            return SubscriptionRecord.from_model(subscription) if subscription else None

    def find_by_email_and_city(self, email: str, city: str) -> Optional[SubscriptionRecord]:
        with self._session("find_by_email_and_city") as session:
            subscription = session.query(Subscription).filter(
                Subscription.email == email,
                Subscription.city == city,
                Subscription.status != SubscriptionStatus.UNSUBSCRIBED,
            ).first()

            if subscription is None:
                # 해지된 이력만 있는 경우
                subscription = session.query(Subscription).filter(
                    Subscription.email == email,
                    Subscription.city == city,
                ).order_by(Subscription.updated_at.desc()).first()

            return SubscriptionRecord.from_model(subscription) if subscription else None

    def find_by_token(self, token: str) -> Optional[SubscriptionRecord]:
        with self._session("find_by_token") as session:
            subscription = session.query(Subscription).filter(
                Subscription.token == token
            ).first()
            return SubscriptionRecord.from_model(subscription) if subscription else None

    def update(
        self,
        subscription_id: str,
        expected_status: Optional[SubscriptionStatus] = None,
        **fields,
    ) -> SubscriptionRecord:
        unknown = set(fields) - self.UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"업데이트할 수 없는 필드: {', '.join(sorted(unknown))}")

        if expected_status is not None:
            return self._compare_and_update(subscription_id, expected_status, fields)

        with self._session("update") as session:
            subscription = self._get_or_raise(session, subscription_id)

            for name, value in fields.items():
                setattr(subscription, name, value)
            subscription.updated_at = utcnow()

            session.flush()
            return SubscriptionRecord.from_model(subscription)

    def _compare_and_update(
        self,
        subscription_id: str,
        expected_status: SubscriptionStatus,
        fields: dict,
    ) -> SubscriptionRecord:
        """UPDATE ... WHERE id = :id AND status = :expected"""
        with self._session("update") as session:
            values = {getattr(Subscription, name): value for name, value in fields.items()}
            values[Subscription.updated_at] = utcnow()

            matched = session.query(Subscription).filter(
                Subscription.id == subscription_id,
                Subscription.status == expected_status,
            ).update(values, synchronize_session=False)

            subscription = self._get_or_raise(session, subscription_id)
            if matched == 0:
                raise InvalidSubscriptionState(
                    f"Subscription is {subscription.status.value}, expected {expected_status.value}"
                )

            return SubscriptionRecord.from_model(subscription)

    def update_scheduling(
        self,
        subscription_id: str,
        last_sent_at: Optional[datetime],
        next_scheduled_at: Optional[datetime],
    ) -> SubscriptionRecord:
        with self._session("update_scheduling") as session:
            subscription = self._get_or_raise(session, subscription_id)

            subscription.last_sent_at = last_sent_at
            subscription.next_scheduled_at = next_scheduled_at

            session.flush()
            return SubscriptionRecord.from_model(subscription)

    def find_all_active(self) -> list[SubscriptionRecord]:
        with self._session("find_all_active") as session:
            subscriptions = session.query(Subscription).filter(
                Subscription.status == SubscriptionStatus.CONFIRMED
            ).all()
            return [SubscriptionRecord.from_model(s) for s in subscriptions]

    def find_due_for_sending(self, now: Optional[datetime] = None) -> list[SubscriptionRecord]:
        now = now or utcnow()

        with self._session("find_due_for_sending") as session:
            subscriptions = session.query(Subscription).filter(
                Subscription.status == SubscriptionStatus.CONFIRMED,
                or_(
                    Subscription.next_scheduled_at.is_(None),
                    Subscription.next_scheduled_at <= now,
                ),
            ).all()
            return [SubscriptionRecord.from_model(s) for s in subscriptions]

    def delete(self, subscription_id: str) -> bool:
        with self._session("delete") as session:
            subscription = self._get_or_raise(session, subscription_id)
            session.delete(subscription)
            logger.info(f"구독 삭제: {subscription_id}")
            return True
