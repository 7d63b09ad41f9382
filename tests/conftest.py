"""
공용 테스트 픽스처 - 저장소/날씨/알림 가짜 구현
"""

import sys
import threading
import uuid
from dataclasses import replace
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

import pytest
from apscheduler.schedulers.background import BackgroundScheduler

sys.path.insert(0, str(Path(__file__).parent.parent))

from weatherpulse.collector import WeatherData, WeatherLookup
from weatherpulse.database import (
    SubscriptionFrequency,
    SubscriptionRecord,
    SubscriptionRepository,
    SubscriptionStatus,
    utcnow,
)
from weatherpulse.errors import (
    InvalidSubscriptionState,
    SubscriptionAlreadyExists,
    SubscriptionNotFound,
    WeatherLookupError,
)
from weatherpulse.notifier import Notifier
from weatherpulse.scheduler import SubscriptionJobScheduler
from weatherpulse.subscription import SubscriptionManager, TokenIssuer


class FakeClock:
    """고정 시계"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class InMemorySubscriptionRepository(SubscriptionRepository):
    """메모리 구독 저장소"""

    def __init__(self, clock=None):
        self._rows: dict[str, SubscriptionRecord] = {}
        self._lock = threading.Lock()
        self._clock = clock or utcnow
        self.writes = 0

    def create(self, email, city, frequency, status, token, token_expiry):
        with self._lock:
            for row in list(self._rows.values()):
                if row.email == email and row.city == city:
                    if row.status != SubscriptionStatus.UNSUBSCRIBED:
                        raise SubscriptionAlreadyExists()
                    del self._rows[row.id]

            now = self._clock()
            record = SubscriptionRecord(
                id=str(uuid.uuid4()),
                email=email,
                city=city,
                frequency=frequency,
                status=status,
                token=token,
                token_expiry=token_expiry,
                created_at=now,
                updated_at=now,
            )
            self._rows[record.id] = record
            self.writes += 1
            return replace(record)

    def find_by_id(self, subscription_id):
        with self._lock:
            row = self._rows.get(subscription_id)
            return replace(row) if row else None

    def find_by_email_and_city(self, email, city):
        with self._lock:
            for row in self._rows.values():
                if row.email == email and row.city == city:
                    return replace(row)
            return None

    def find_by_token(self, token):
        with self._lock:
            for row in self._rows.values():
                if row.token == token:
                    return replace(row)
            return None

    def update(self, subscription_id, expected_status=None, **fields):
        with self._lock:
            row = self._rows.get(subscription_id)
            if row is None:
                raise SubscriptionNotFound()
            if expected_status is not None and row.status != expected_status:
                raise InvalidSubscriptionState()
            updated = replace(row, updated_at=self._clock(), **fields)
            self._rows[subscription_id] = updated
            self.writes += 1
            return replace(updated)

    def update_scheduling(self, subscription_id, last_sent_at, next_scheduled_at):
        return self.update(
            subscription_id,
            last_sent_at=last_sent_at,
            next_scheduled_at=next_scheduled_at,
        )

    def find_all_active(self):
        with self._lock:
            return [replace(r) for r in self._rows.values() if r.status == SubscriptionStatus.CONFIRMED]

    def find_due_for_sending(self, now=None):
        now = now or self._clock()
        with self._lock:
            return [
                replace(r) for r in self._rows.values()
                if r.status == SubscriptionStatus.CONFIRMED
                and (r.next_scheduled_at is None or r.next_scheduled_at <= now)
            ]

    def delete(self, subscription_id):
        with self._lock:
            if self._rows.pop(subscription_id, None) is None:
                raise SubscriptionNotFound()
            return True

    # 테스트 편의용
    def add(self, **fields) -> SubscriptionRecord:
        defaults = dict(
            id=str(uuid.uuid4()),
            email="user@example.com",
            city="Kyiv",
            frequency=SubscriptionFrequency.DAILY,
            status=SubscriptionStatus.CONFIRMED,
            token=uuid.uuid4().hex,
            token_expiry=datetime(9999, 12, 31),
            created_at=self._clock(),
            updated_at=self._clock(),
        )
        defaults.update(fields)
        record = SubscriptionRecord(**defaults)
        with self._lock:
            self._rows[record.id] = record
        return replace(record)


class FakeWeather(WeatherLookup):
    """날씨 조회 가짜 구현"""

    def __init__(self):
        self.calls: list[str] = []
        self.error: Optional[Exception] = None
        self.entered = threading.Event()
        self._gate: Optional[threading.Event] = None

    def block(self) -> None:
        """release() 전까지 조회를 멈춤"""
        self._gate = threading.Event()

    def release(self) -> None:
        if self._gate is not None:
            self._gate.set()

    def get_current_weather(self, city):
        self.calls.append(city)
        self.entered.set()
        if self._gate is not None:
            self._gate.wait(timeout=5)
        if self.error is not None:
            raise self.error
        return WeatherData(
            city=city,
            country="Ukraine",
            temperature_celsius=18.5,
            temperature_fahrenheit=65.3,
            humidity=60,
            description="Partly cloudy",
        )


class RecordingNotifier(Notifier):
    """발송 내역을 기록하는 알림 구현"""

    def __init__(self):
        self.sent: list[tuple] = []
        self.fail = False
        self.raise_error = False

    def _record(self, kind, *args):
        self.sent.append((kind,) + args)
        if self.raise_error:
            raise RuntimeError("smtp down")
        return not self.fail

    def send_confirmation(self, email, token, city, frequency):
        return self._record("confirmation", email, token, city, frequency)

    def send_welcome(self, email, token, city, frequency, weather_description=None, temperature=None):
        return self._record("welcome", email, token, city, frequency, weather_description, temperature)

    def send_weather_update(self, email, token, city, frequency, weather_description, temperature):
        return self._record("weather_update", email, token, city, frequency, weather_description, temperature)

    def send_unsubscribe_confirmation(self, email, city):
        return self._record("unsubscribe", email, city)

    def kinds(self) -> list[str]:
        return [entry[0] for entry in self.sent]


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 5, 20, 7, 30, 0))


@pytest.fixture
def repository(clock):
    return InMemorySubscriptionRepository(clock=clock)


@pytest.fixture
def weather():
    return FakeWeather()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def tokens(clock):
    return TokenIssuer(ttl_seconds=3600, clock=clock)


@pytest.fixture
def scheduler(repository, weather, notifier, clock):
    """APScheduler 를 시작하지 않은 스케줄러 (타이머가 실제로 울리지 않음)"""
    job_scheduler = SubscriptionJobScheduler(
        repository,
        weather,
        notifier,
        scheduler=BackgroundScheduler(timezone="UTC"),
        daily_hour=8,
        clock=clock,
    )
    yield job_scheduler
    job_scheduler.shutdown()


@pytest.fixture
def manager(repository, tokens, notifier, weather, scheduler):
    return SubscriptionManager(
        repository=repository,
        tokens=tokens,
        notifier=notifier,
        weather=weather,
        scheduler=scheduler,
    )
