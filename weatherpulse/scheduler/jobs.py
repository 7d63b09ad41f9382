"""
구독별 정기 발송 스케줄러

확인(CONFIRMED)된 구독마다 APScheduler 작업을 하나씩 등록하고,
작업이 실행되면 날씨를 조회해 메일을 보낸 뒤 발송 시각을 기록한다.

작업 레지스트리는 저장소의 next_scheduled_at 으로부터 언제든 재구성할 수 있는
캐시이며, 같은 구독에 대한 등록/취소/실행은 구독 id 별 락으로 직렬화된다.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Callable

from apscheduler.job import Job
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from ..collector import WeatherLookup
from ..config import settings
from ..database import SubscriptionRecord, SubscriptionRepository, SubscriptionStatus, utcnow
from ..errors import WeatherLookupError
from ..notifier import Notifier
from ..subscription.timing import as_frequency, cron_rule_for, is_due, next_scheduled_time

logger = logging.getLogger(__name__)


class SubscriptionJobScheduler:
    """구독별 정기 발송 스케줄러"""

    JOB_ID_PREFIX = "subscription:"

    def __init__(
        self,
        repository: SubscriptionRepository,
        weather: WeatherLookup,
        notifier: Notifier,
        scheduler: BackgroundScheduler = None,
        daily_hour: int = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = repository
        self.weather = weather
        self.notifier = notifier
        self.daily_hour = settings.daily_send_hour if daily_hour is None else daily_hour
        self._clock = clock

        self._scheduler = scheduler or BackgroundScheduler(timezone="UTC")

        # 구독 id → APScheduler Job
        self._jobs: dict[str, Job] = {}
        self._registry_lock = threading.Lock()
        self._id_locks: dict[str, _IdLock] = {}
        self._stopped = False

    # ------------------------------------------------------------------
    # 수명 주기
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def start(self) -> None:
        self._stopped = False
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("구독 스케줄러 시작")

    def shutdown(self) -> None:
        """
        모든 작업 취소 후 스케줄러 종료

        이미 실행 중인 발송은 끝날 때까지 기다린 뒤 반환한다.
        """
        self._stopped = True
        job_ids = self.get_job_ids()
        for subscription_id in job_ids:
            self.cancel_job(subscription_id)

        if self._scheduler.running:
            self._scheduler.shutdown(wait=True)
        logger.info(f"구독 스케줄러 종료 (작업 {len(job_ids)}건 취소)")

    def initialize(self) -> int:
        """
        확인된 모든 구독의 작업 등록 (프로세스 시작 시)

        개별 구독의 실패는 로깅하고 건너뛴다.

        Returns:
            등록된 작업 수
        """
        logger.info("확인된 구독의 발송 작업 초기화...")

        try:
            subscriptions = self.repository.find_all_active()
        except Exception as e:
            logger.exception(f"활성 구독 조회 실패: {e}")
            return 0

        registered = 0
        for subscription in subscriptions:
            try:
                if self.schedule_job(subscription.id):
                    registered += 1
            except Exception as e:
                logger.exception(f"작업 등록 실패 [subscription={subscription.id}]: {e}")

        logger.info(f"발송 작업 {registered}/{len(subscriptions)}건 초기화 완료")
        return registered

    # ------------------------------------------------------------------
    # 작업 등록/취소
    # ------------------------------------------------------------------

    @contextmanager
    def _lock_for(self, subscription_id: str):
        """구독 id 별 락. 기다리거나 잡고 있는 스레드가 없으면 항목을 지운다."""
        with self._registry_lock:
            entry = self._id_locks.get(subscription_id)
            if entry is None:
                entry = self._id_locks[subscription_id] = _IdLock()
            entry.users += 1

        try:
            with entry.lock:
                yield
        finally:
            with self._registry_lock:
                entry.users -= 1
                if entry.users == 0:
                    del self._id_locks[subscription_id]

    def _now(self) -> datetime:
        # 발송 시각은 분 단위로 기록하고 비교한다
        return self._clock().replace(second=0, microsecond=0)

    def schedule_job(self, subscription_id: str) -> bool:
        """
        구독의 발송 작업 등록 (이미 있으면 교체)

        CONFIRMED 가 아니면 아무것도 하지 않는다.
        next_scheduled_at 을 먼저 저장한 뒤 타이머를 시작하므로,
        그 사이에 프로세스가 죽어도 initialize() 로 복구된다.

        Returns:
            등록 여부
        """
        with self._lock_for(subscription_id):
            subscription = self.repository.find_by_id(subscription_id)

            if subscription is None or subscription.status != SubscriptionStatus.CONFIRMED:
                logger.info(f"활성 구독이 아니므로 작업을 등록하지 않음 [subscription={subscription_id}]")
                return False

            self.cancel_job(subscription_id)

            frequency = self._frequency_of(subscription)
            next_at = next_scheduled_time(frequency, subscription.last_sent_at, now=self._now())

            self.repository.update_scheduling(
                subscription_id,
                last_sent_at=subscription.last_sent_at,
                next_scheduled_at=next_at,
            )

            job = self._scheduler.add_job(
                self._fire,
                trigger=CronTrigger(timezone="UTC", **cron_rule_for(frequency, self.daily_hour)),
                args=[subscription_id],
                id=f"{self.JOB_ID_PREFIX}{subscription_id}",
                name=f"Weather update {subscription.city} -> {subscription.email}",
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )

            with self._registry_lock:
                self._jobs[subscription_id] = job

            logger.info(
                f"작업 등록 [subscription={subscription_id}] "
                f"주기={_frequency_value(subscription)}, 다음 발송={next_at.isoformat()}"
            )
            return True

    def cancel_job(self, subscription_id: str) -> bool:
        """작업 취소 (없으면 무시)"""
        with self._lock_for(subscription_id):
            with self._registry_lock:
                job = self._jobs.pop(subscription_id, None)

            if job is None:
                return False

            self._remove_scheduler_job(job.id)
            logger.info(f"작업 취소 [subscription={subscription_id}]")
            return True

    def _remove_scheduler_job(self, job_id: str) -> None:
        # 스케줄러 종료 후에는 작업 저장소가 이미 비어 있을 수 있다
        if self._scheduler.get_job(job_id) is not None:
            self._scheduler.remove_job(job_id)

    def get_job_ids(self) -> list[str]:
        """등록된 구독 id 목록"""
        with self._registry_lock:
            return list(self._jobs.keys())

    def has_job(self, subscription_id: str) -> bool:
        with self._registry_lock:
            return subscription_id in self._jobs

    # ------------------------------------------------------------------
    # 실행
    # ------------------------------------------------------------------

    def force_run_job(self, subscription_id: str) -> bool:
        """타이머를 거치지 않고 즉시 실행 (관리/테스트용)"""
        return self._fire(subscription_id)

    def send_due_now(self) -> int:
        """발송 시각이 지난 모든 구독을 즉시 실행"""
        due = self.repository.find_due_for_sending(self._now())
        sent = 0
        for subscription in due:
            if self._fire(subscription.id):
                sent += 1
        logger.info(f"즉시 발송 완료: {sent}/{len(due)}건")
        return sent

    def _fire(self, subscription_id: str) -> bool:
        """
        발송 작업 1회 실행. 예외를 밖으로 던지지 않는다.

        Returns:
            날씨 조회에 성공해 발송 기록을 갱신했는지 여부
        """
        try:
            with self._lock_for(subscription_id):
                if self._stopped:
                    logger.info(f"스케줄러 종료 중, 발송 건너뜀 [subscription={subscription_id}]")
                    return False
                return self._execute(subscription_id)
        except Exception as e:
            logger.exception(f"발송 작업 실패 [subscription={subscription_id}]: {e}")
            return False

    def _execute(self, subscription_id: str) -> bool:
        subscription = self.repository.find_by_id(subscription_id)

        if subscription is None or subscription.status != SubscriptionStatus.CONFIRMED:
            logger.info(f"활성 구독이 아니므로 작업 취소 [subscription={subscription_id}]")
            self.cancel_job(subscription_id)
            return False

        now = self._now()
        if not is_due(subscription.next_scheduled_at, now=now):
            logger.debug(
                f"발송 시각 전 [subscription={subscription_id}] "
                f"다음 발송={subscription.next_scheduled_at.isoformat()}"
            )
            return False

        try:
            weather = self.weather.get_current_weather(subscription.city)
        except WeatherLookupError as e:
            # last_sent_at 을 갱신하지 않으므로 다음 실행에서 재시도
            logger.error(f"날씨 조회 실패 [subscription={subscription_id}, city={subscription.city}]: {e}")
            return False

        frequency = self._frequency_of(subscription)
        try:
            sent = self.notifier.send_weather_update(
                subscription.email,
                subscription.token,
                subscription.city,
                _frequency_value(subscription),
                weather.description,
                weather.temperature_celsius,
            )
        except Exception as e:
            logger.exception(f"날씨 메일 처리 중 오류 [subscription={subscription_id}]: {e}")
            sent = False

        if not sent:
            logger.warning(f"날씨 메일 발송 실패, 다음 주기로 넘어감 [subscription={subscription_id}]")

        next_at = next_scheduled_time(frequency, now, now=now)
        self.repository.update_scheduling(subscription_id, last_sent_at=now, next_scheduled_at=next_at)

        logger.info(f"날씨 업데이트 처리 [subscription={subscription_id}] 다음 발송={next_at.isoformat()}")
        return True

    @staticmethod
    def _frequency_of(subscription: SubscriptionRecord):
        frequency = as_frequency(subscription.frequency)
        if frequency is None:
            logger.warning(
                f"알 수 없는 발송 주기 '{subscription.frequency}', 매일 발송으로 처리 "
                f"[subscription={subscription.id}]"
            )
        return frequency


def _frequency_value(subscription: SubscriptionRecord) -> str:
    return getattr(subscription.frequency, "value", subscription.frequency)


class _IdLock:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.RLock()
        self.users = 0
