"""
WeatherPulse 메인 실행 파일

도시별 날씨 이메일 구독 서비스
"""

import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

# 프로젝트 루트를 Python path에 추가
sys.path.insert(0, str(Path(__file__).parent.parent))

from weatherpulse.config import settings


def setup_logging() -> None:
    """로깅 설정"""
    log_dir = settings.BASE_DIR / "logs"
    log_dir.mkdir(exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(log_dir / "weatherpulse.log", encoding="utf-8"),
        ],
    )


logger = logging.getLogger(__name__)


def run_server() -> None:
    """API 서버 + 스케줄러 실행"""
    import uvicorn

    logger.info(f"WeatherPulse 서버 시작: {settings.host}:{settings.port}")
    uvicorn.run(
        "weatherpulse.web.app:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


def run_once(force_run_id: str = None, list_jobs: bool = False) -> int:
    """스케줄러를 띄우지 않고 1회성 작업 실행"""
    from weatherpulse.database import close_db, init_db
    from weatherpulse.web.app import build_services

    init_db(settings.database_url)
    services = build_services()

    try:
        if list_jobs:
            for subscription in services.repository.find_all_active():
                print(f"{subscription.id}\t{subscription.frequency.value}\t{subscription.email}\t{subscription.city}")
            return 0

        if force_run_id:
            logger.info(f"단일 구독 즉시 실행: {force_run_id}")
            if services.repository.find_by_id(force_run_id) is None:
                logger.error(f"구독을 찾을 수 없습니다: {force_run_id}")
                return 1
            return 0 if services.scheduler.force_run_job(force_run_id) else 1

        logger.info("발송 시각이 지난 구독 일괄 실행")
        services.scheduler.send_due_now()
        return 0

    finally:
        close_db()


def main():
    """메인 함수"""
    import argparse

    parser = argparse.ArgumentParser(description="WeatherPulse - 도시별 날씨 이메일 구독 서비스")
    parser.add_argument(
        "--send-due",
        action="store_true",
        help="발송 시각이 지난 구독에 한 번 발송하고 종료"
    )
    parser.add_argument(
        "--force-run",
        metavar="SUBSCRIPTION_ID",
        help="지정한 구독의 발송 작업을 즉시 실행하고 종료"
    )
    parser.add_argument(
        "--list-jobs",
        action="store_true",
        help="시작 시 등록될 확인된 구독 목록 출력"
    )

    args = parser.parse_args()

    # 환경 변수 로드
    load_dotenv()

    setup_logging()

    if args.send_due or args.force_run or args.list_jobs:
        sys.exit(run_once(force_run_id=args.force_run, list_jobs=args.list_jobs))

    run_server()


if __name__ == "__main__":
    main()
