"""
구독 신청 스크립트 (운영자용)

사용법:
    python scripts/subscribe.py --email user@example.com --city Kyiv --frequency daily
    python scripts/subscribe.py --email user@example.com --city Kyiv --frequency hourly --confirm
"""

import argparse
import sys
from pathlib import Path

# 프로젝트 루트를 Python path에 추가
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

load_dotenv()

import logging
logging.basicConfig(level=logging.INFO, format="%(message)s")

from weatherpulse.config import settings
from weatherpulse.database import close_db, init_db
from weatherpulse.errors import WeatherPulseError
from weatherpulse.web.app import build_services


def main():
    parser = argparse.ArgumentParser(description="WeatherPulse 구독 신청")
    parser.add_argument("--email", required=True, help="이메일 주소")
    parser.add_argument("--city", required=True, help="도시 이름")
    parser.add_argument("--frequency", default="daily", help="발송 주기 (hourly / daily)")
    parser.add_argument("--confirm", action="store_true", help="확인 메일 없이 바로 구독 확인")

    args = parser.parse_args()

    print("\n" + "=" * 50)
    print("WeatherPulse 구독 신청")
    print("=" * 50)

    init_db(settings.database_url)
    services = build_services()

    try:
        subscription = services.manager.create_subscription(args.email, args.city, args.frequency)
        print(f"\n구독 신청 완료!")
        print(f"  - 구독 ID: {subscription.id}")
        print(f"  - 이메일: {subscription.email}")
        print(f"  - 도시: {subscription.city}")
        print(f"  - 주기: {subscription.frequency.value}")

        if args.confirm:
            token = services.repository.find_by_id(subscription.id).token
            subscription = services.manager.confirm_subscription(token)
            print(f"  ✓ 구독 확인 완료 (상태: {subscription.status.value})")
        else:
            print("\n확인 메일의 링크를 눌러야 발송이 시작됩니다.")

    except WeatherPulseError as e:
        print(f"\n오류: {e.message}")
        sys.exit(1)

    finally:
        services.scheduler.shutdown()
        close_db()

    print("\n" + "=" * 50)


if __name__ == "__main__":
    main()
