"""
발송 스케줄 계산 테스트
"""

from datetime import datetime, timedelta

import pytest

from weatherpulse.database import SubscriptionFrequency
from weatherpulse.subscription.timing import cron_rule_for, is_due, next_scheduled_time

NOW = datetime(2025, 5, 20, 7, 30, 0)


class TestCronRule:
    """주기별 cron 규칙"""

    def test_hourly_runs_at_top_of_hour(self):
        assert cron_rule_for(SubscriptionFrequency.HOURLY) == {"minute": 0}

    def test_daily_runs_at_eight(self):
        assert cron_rule_for(SubscriptionFrequency.DAILY) == {"hour": 8, "minute": 0}

    def test_daily_hour_is_configurable(self):
        assert cron_rule_for("daily", daily_hour=6) == {"hour": 6, "minute": 0}

    @pytest.mark.parametrize("frequency", ["weekly", None, ""])
    def test_unknown_frequency_falls_back_to_daily(self, frequency):
        assert cron_rule_for(frequency) == {"hour": 8, "minute": 0}

    def test_string_values_accepted(self):
        assert cron_rule_for("HOURLY") == {"minute": 0}


class TestNextScheduledTime:
    """다음 발송 시각"""

    @pytest.mark.parametrize("frequency", [SubscriptionFrequency.HOURLY, SubscriptionFrequency.DAILY, "weekly"])
    def test_without_last_sent_is_now(self, frequency):
        assert next_scheduled_time(frequency, None, now=NOW) == NOW

    def test_hourly_adds_one_hour(self):
        assert next_scheduled_time(SubscriptionFrequency.HOURLY, NOW, now=NOW) == NOW + timedelta(hours=1)

    def test_daily_adds_one_day(self):
        assert next_scheduled_time(SubscriptionFrequency.DAILY, NOW) == NOW + timedelta(hours=24)

    def test_unknown_frequency_adds_one_day(self):
        assert next_scheduled_time("weekly", NOW) == NOW + timedelta(days=1)

    def test_based_on_last_sent_not_now(self):
        last_sent = NOW - timedelta(hours=5)
        assert next_scheduled_time("hourly", last_sent, now=NOW) == last_sent + timedelta(hours=1)


class TestIsDue:
    """발송 시각 도래 여부"""

    def test_none_is_due(self):
        assert is_due(None, now=NOW) is True

    def test_past_is_due(self):
        assert is_due(NOW - timedelta(seconds=1), now=NOW) is True

    def test_exactly_now_is_due(self):
        assert is_due(NOW, now=NOW) is True

    def test_future_is_not_due(self):
        assert is_due(NOW + timedelta(seconds=1), now=NOW) is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
