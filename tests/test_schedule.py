"""スケジュール定義のテスト"""
from datetime import datetime

import pytest
import pytz

from daily_message.schedule import daily_schedule, next_run


def test_daily_schedule_uses_local_time_and_timezone():
    assert daily_schedule("09:00", "Asia/Tokyo") == {
        "ScheduleExpression": "cron(0 9 * * ? *)",
        "ScheduleExpressionTimezone": "Asia/Tokyo",
    }


def test_daily_schedule_rejects_unknown_timezone():
    with pytest.raises(pytz.UnknownTimeZoneError):
        daily_schedule("09:00", "Nowhere/City")


def test_next_run_later_today():
    now = datetime(2025, 6, 1, 0, 30, tzinfo=pytz.utc)  # 09:30 JST

    run = next_run("10:00", "Asia/Tokyo", now)

    assert run.isoformat() == "2025-06-01T10:00:00+09:00"


def test_next_run_tomorrow():
    now = datetime(2025, 6, 1, 0, 30, tzinfo=pytz.utc)  # 09:30 JST

    run = next_run("09:00", "Asia/Tokyo", now)

    assert run.isoformat() == "2025-06-02T09:00:00+09:00"


def test_next_run_follows_dst_change():
    # 2025-03-09 に米国東部は夏時間へ移行する
    now = datetime(2025, 3, 8, 15, 0, tzinfo=pytz.utc)  # 10:00 EST

    run = next_run("09:00", "America/New_York", now)

    assert run.isoformat() == "2025-03-09T09:00:00-04:00"
    assert run.astimezone(pytz.utc).hour == 13
