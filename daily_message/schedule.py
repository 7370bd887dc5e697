"""
毎日のチェックのスケジュール定義

EventBridge Scheduler は cron 式とは別にタイムゾーンを指定できるため、
cron 式はタイムゾーンのローカル時刻でそのまま書く（UTC への変換はしない）
"""
from datetime import datetime, timedelta
from typing import Dict, Optional

import pytz

from .config import parse_check_time
from .dates import utc_now


def daily_schedule(check_time: str, timezone: str) -> Dict[str, str]:
    """
    EventBridge Scheduler 用のスケジュール定義

    Args:
        check_time: 実行時刻 "HH:MM"（timezone のローカル時刻）
        timezone: IANA タイムゾーン名

    Returns:
        create_schedule / get_schedule と同じキーの dict
    """
    hour, minute = parse_check_time(check_time)
    pytz.timezone(timezone)  # 未知のタイムゾーンは UnknownTimeZoneError
    return {
        "ScheduleExpression": f"cron({minute} {hour} * * ? *)",
        "ScheduleExpressionTimezone": timezone,
    }


def next_run(check_time: str, timezone: str, now: Optional[datetime] = None) -> datetime:
    """
    次回の実行時刻（timezone 付き）

    now と同時刻の場合は now を返す
    """
    tz = pytz.timezone(timezone)
    hour, minute = parse_check_time(check_time)
    local_now = (now or utc_now()).astimezone(tz)

    candidate_day = local_now.date()
    while True:
        naive = datetime(candidate_day.year, candidate_day.month, candidate_day.day, hour, minute)
        candidate = tz.normalize(tz.localize(naive))
        if candidate >= local_now:
            return candidate
        candidate_day += timedelta(days=1)
