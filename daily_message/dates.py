"""
日付ユーティリティ

「今日」は常に設定されたタイムゾーン（既定: Asia/Tokyo）の暦日で決める
"""
import re
from datetime import datetime, timedelta
from typing import Callable, List, Optional

import pytz


DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """タイムゾーン付きの現在時刻（UTC）"""
    return datetime.now(pytz.utc)


def is_valid_date(value) -> bool:
    """
    厳密な YYYY-MM-DD 形式かつ実在する日付か判定

    Args:
        value: 判定対象

    Returns:
        有効な日付なら True（"2025-02-30" や "2025-1-5" は False）
    """
    if not isinstance(value, str) or not DATE_PATTERN.fullmatch(value):
        return False
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return False
    return True


def today(timezone: str, now: Optional[datetime] = None) -> str:
    """
    指定タイムゾーンでの今日の日付

    Args:
        timezone: IANA タイムゾーン名（例: "Asia/Tokyo"）
        now: 基準時刻。naive な datetime は UTC とみなす

    Returns:
        YYYY-MM-DD 形式の日付
    """
    tz = pytz.timezone(timezone)
    if now is None:
        now = utc_now()
    elif now.tzinfo is None:
        now = pytz.utc.localize(now)
    return now.astimezone(tz).strftime("%Y-%m-%d")


def consecutive_dates(start_date: str, count: int) -> List[str]:
    """start_date から count 日分の連続した日付"""
    start = datetime.strptime(start_date, "%Y-%m-%d").date()
    return [(start + timedelta(days=offset)).isoformat() for offset in range(count)]
