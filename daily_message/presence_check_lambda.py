"""
Lambda function to check that today's daily message exists
Triggered by EventBridge Scheduler on a daily schedule (timezone-aware)

環境変数:
- DDB_TABLE_NAME: DynamoDB テーブル名
- ALERT_QUEUE_URL: アラート送信先 SQS キュー URL
- TIMEZONE: 「今日」を決めるタイムゾーン（デフォルト: Asia/Tokyo）
- REQUEST_TIMEOUT_SECONDS: DynamoDB / SQS 呼び出しのタイムアウト
"""
import json
import logging
from functools import lru_cache
from typing import Any, Dict

from .alert_channel import create_alert_channel
from .checker import PresenceChecker
from .config import configure_logging, get_settings
from .database import create_database


logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_checker() -> PresenceChecker:
    """
    PresenceChecker を生成してキャッシュ（コールドスタート時に1回だけ）
    """
    settings = get_settings()
    configure_logging(settings.log_level)
    return PresenceChecker(
        store=create_database(settings),
        channel=create_alert_channel(settings),
        timezone=settings.timezone,
    )


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda ハンドラーメイン関数

    event に "date" があればその日付をチェック（手動実行・再実行用）。
    失敗時は例外をそのまま送出し、スケジューラのリトライに任せる。
    """
    checker = get_checker()
    reference_date = (event or {}).get("date")
    logger.info("=== Presence check triggered (date=%s) ===", reference_date or "today")

    try:
        result = checker.check(reference_date)
    except Exception:
        logger.exception("Presence check failed")
        raise

    logger.info("Presence check result: %s", json.dumps(result.to_dict()))
    return {
        "statusCode": 200,
        "body": json.dumps(result.to_dict()),
    }
