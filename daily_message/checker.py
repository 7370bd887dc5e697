"""
今日のメッセージ存在チェック

ストアは読み取りのみ。レコードが無い、または ACTIVE でない場合にアラートを1件送る。
ストア・キューのエラーはここではリトライせず、呼び出し元（スケジューラ）に返す。
"""
import logging
from dataclasses import dataclass
from typing import Optional

from .dates import Clock, is_valid_date, today as local_today, utc_now
from .exceptions import ValidationError
from .models import AlertMessage, AlertType


logger = logging.getLogger(__name__)

STATUS_OK = "OK"
STATUS_ALERTED = "ALERTED"


@dataclass
class CheckResult:
    status: str
    date: str
    message_id: Optional[str] = None

    def to_dict(self) -> dict:
        result = {"status": self.status, "date": self.date}
        if self.message_id:
            result["messageId"] = self.message_id
        return result


class PresenceChecker:
    """指定日のメッセージが存在するか確認し、無ければアラートを送る"""

    def __init__(self, store, channel, timezone: str, clock: Clock = utc_now):
        """
        Args:
            store: レコードストア（get_record を持つ）
            channel: アラートキュー（send を持つ）
            timezone: 「今日」を決めるタイムゾーン名
            clock: 現在時刻を返す関数（テストで差し替え）
        """
        self.store = store
        self.channel = channel
        self.timezone = timezone
        self.clock = clock

    def today(self) -> str:
        return local_today(self.timezone, self.clock())

    def check(self, reference_date: Optional[str] = None) -> CheckResult:
        """
        メッセージの存在をチェック

        Args:
            reference_date: 対象日 (YYYY-MM-DD)。省略時は設定タイムゾーンでの今日

        Returns:
            CheckResult（OK またはアラート送信済み）
        """
        date = reference_date or self.today()
        if not is_valid_date(date):
            raise ValidationError("INVALID_DATE_FORMAT", f"INVALID_DATE_FORMAT: {date!r}")

        record = self.store.get_record(date)
        if record is not None and record.is_present:
            logger.info("Daily message present for %s", date)
            return CheckResult(status=STATUS_OK, date=date)

        reason = "missing" if record is None else f"status={record.status.value}"
        alert = AlertMessage(
            date=date,
            type=AlertType.MISSING_DAILY_MESSAGE,
            detected_at=self.clock().isoformat(),
        )
        message_id = self.channel.send(alert.to_json())
        logger.warning("Daily message %s for %s, alert sent (message_id=%s)", reason, date, message_id)
        return CheckResult(status=STATUS_ALERTED, date=date, message_id=message_id)
