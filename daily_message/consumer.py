"""
アラートキューのコンシューマ

1メッセージずつ処理する。パースできないメッセージは NACK（キューの再配信・DLQ に任せる）、
パースできたメッセージは通知の成否にかかわらず ACK する。
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from .exceptions import ParseError
from .models import AlertMessage


logger = logging.getLogger(__name__)


class Disposition(str, Enum):
    ACK = "ACK"
    NACK = "NACK"


class Notifier(Protocol):
    """通知先（ログ、将来的にメール・チャット）"""

    def notify(self, alert: AlertMessage) -> None:
        ...


class LogNotifier:
    """ログに出力するだけの通知先"""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logging.getLogger("daily_message.alerts")

    def notify(self, alert: AlertMessage) -> None:
        self.log.warning(
            "ALERT %s date=%s detectedAt=%s",
            alert.type.value,
            alert.date,
            alert.detected_at,
        )


@dataclass
class DrainResult:
    acked: int = 0
    nacked: int = 0


class AlertConsumer:
    """アラートメッセージを通知先に渡す"""

    def __init__(self, notifier: Notifier):
        self.notifier = notifier

    def process(self, body) -> Disposition:
        """
        1件のメッセージ本文を処理

        同じアラートが重複して届いた場合は通知も重複する（状態は持たない）

        Returns:
            Disposition.ACK または Disposition.NACK
        """
        try:
            alert = AlertMessage.from_json(body)
        except ParseError as e:
            logger.error("Unparseable alert message, returning to queue: %s", e)
            return Disposition.NACK

        try:
            self.notifier.notify(alert)
        except Exception:
            # 通知はベストエフォート。失敗で再配信させない
            logger.exception("Notifier failed for %s alert on %s", alert.type.value, alert.date)

        return Disposition.ACK

    def drain(self, channel, max_messages: Optional[int] = None, wait_seconds: int = 0) -> DrainResult:
        """
        キューを1件ずつ読み出して処理（ローカル実行用）

        NACK したメッセージは同じ呼び出しの中では再処理しない

        Args:
            channel: アラートキュー（receive / ack / nack を持つ）
            max_messages: 処理する最大件数（None なら空になるまで）
            wait_seconds: 受信時のロングポーリング秒数
        """
        result = DrainResult()
        nacked = set()
        while max_messages is None or result.acked + result.nacked < max_messages:
            messages = channel.receive(max_messages=1, wait_seconds=wait_seconds)
            if not messages:
                break
            message = messages[0]
            if message.message_id in nacked:
                channel.nack(message)
                break

            if self.process(message.body) == Disposition.ACK:
                channel.ack(message)
                result.acked += 1
            else:
                channel.nack(message)
                nacked.add(message.message_id)
                result.nacked += 1

        logger.info("Drained alert channel: acked=%d nacked=%d", result.acked, result.nacked)
        return result
