"""
アラートキュー（SQS）操作

SQS は at-least-once 配信のため、同じメッセージが複数回届くことがある
"""
import logging
import uuid
from collections import deque
from dataclasses import dataclass
from typing import Dict, List, Optional

import boto3

from .config import Settings
from .exceptions import call_aws


logger = logging.getLogger(__name__)

# SQS ReceiveMessage の WaitTimeSeconds 上限
MAX_WAIT_SECONDS = 20


@dataclass
class ReceivedMessage:
    """受信したメッセージ"""
    message_id: str
    body: str
    receipt_handle: str
    receive_count: int = 1


class InMemoryAlertChannel:
    """開発モード・テスト用のメモリ内キュー"""

    def __init__(self):
        self.sent: List[str] = []  # 送信されたすべての本文（送信順）
        self._queue = deque()
        self._in_flight: Dict[str, ReceivedMessage] = {}

    def send(self, body: str) -> str:
        message_id = str(uuid.uuid4())
        self.sent.append(body)
        self._queue.append(ReceivedMessage(message_id, body, receipt_handle=message_id, receive_count=0))
        return message_id

    def receive(self, max_messages: int = 1, wait_seconds: int = 0) -> List[ReceivedMessage]:
        messages = []
        while self._queue and len(messages) < max_messages:
            message = self._queue.popleft()
            message.receive_count += 1
            self._in_flight[message.receipt_handle] = message
            messages.append(message)
        return messages

    def ack(self, message: ReceivedMessage) -> None:
        self._in_flight.pop(message.receipt_handle, None)

    def nack(self, message: ReceivedMessage) -> None:
        in_flight = self._in_flight.pop(message.receipt_handle, None)
        if in_flight is not None:
            self._queue.append(in_flight)

    @property
    def pending(self) -> int:
        """未配信 + 処理中のメッセージ数"""
        return len(self._queue) + len(self._in_flight)


class SqsAlertChannel:
    """SQS キュー操作クラス"""

    def __init__(self, queue_url: str, sqs_client=None):
        """
        Args:
            queue_url: SQS キュー URL
            sqs_client: boto3 の SQS クライアント（省略時は既定の設定で生成）
        """
        if not queue_url:
            raise ValueError("ALERT_QUEUE_URL is not set")
        self.queue_url = queue_url
        self.client = sqs_client or boto3.client("sqs")

    def send(self, body: str) -> str:
        """
        メッセージを送信

        Returns:
            SQS の MessageId
        """
        response = call_aws(
            "sqs.send_message",
            self.client.send_message,
            QueueUrl=self.queue_url,
            MessageBody=body,
        )
        return response["MessageId"]

    def receive(self, max_messages: int = 1, wait_seconds: int = 0) -> List[ReceivedMessage]:
        """
        メッセージを受信（ロングポーリング）

        Args:
            max_messages: 最大受信数（1〜10）
            wait_seconds: ロングポーリングの待機秒数（0〜20）
        """
        wait_seconds = max(0, min(wait_seconds, MAX_WAIT_SECONDS))
        response = call_aws(
            "sqs.receive_message",
            self.client.receive_message,
            QueueUrl=self.queue_url,
            MaxNumberOfMessages=max_messages,
            WaitTimeSeconds=wait_seconds,
            AttributeNames=["ApproximateReceiveCount"],
        )
        return [
            ReceivedMessage(
                message_id=message["MessageId"],
                body=message.get("Body", ""),
                receipt_handle=message["ReceiptHandle"],
                receive_count=int(message.get("Attributes", {}).get("ApproximateReceiveCount", 1)),
            )
            for message in response.get("Messages", [])
        ]

    def ack(self, message: ReceivedMessage) -> None:
        """処理完了（メッセージを削除）"""
        call_aws(
            "sqs.delete_message",
            self.client.delete_message,
            QueueUrl=self.queue_url,
            ReceiptHandle=message.receipt_handle,
        )

    def nack(self, message: ReceivedMessage) -> None:
        """処理失敗（可視性タイムアウトを 0 にして即時再配信させる）"""
        call_aws(
            "sqs.change_message_visibility",
            self.client.change_message_visibility,
            QueueUrl=self.queue_url,
            ReceiptHandle=message.receipt_handle,
            VisibilityTimeout=0,
        )


def create_alert_channel(settings: Settings, sqs_client: Optional[object] = None):
    """設定に応じたアラートキューを生成"""
    if settings.alert_backend == "memory":
        logger.info("Using in-memory alert channel")
        return InMemoryAlertChannel()

    # ロングポーリング中に読み取りタイムアウトしないよう、最大待機秒数ぶん延ばす
    config = settings.boto_config(read_timeout=settings.request_timeout + MAX_WAIT_SECONDS)
    client = sqs_client or boto3.client("sqs", config=config)
    return SqsAlertChannel(settings.alert_queue_url, client)
