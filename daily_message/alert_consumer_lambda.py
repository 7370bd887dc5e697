"""
Lambda function to consume missing-message alerts from SQS
イベントソースマッピングは BatchSize=1, ReportBatchItemFailures を前提とする
"""
import logging
from functools import lru_cache
from typing import Any, Dict

from .config import configure_logging, get_settings
from .consumer import AlertConsumer, Disposition, LogNotifier


logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_consumer() -> AlertConsumer:
    settings = get_settings()
    configure_logging(settings.log_level)
    return AlertConsumer(LogNotifier())


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    SQS イベントを処理

    Returns:
        NACK したメッセージを batchItemFailures で返す（SQS が再配信する）
    """
    consumer = get_consumer()
    failures = []

    for record in event.get("Records", []):
        message_id = record.get("messageId", "")
        receive_count = record.get("attributes", {}).get("ApproximateReceiveCount", "1")
        logger.info("Processing alert message %s (receive_count=%s)", message_id, receive_count)

        if consumer.process(record.get("body")) == Disposition.NACK:
            failures.append({"itemIdentifier": message_id})

    return {"batchItemFailures": failures}
