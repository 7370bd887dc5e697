"""
エラー分類

HTTP レスポンスの error フィールドには code をそのまま返す
"""
import logging
from typing import List, Optional

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)


logger = logging.getLogger(__name__)


# リトライで回復しうる DynamoDB / SQS のエラーコード
TRANSIENT_ERROR_CODES = {
    "ProvisionedThroughputExceededException",
    "ThrottlingException",
    "Throttling",
    "RequestLimitExceeded",
    "InternalServerError",
    "InternalFailure",
    "ServiceUnavailable",
    "RequestThrottled",
}


class DailyMessageError(Exception):
    """基底エラー"""

    def __init__(self, code: str, message: Optional[str] = None):
        super().__init__(message or code)
        self.code = code


class ValidationError(DailyMessageError):
    """入力不正（リトライ不可、クライアント側で修正が必要）"""
    pass


class ConflictError(DailyMessageError):
    """force=false の書き込みで既存レコードが見つかった"""

    def __init__(self, date: str, code: str = "ITEM_ALREADY_EXISTS"):
        super().__init__(code, f"{code}: {date}")
        self.date = date


class PartialWriteError(DailyMessageError):
    """1回リトライしても未処理のアイテムが残った"""

    def __init__(self, dates: List[str]):
        super().__init__("PARTIAL_WRITE", f"unprocessed dates: {', '.join(dates)}")
        self.dates = list(dates)


class NotFoundError(DailyMessageError):
    """レコードが存在しない、または ACTIVE ではない"""

    def __init__(self, date: str):
        super().__init__("MESSAGE_NOT_FOUND", f"MESSAGE_NOT_FOUND: {date}")
        self.date = date


class TransientError(DailyMessageError):
    """タイムアウト・スロットリング（呼び出し側のバックオフでリトライ可）"""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__("TRANSIENT_ERROR", message)
        self.original_error = original_error


class ParseError(DailyMessageError):
    """アラートメッセージ本文が解析できない"""

    def __init__(self, message: str):
        super().__init__("PARSE_ERROR", message)


def classify_client_error(error: Exception, operation: str) -> Exception:
    """
    boto3 の例外を分類する

    Args:
        error: boto3 / botocore から送出された例外
        operation: ログ用の操作名（例: "dynamodb.get_item"）

    Returns:
        一時的なエラーなら TransientError、それ以外は元の例外
    """
    if isinstance(error, (ReadTimeoutError, ConnectTimeoutError)):
        return TransientError(f"{operation} timed out: {error}", error)
    if isinstance(error, EndpointConnectionError):
        return TransientError(f"{operation} endpoint unreachable: {error}", error)
    if isinstance(error, ClientError):
        code = error.response.get("Error", {}).get("Code", "")
        if code in TRANSIENT_ERROR_CODES:
            return TransientError(f"{operation} throttled or unavailable: {code}", error)
    return error


def call_aws(operation: str, func, **kwargs):
    """
    boto3 呼び出しを実行し、一時的なエラーを TransientError に変換

    Args:
        operation: ログ用の操作名（例: "sqs.send_message"）
        func: boto3 のクライアント・テーブルのメソッド
        **kwargs: func に渡す引数

    Raises:
        TransientError: タイムアウト・スロットリング
    """
    try:
        return func(**kwargs)
    except (ClientError, BotoCoreError) as e:
        classified = classify_client_error(e, operation)
        if classified is e:
            raise
        logger.warning("%s failed transiently: %s", operation, e)
        raise classified from e
