"""
データモデル定義 - dataclassesを使用
"""
import json
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .dates import is_valid_date, utc_now
from .exceptions import ParseError


PARTITION_KEY = "MSG"
SORT_KEY_PREFIX = "DATE#"


class RecordStatus(str, Enum):
    ACTIVE = "ACTIVE"
    DISABLED = "DISABLED"


class AlertType(str, Enum):
    MISSING_DAILY_MESSAGE = "MISSING_DAILY_MESSAGE"


def sort_key(date: str) -> str:
    """日付からソートキーを生成（DATE#2025-01-01）"""
    return f"{SORT_KEY_PREFIX}{date}"


@dataclass
class Record:
    """1日分のメッセージ"""
    date: str  # YYYY-MM-DD format
    text: str
    status: RecordStatus = RecordStatus.ACTIVE
    created_at: Optional[str] = None

    def __post_init__(self):
        self.status = RecordStatus(self.status)
        if self.created_at is None:
            self.created_at = utc_now().isoformat()

    @property
    def is_present(self) -> bool:
        """アラート判定上「存在する」か（DISABLED は欠落と同じ扱い）"""
        return self.status == RecordStatus.ACTIVE

    def to_item(self) -> dict:
        """DynamoDB アイテム形式に変換"""
        return {
            "PK": PARTITION_KEY,
            "SK": sort_key(self.date),
            "text": self.text,
            "status": self.status.value,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_item(cls, item: dict) -> "Record":
        """DynamoDB アイテムから復元（未知の status は DISABLED として扱う）"""
        status = item.get("status")
        if status not in RecordStatus._value2member_map_:
            status = RecordStatus.DISABLED
        return cls(
            date=item["SK"][len(SORT_KEY_PREFIX):],
            text=item.get("text", ""),
            status=status,
            created_at=item.get("createdAt", ""),
        )


@dataclass
class AlertMessage:
    """欠落検知アラート"""
    date: str
    type: AlertType = AlertType.MISSING_DAILY_MESSAGE
    detected_at: Optional[str] = None

    def __post_init__(self):
        if self.detected_at is None:
            self.detected_at = utc_now().isoformat()

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "date": self.date,
            "detectedAt": self.detected_at,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, body) -> "AlertMessage":
        """
        キューのメッセージ本文をパース

        Raises:
            ParseError: JSON でない、type が未知、date が不正な場合
        """
        try:
            data = json.loads(body)
        except (TypeError, ValueError) as e:
            raise ParseError(f"invalid JSON body: {e}")

        if not isinstance(data, dict):
            raise ParseError("alert body must be a JSON object")

        try:
            alert_type = AlertType(data.get("type"))
        except ValueError:
            raise ParseError(f"unknown alert type: {data.get('type')!r}")

        date = data.get("date")
        if not is_valid_date(date):
            raise ParseError(f"invalid alert date: {date!r}")

        return cls(date=date, type=alert_type, detected_at=data.get("detectedAt"))
