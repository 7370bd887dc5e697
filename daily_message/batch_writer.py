"""
メッセージの一括登録

- 1リクエスト最大25件（DynamoDB BatchWriteItem の上限と同じ）
- force=false の場合は既存レコードを1件ずつ確認し、1件でもあれば何も書かずに中止
- 未処理アイテムは1回だけ再送し、それでも残れば PartialWriteError
"""
import logging
from dataclasses import dataclass
from typing import Iterable, List, Tuple

from .dates import Clock, consecutive_dates, is_valid_date, utc_now
from .exceptions import ConflictError, PartialWriteError, TransientError, ValidationError
from .models import Record, RecordStatus


logger = logging.getLogger(__name__)

MAX_ITEMS_PER_REQUEST = 25

Candidate = Tuple[str, str]  # (date, text)


@dataclass
class BatchWriteResult:
    written: int
    force: bool

    def to_dict(self) -> dict:
        return {"written": self.written, "force": self.force}


def _too_many_items() -> ValidationError:
    return ValidationError("MAX_25_ITEMS_PER_REQUEST")


def expand_candidates(payload: dict) -> List[Candidate]:
    """
    リクエストボディを (date, text) のリストに展開

    受け付ける形式:
        {"items": [{"date": "2025-01-10", "text": "a"}, ...]}
        {"startDate": "2025-01-10", "texts": ["a", "b", "c"]}  # 連続した日付に割り当て

    Raises:
        ValidationError: 形式が不正な場合
    """
    if not isinstance(payload, dict):
        raise ValidationError("INVALID_REQUEST")

    if "items" in payload:
        items = payload["items"]
        if not isinstance(items, list):
            raise ValidationError("INVALID_REQUEST")
        candidates = []
        for item in items:
            if not isinstance(item, dict) or not isinstance(item.get("text"), str):
                raise ValidationError("INVALID_REQUEST")
            candidates.append((item.get("date"), item["text"]))
        return candidates

    if "startDate" in payload:
        texts = payload.get("texts")
        if not isinstance(texts, list) or not all(isinstance(text, str) for text in texts):
            raise ValidationError("INVALID_REQUEST")
        # 開始日が不正だと展開できないため、件数チェックを先に行う
        if len(texts) > MAX_ITEMS_PER_REQUEST:
            raise _too_many_items()
        start_date = payload["startDate"]
        if not is_valid_date(start_date):
            raise ValidationError("INVALID_DATE_FORMAT")
        return list(zip(consecutive_dates(start_date, len(texts)), texts))

    raise ValidationError("INVALID_REQUEST")


def validate_candidates(candidates: List[Candidate]) -> None:
    """件数・日付形式・重複をこの順にチェック"""
    if len(candidates) > MAX_ITEMS_PER_REQUEST:
        raise _too_many_items()

    for date, _ in candidates:
        if not is_valid_date(date):
            raise ValidationError("INVALID_DATE_FORMAT", f"INVALID_DATE_FORMAT: {date!r}")

    seen = set()
    for date, _ in candidates:
        if date in seen:
            raise ValidationError("DUPLICATE_DATE", f"DUPLICATE_DATE: {date}")
        seen.add(date)

    if not candidates:
        raise ValidationError("EMPTY_REQUEST")


class BatchWriter:
    """メッセージ一括登録"""

    def __init__(self, store, clock: Clock = utc_now):
        self.store = store
        self.clock = clock

    def write_request(self, payload: dict) -> BatchWriteResult:
        """HTTP リクエストボディをそのまま受け取って書き込む"""
        candidates = expand_candidates(payload)
        force = payload.get("force", False)
        if not isinstance(force, bool):
            raise ValidationError("INVALID_REQUEST")
        return self.write(candidates, force=force)

    def write(self, candidates: Iterable[Candidate], force: bool = False) -> BatchWriteResult:
        """
        メッセージを一括で書き込む

        Args:
            candidates: (date, text) のリスト
            force: True の場合は既存チェックを行わない（書き込み自体は常に上書き）

        Returns:
            BatchWriteResult

        Raises:
            ValidationError: 件数超過・日付不正・日付重複
            ConflictError: force=false で既存レコードがあった
            PartialWriteError: 再送後も未処理のアイテムが残った、または再送自体が失敗した
            TransientError: 1回目のバッチ書き込みがタイムアウト・スロットリングした
        """
        candidates = list(candidates)
        validate_candidates(candidates)

        if not force:
            # 事前チェックのみ。チェック後に他から書き込まれた場合は検知できない
            for date, _ in candidates:
                if self.store.get_record(date) is not None:
                    logger.info("Bulk write rejected, %s already exists", date)
                    raise ConflictError(date)

        created_at = self.clock().isoformat()
        records = [
            Record(date=date, text=text, status=RecordStatus.ACTIVE, created_at=created_at)
            for date, text in candidates
        ]

        unprocessed = self.store.put_batch(records)
        if unprocessed:
            logger.warning("Retrying %d unprocessed items", len(unprocessed))
            try:
                unprocessed = self.store.put_batch(unprocessed)
            except TransientError as e:
                # 1回目のバッチは書き込み済みなので、残りの日付を返す
                dates = [record.date for record in unprocessed]
                logger.error("Retry of unprocessed items failed for %s: %s", dates, e)
                raise PartialWriteError(dates) from e
        if unprocessed:
            dates = [record.date for record in unprocessed]
            logger.error("Bulk write left %d items unprocessed: %s", len(dates), dates)
            raise PartialWriteError(dates)

        logger.info("Bulk wrote %d messages (force=%s)", len(records), force)
        return BatchWriteResult(written=len(records), force=force)
