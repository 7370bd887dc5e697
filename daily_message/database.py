"""
DynamoDB データベース操作

テーブル構成: PK="MSG", SK="DATE#<YYYY-MM-DD>"
"""
import logging
from typing import Dict, List, Optional

import boto3

from .config import Settings
from .exceptions import call_aws
from .models import PARTITION_KEY, Record, RecordStatus, sort_key


logger = logging.getLogger(__name__)

# DynamoDB BatchWriteItem の上限
MAX_BATCH_SIZE = 25


class InMemoryMessageDatabase:
    """開発モード・テスト用のメモリ内データベース"""

    def __init__(self, table_name: str = "DailyMessages"):
        self.table_name = table_name
        self.data: Dict[str, dict] = {}  # key: "DATE#<date>", value: item

    def get_record(self, date: str) -> Optional[Record]:
        item = self.data.get(sort_key(date))
        return Record.from_item(item) if item else None

    def put_record(self, record: Record) -> Record:
        self.data[sort_key(record.date)] = record.to_item()
        return record

    def put_batch(self, records: List[Record]) -> List[Record]:
        if len(records) > MAX_BATCH_SIZE:
            raise ValueError(f"put_batch accepts at most {MAX_BATCH_SIZE} items")
        for record in records:
            self.put_record(record)
        return []

    def get_message(self, date: str) -> Optional[str]:
        record = self.get_record(date)
        if not record or not record.is_present:
            return None
        return record.text

    def put_message(self, date: str, text: str) -> Record:
        return self.put_record(Record(date=date, text=text, status=RecordStatus.ACTIVE))


class MessageDatabase:
    """DynamoDB テーブル操作クラス"""

    def __init__(self, table_name: str, dynamodb=None):
        """
        DynamoDB テーブルを初期化

        Args:
            table_name: DynamoDB テーブル名
            dynamodb: boto3 の DynamoDB リソース（省略時は既定の設定で生成）
        """
        if dynamodb is None:
            dynamodb = boto3.resource("dynamodb")
        self.table_name = table_name
        self.table = dynamodb.Table(table_name)

    def get_record(self, date: str) -> Optional[Record]:
        """
        日付のレコードを取得

        Args:
            date: 日付 (YYYY-MM-DD)

        Returns:
            レコード、見つからない場合は None
        """
        response = call_aws(
            "dynamodb.get_item",
            self.table.get_item,
            Key={"PK": PARTITION_KEY, "SK": sort_key(date)},
            ConsistentRead=True,
        )
        item = response.get("Item")
        return Record.from_item(item) if item else None

    def put_record(self, record: Record) -> Record:
        """
        レコードを保存（既存レコードは無条件に上書き）
        """
        call_aws("dynamodb.put_item", self.table.put_item, Item=record.to_item())
        return record

    def put_batch(self, records: List[Record]) -> List[Record]:
        """
        BatchWriteItem で一括保存

        Args:
            records: 保存するレコード（最大25件）

        Returns:
            DynamoDB が未処理として返したレコード
        """
        if len(records) > MAX_BATCH_SIZE:
            raise ValueError(f"put_batch accepts at most {MAX_BATCH_SIZE} items")
        if not records:
            return []

        # resource の meta.client は Python の型をそのまま受け付ける
        response = call_aws(
            "dynamodb.batch_write_item",
            self.table.meta.client.batch_write_item,
            RequestItems={
                self.table_name: [
                    {"PutRequest": {"Item": record.to_item()}} for record in records
                ]
            },
        )

        unprocessed = response.get("UnprocessedItems", {}).get(self.table_name, [])
        return [
            Record.from_item(request["PutRequest"]["Item"])
            for request in unprocessed
            if "PutRequest" in request
        ]

    def get_message(self, date: str) -> Optional[str]:
        """ACTIVE なレコードのテキストを返す（DISABLED・未登録は None）"""
        record = self.get_record(date)
        if not record or not record.is_present:
            return None
        return record.text

    def put_message(self, date: str, text: str) -> Record:
        """1件を ACTIVE で保存"""
        return self.put_record(Record(date=date, text=text, status=RecordStatus.ACTIVE))


def create_database(settings: Settings):
    """設定に応じたデータベースを生成"""
    if settings.store_backend == "memory":
        logger.info("Using in-memory store (table=%s)", settings.table_name)
        return InMemoryMessageDatabase(settings.table_name)

    dynamodb = boto3.resource("dynamodb", config=settings.boto_config())
    return MessageDatabase(settings.table_name, dynamodb)
