#!/usr/bin/env python3
"""
「今日のメッセージ」存在チェックのデプロイ検証スクリプト
AWS認証情報が設定されていることが前提（読み取り系 API のみ使用）
"""
import sys

import boto3

from .config import Settings, get_settings
from .database import MessageDatabase
from .dates import today
from .schedule import daily_schedule, next_run


def check_dynamodb_table(client, settings: Settings) -> bool:
    """DynamoDB テーブルを確認"""
    print("\n✓ DynamoDB テーブル確認")
    try:
        table = client.describe_table(TableName=settings.table_name)["Table"]
        print(f"  ✓ テーブル '{settings.table_name}' が存在します")
        print(f"    - Status: {table['TableStatus']}")

        key_schema = {key["AttributeName"]: key["KeyType"] for key in table.get("KeySchema", [])}
        if key_schema != {"PK": "HASH", "SK": "RANGE"}:
            print(f"  ✗ キー構成が想定と異なります: {key_schema}")
            print("    → PK (HASH) / SK (RANGE) で作成してください")
            return False
        return True
    except Exception as e:
        print(f"  ✗ DynamoDB テーブルエラー: {e}")
        print("    → デプロイを実行してください")
        return False


def check_alert_queue(client, settings: Settings) -> bool:
    """SQS キューとデッドレターキューを確認"""
    print("\n✓ SQS キュー確認")
    if not settings.alert_queue_url:
        print("  ✗ ALERT_QUEUE_URL が設定されていません")
        return False
    try:
        response = client.get_queue_attributes(
            QueueUrl=settings.alert_queue_url,
            AttributeNames=["VisibilityTimeout", "RedrivePolicy"],
        )
        attributes = response.get("Attributes", {})
        print(f"  ✓ キュー '{settings.alert_queue_url}' が存在します")
        print(f"    - VisibilityTimeout: {attributes.get('VisibilityTimeout', 'N/A')}s")

        if "RedrivePolicy" not in attributes:
            print("  ✗ デッドレターキューが設定されていません")
            print("    → RedrivePolicy (maxReceiveCount) を設定してください")
            return False
        print(f"    ✓ RedrivePolicy: {attributes['RedrivePolicy']}")
        return True
    except Exception as e:
        print(f"  ✗ SQS キューエラー: {e}")
        return False


def check_schedule(client, settings: Settings) -> bool:
    """EventBridge Scheduler のスケジュールを確認"""
    print("\n✓ EventBridge スケジュール確認")
    expected = daily_schedule(settings.check_time, settings.timezone)
    try:
        schedule = client.get_schedule(Name=settings.schedule_name)
        print(f"  ✓ スケジュール '{settings.schedule_name}' が存在します")
        print(f"    - State: {schedule.get('State', 'N/A')}")
        print(f"    - Schedule: {schedule.get('ScheduleExpression', 'N/A')} ({schedule.get('ScheduleExpressionTimezone', 'UTC')})")
        print(f"    - 次回実行: {next_run(settings.check_time, settings.timezone).isoformat()}")

        ok = True
        for key, value in expected.items():
            if schedule.get(key) != value:
                print(f"    ✗ {key} が想定と異なります（期待値: {value}）")
                ok = False
        if schedule.get("State") != "ENABLED":
            print("    ✗ スケジュールが無効化されています")
            ok = False
        return ok
    except Exception as e:
        print(f"  ✗ EventBridge スケジュールエラー: {e}")
        return False


def check_lambda_function(client, function_name: str, required_vars) -> bool:
    """Lambda 関数と環境変数を確認"""
    print(f"\n✓ Lambda 関数確認 ({function_name})")
    try:
        response = client.get_function(FunctionName=function_name)
        function_config = response["Configuration"]
        print(f"  ✓ Lambda 関数 '{function_name}' が存在します")
        print(f"    - Runtime: {function_config.get('Runtime', 'N/A')}")
        print(f"    - Handler: {function_config.get('Handler', 'N/A')}")
        print(f"    - Timeout: {function_config.get('Timeout', 'N/A')}s")

        env_vars = function_config.get("Environment", {}).get("Variables", {})
        ok = True
        for var in required_vars:
            if var in env_vars:
                print(f"    ✓ 環境変数 {var}: {env_vars[var]}")
            else:
                print(f"    ✗ 環境変数 {var} が見つかりません")
                ok = False
        return ok
    except Exception as e:
        print(f"  ✗ Lambda 関数エラー: {e}")
        return False


def check_event_source_mapping(client, settings: Settings) -> bool:
    """コンシューマの SQS イベントソースマッピングを確認（BatchSize=1 が前提）"""
    print("\n✓ SQS イベントソースマッピング確認")
    try:
        mappings = client.list_event_source_mappings(
            FunctionName=settings.consumer_function_name
        ).get("EventSourceMappings", [])
        if not mappings:
            print("  ✗ イベントソースマッピングがありません")
            return False

        ok = True
        for mapping in mappings:
            print(f"    - {mapping.get('EventSourceArn', 'N/A')}: BatchSize={mapping.get('BatchSize')}")
            if mapping.get("BatchSize") != 1:
                print("    ✗ BatchSize は 1 にしてください")
                ok = False
            if "ReportBatchItemFailures" not in mapping.get("FunctionResponseTypes", []):
                print("    ✗ ReportBatchItemFailures が有効ではありません")
                ok = False
        return ok
    except Exception as e:
        print(f"  ✗ イベントソースマッピングエラー: {e}")
        return False


def check_today_message(database, settings: Settings) -> bool:
    """今日のメッセージが登録されているか確認（未登録でも失敗にはしない）"""
    date = today(settings.timezone)
    print(f"\n✓ 今日のメッセージ確認 ({date})")
    try:
        text = database.get_message(date)
        if text is not None:
            print(f"  ✓ 登録済み: {text[:80]}")
        else:
            print("  ⚠ 今日のメッセージが登録されていません（チェック実行時にアラートになります）")
        return True
    except Exception as e:
        print(f"  ✗ DynamoDB データ確認エラー: {e}")
        return False


def run_checks(settings: Settings, clients: dict, database) -> int:
    """
    すべての検証を実行

    Args:
        settings: 設定
        clients: "dynamodb", "sqs", "scheduler", "lambda" の boto3 クライアント
        database: 今日のメッセージ確認に使う MessageDatabase

    Returns:
        終了コード（すべて合格なら 0）
    """
    print("\n" + "=" * 60)
    print("「今日のメッセージ」存在チェック デプロイ検証")
    print("=" * 60)

    results = [
        ("DynamoDB テーブル", check_dynamodb_table(clients["dynamodb"], settings)),
        ("SQS キュー", check_alert_queue(clients["sqs"], settings)),
        ("EventBridge スケジュール", check_schedule(clients["scheduler"], settings)),
        ("チェック Lambda", check_lambda_function(
            clients["lambda"], settings.check_function_name,
            ["DDB_TABLE_NAME", "ALERT_QUEUE_URL", "TIMEZONE"],
        )),
        ("コンシューマ Lambda", check_lambda_function(
            clients["lambda"], settings.consumer_function_name, [],
        )),
        ("イベントソースマッピング", check_event_source_mapping(clients["lambda"], settings)),
        ("DynamoDB データ", check_today_message(database, settings)),
    ]

    print("\n" + "=" * 60)
    print("検証結果サマリー")
    print("=" * 60)

    all_passed = True
    for name, passed in results:
        status = "✓ PASS" if passed else "✗ FAIL"
        print(f"{status}: {name}")
        if not passed:
            all_passed = False

    print("\n" + "=" * 60)
    if all_passed:
        print("✓ すべての検証に合格しました！")
        return 0
    print("✗ いくつかの検証が失敗しました。上記を修正してください。")
    return 1


def main() -> int:
    """メイン検証関数"""
    settings = get_settings()
    config = settings.boto_config()
    clients = {
        name: boto3.client(name, config=config)
        for name in ("dynamodb", "sqs", "scheduler", "lambda")
    }
    database = MessageDatabase(settings.table_name, boto3.resource("dynamodb", config=config))
    return run_checks(settings, clients, database)


if __name__ == "__main__":
    sys.exit(main())
