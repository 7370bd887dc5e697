"""デプロイ検証スクリプトのテスト - boto3 クライアントはモック"""
from unittest.mock import MagicMock

import pytest

from daily_message.config import Settings
from daily_message.database import InMemoryMessageDatabase, MessageDatabase
from daily_message.dates import today
from daily_message.models import Record, RecordStatus
from daily_message.verify_deployment import (
    check_event_source_mapping,
    check_schedule,
    check_today_message,
    run_checks,
)


@pytest.fixture
def settings():
    return Settings(alert_queue_url="https://sqs.ap-northeast-1.amazonaws.com/123/alerts")


@pytest.fixture
def clients():
    dynamodb = MagicMock()
    dynamodb.describe_table.return_value = {
        "Table": {
            "TableStatus": "ACTIVE",
            "KeySchema": [
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
        }
    }

    sqs = MagicMock()
    sqs.get_queue_attributes.return_value = {
        "Attributes": {"VisibilityTimeout": "30", "RedrivePolicy": '{"maxReceiveCount":"5"}'}
    }

    scheduler = MagicMock()
    scheduler.get_schedule.return_value = {
        "State": "ENABLED",
        "ScheduleExpression": "cron(0 9 * * ? *)",
        "ScheduleExpressionTimezone": "Asia/Tokyo",
    }

    lambda_client = MagicMock()
    lambda_client.get_function.return_value = {
        "Configuration": {
            "Runtime": "python3.12",
            "Handler": "daily_message.presence_check_lambda.lambda_handler",
            "Timeout": 10,
            "Environment": {
                "Variables": {"DDB_TABLE_NAME": "DailyMessages", "ALERT_QUEUE_URL": "q", "TIMEZONE": "Asia/Tokyo"}
            },
        }
    }
    lambda_client.list_event_source_mappings.return_value = {
        "EventSourceMappings": [
            {"EventSourceArn": "arn:aws:sqs:ap-northeast-1:123:alerts", "BatchSize": 1,
             "FunctionResponseTypes": ["ReportBatchItemFailures"]}
        ]
    }

    return {"dynamodb": dynamodb, "sqs": sqs, "scheduler": scheduler, "lambda": lambda_client}


@pytest.fixture
def database():
    return InMemoryMessageDatabase()


def test_all_checks_pass(settings, clients, database):
    assert run_checks(settings, clients, database) == 0


def test_missing_dead_letter_queue_fails(settings, clients, database):
    clients["sqs"].get_queue_attributes.return_value = {"Attributes": {"VisibilityTimeout": "30"}}

    assert run_checks(settings, clients, database) == 1


def test_schedule_in_wrong_timezone_fails(settings, clients):
    clients["scheduler"].get_schedule.return_value["ScheduleExpressionTimezone"] = "UTC"

    assert check_schedule(clients["scheduler"], settings) is False


def test_batch_size_must_be_one(settings, clients):
    clients["lambda"].list_event_source_mappings.return_value["EventSourceMappings"][0]["BatchSize"] = 10

    assert check_event_source_mapping(clients["lambda"], settings) is False


def test_client_errors_are_reported_as_failures(settings, clients, database):
    clients["dynamodb"].describe_table.side_effect = RuntimeError("AccessDenied")

    assert run_checks(settings, clients, database) == 1


def test_today_message_reads_through_message_database(settings, database, capsys):
    date = today(settings.timezone)
    database.put_message(date, "Hi")

    assert check_today_message(database, settings) is True
    assert "登録済み: Hi" in capsys.readouterr().out


def test_today_message_disabled_is_reported_missing(settings, database, capsys):
    date = today(settings.timezone)
    database.put_record(Record(date=date, text="Hi", status=RecordStatus.DISABLED))

    assert check_today_message(database, settings) is True
    assert "登録されていません" in capsys.readouterr().out


def test_today_message_uses_table_key_and_consistent_read(settings):
    dynamodb = MagicMock()
    table = dynamodb.Table.return_value
    table.get_item.return_value = {
        "Item": {"PK": "MSG", "SK": "DATE#2025-06-01", "text": "Hi", "status": "ACTIVE"}
    }

    assert check_today_message(MessageDatabase(settings.table_name, dynamodb), settings) is True
    dynamodb.Table.assert_called_once_with("DailyMessages")
    key = table.get_item.call_args.kwargs["Key"]
    assert key["PK"] == "MSG"
    assert key["SK"] == f"DATE#{today(settings.timezone)}"
    assert table.get_item.call_args.kwargs["ConsistentRead"] is True


def test_today_message_read_error_fails(settings):
    database = MagicMock()
    database.get_message.side_effect = RuntimeError("AccessDenied")

    assert check_today_message(database, settings) is False
