"""アラートキューのテスト"""
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from daily_message import alert_channel
from daily_message.alert_channel import (
    MAX_WAIT_SECONDS,
    InMemoryAlertChannel,
    SqsAlertChannel,
    create_alert_channel,
)
from daily_message.config import Settings
from daily_message.exceptions import TransientError


QUEUE_URL = "https://sqs.ap-northeast-1.amazonaws.com/123456789012/daily-message-alerts"


@pytest.fixture
def sqs():
    return MagicMock()


def test_send_returns_message_id(sqs):
    sqs.send_message.return_value = {"MessageId": "m-1"}
    channel = SqsAlertChannel(QUEUE_URL, sqs)

    assert channel.send('{"type": "MISSING_DAILY_MESSAGE"}') == "m-1"
    sqs.send_message.assert_called_once_with(
        QueueUrl=QUEUE_URL, MessageBody='{"type": "MISSING_DAILY_MESSAGE"}'
    )


def test_receive_ack_nack(sqs):
    sqs.receive_message.return_value = {
        "Messages": [
            {
                "MessageId": "m-1",
                "Body": "{}",
                "ReceiptHandle": "rh-1",
                "Attributes": {"ApproximateReceiveCount": "3"},
            }
        ]
    }
    channel = SqsAlertChannel(QUEUE_URL, sqs)

    [message] = channel.receive(max_messages=1, wait_seconds=5)
    assert message.receive_count == 3

    channel.ack(message)
    sqs.delete_message.assert_called_once_with(QueueUrl=QUEUE_URL, ReceiptHandle="rh-1")

    channel.nack(message)
    sqs.change_message_visibility.assert_called_once_with(
        QueueUrl=QUEUE_URL, ReceiptHandle="rh-1", VisibilityTimeout=0
    )


def test_receive_empty_queue(sqs):
    sqs.receive_message.return_value = {}
    assert SqsAlertChannel(QUEUE_URL, sqs).receive() == []


def test_send_throttled_is_transient(sqs):
    sqs.send_message.side_effect = ClientError(
        {"Error": {"Code": "RequestThrottled", "Message": "slow down"}}, "SendMessage"
    )

    with pytest.raises(TransientError):
        SqsAlertChannel(QUEUE_URL, sqs).send("{}")


def test_send_unreachable_is_transient(sqs):
    sqs.send_message.side_effect = EndpointConnectionError(endpoint_url=QUEUE_URL)

    with pytest.raises(TransientError):
        SqsAlertChannel(QUEUE_URL, sqs).send("{}")


def test_queue_url_required(sqs):
    with pytest.raises(ValueError):
        SqsAlertChannel("", sqs)


def test_in_memory_nack_redelivers():
    channel = InMemoryAlertChannel()
    channel.send("a")

    [first] = channel.receive()
    channel.nack(first)
    [second] = channel.receive()

    assert second.body == "a"
    assert second.receive_count == 2
    channel.ack(second)
    assert channel.pending == 0


def test_create_alert_channel_sqs_backend(sqs):
    channel = create_alert_channel(Settings(alert_queue_url=QUEUE_URL), sqs_client=sqs)

    assert isinstance(channel, SqsAlertChannel)
    assert channel.client is sqs


def test_sqs_client_read_timeout_covers_long_polling(monkeypatch):
    created = {}

    def fake_client(service, config=None):
        created["service"] = service
        created["config"] = config
        return MagicMock()

    monkeypatch.setattr(alert_channel.boto3, "client", fake_client)

    create_alert_channel(Settings(alert_queue_url=QUEUE_URL, request_timeout=5))

    assert created["service"] == "sqs"
    assert created["config"].connect_timeout == 5
    assert created["config"].read_timeout == 5 + MAX_WAIT_SECONDS


def test_receive_clamps_wait_to_sqs_maximum(sqs):
    sqs.receive_message.return_value = {}

    SqsAlertChannel(QUEUE_URL, sqs).receive(wait_seconds=30)

    assert sqs.receive_message.call_args.kwargs["WaitTimeSeconds"] == MAX_WAIT_SECONDS
