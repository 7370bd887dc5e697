"""AlertConsumer のテスト"""
from unittest.mock import MagicMock

from daily_message.consumer import AlertConsumer, Disposition, LogNotifier
from daily_message.models import AlertMessage


ALERT_BODY = AlertMessage(date="2025-06-01", detected_at="2025-06-01T00:30:00+00:00").to_json()


def test_duplicate_delivery_notifies_twice():
    notifier = MagicMock()
    consumer = AlertConsumer(notifier)

    assert consumer.process(ALERT_BODY) == Disposition.ACK
    assert consumer.process(ALERT_BODY) == Disposition.ACK

    assert notifier.notify.call_count == 2
    alert = notifier.notify.call_args.args[0]
    assert alert.date == "2025-06-01"


def test_unparseable_message_is_nacked():
    notifier = MagicMock()

    assert AlertConsumer(notifier).process("{broken") == Disposition.NACK
    notifier.notify.assert_not_called()


def test_notifier_failure_still_acks():
    notifier = MagicMock()
    notifier.notify.side_effect = RuntimeError("smtp down")

    assert AlertConsumer(notifier).process(ALERT_BODY) == Disposition.ACK


def test_log_notifier_writes_warning():
    log = MagicMock()

    LogNotifier(log).notify(AlertMessage.from_json(ALERT_BODY))

    log.warning.assert_called_once()
    assert "2025-06-01" in log.warning.call_args.args


def test_drain_acks_good_and_nacks_bad(channel):
    channel.send("{broken")
    channel.send(ALERT_BODY)
    channel.send(ALERT_BODY)
    notifier = MagicMock()

    result = AlertConsumer(notifier).drain(channel)

    assert result.acked == 2
    assert result.nacked == 1
    assert notifier.notify.call_count == 2
    # パースできないメッセージはキューに残る（再配信・DLQ はキュー側の責務）
    assert channel.pending == 1


def test_drain_respects_max_messages(channel):
    for _ in range(3):
        channel.send(ALERT_BODY)

    result = AlertConsumer(MagicMock()).drain(channel, max_messages=2)

    assert result.acked == 2
    assert channel.pending == 1
