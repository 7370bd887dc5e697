"""
ローカル実行用ランナー

    python -m daily_message today
    python -m daily_message check [--date 2025-06-01]
    python -m daily_message put 2025-06-01 "Hi"
    python -m daily_message bulk messages.json [--force]
    python -m daily_message drain [--max 10]

STORE_BACKEND=memory / ALERT_BACKEND=memory の場合、状態はプロセス内だけで保持される
"""
import argparse
import json
import sys
from pathlib import Path

from .alert_channel import create_alert_channel
from .batch_writer import BatchWriter
from .checker import PresenceChecker
from .config import configure_logging, get_settings
from .consumer import AlertConsumer, LogNotifier
from .database import create_database
from .dates import is_valid_date, today
from .exceptions import DailyMessageError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="daily_message", description="Daily message local runner")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("today", help="今日のメッセージを表示")

    check = subparsers.add_parser("check", help="メッセージの存在チェックを実行")
    check.add_argument("--date", help="対象日 (YYYY-MM-DD)、省略時は今日")

    put = subparsers.add_parser("put", help="1件登録")
    put.add_argument("date")
    put.add_argument("text")

    bulk = subparsers.add_parser("bulk", help="JSON ファイルから一括登録")
    bulk.add_argument("file", type=Path)
    bulk.add_argument("--force", action="store_true", help="既存の日付も上書きする")

    drain = subparsers.add_parser("drain", help="アラートキューを処理")
    drain.add_argument("--max", type=int, default=None, dest="max_messages")
    drain.add_argument("--wait", type=int, default=0, help="ロングポーリング秒数（最大20）")

    return parser


def run(args, settings, store=None, channel=None) -> dict:
    """コマンドを実行して結果を dict で返す"""
    if args.command == "today":
        store = store if store is not None else create_database(settings)
        date = today(settings.timezone)
        return {"date": date, "text": store.get_message(date)}

    if args.command == "check":
        store = store if store is not None else create_database(settings)
        channel = channel if channel is not None else create_alert_channel(settings)
        checker = PresenceChecker(store, channel, settings.timezone)
        return checker.check(args.date).to_dict()

    if args.command == "put":
        if not is_valid_date(args.date):
            return {"error": "INVALID_DATE_FORMAT"}
        store = store if store is not None else create_database(settings)
        record = store.put_message(args.date, args.text)
        return {"date": record.date, "text": record.text, "status": record.status.value}

    if args.command == "bulk":
        store = store if store is not None else create_database(settings)
        payload = json.loads(args.file.read_text(encoding="utf-8"))
        if args.force and isinstance(payload, dict):
            payload["force"] = True
        return BatchWriter(store).write_request(payload).to_dict()

    if args.command == "drain":
        channel = channel if channel is not None else create_alert_channel(settings)
        result = AlertConsumer(LogNotifier()).drain(
            channel, max_messages=args.max_messages, wait_seconds=args.wait
        )
        return {"acked": result.acked, "nacked": result.nacked}

    raise ValueError(f"Unknown command: {args.command}")


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level)

    try:
        result = run(args, settings)
    except DailyMessageError as e:
        print(json.dumps({"error": e.code, "message": str(e)}, ensure_ascii=False))
        return 1

    print(json.dumps(result, ensure_ascii=False))
    return 1 if "error" in result else 0


if __name__ == "__main__":
    sys.exit(main())
