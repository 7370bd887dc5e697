"""
環境変数からの設定読み込み

ローカル開発時はパッケージ直下または作業ディレクトリの .env を読み込む
"""
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import pytz
from botocore.config import Config
from dotenv import load_dotenv


DEFAULT_TIMEZONE = "Asia/Tokyo"
DEFAULT_REGION = "ap-northeast-1"


def load_env_file() -> None:
    """.env ファイルから環境変数を読み込み（既存の環境変数は上書きしない）"""
    package_env = Path(__file__).parent / ".env"
    if package_env.exists():
        load_dotenv(dotenv_path=package_env)
    cwd_env = Path.cwd() / ".env"
    if cwd_env.exists():
        load_dotenv(dotenv_path=cwd_env)


def parse_check_time(value: str) -> tuple:
    """
    "HH:MM" 形式の時刻をパース

    Returns:
        (hour, minute)
    """
    try:
        hour_str, minute_str = value.split(":")
        hour, minute = int(hour_str), int(minute_str)
    except ValueError:
        raise ValueError(f"CHECK_TIME must be HH:MM, got {value!r}")
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"CHECK_TIME out of range: {value!r}")
    return hour, minute


@dataclass(frozen=True)
class Settings:
    """実行時設定"""
    table_name: str = "DailyMessages"
    alert_queue_url: str = ""
    region: str = DEFAULT_REGION
    timezone: str = DEFAULT_TIMEZONE
    check_time: str = "09:00"
    request_timeout: float = 5.0
    store_backend: str = "dynamodb"  # "dynamodb" | "memory"
    alert_backend: str = "sqs"  # "sqs" | "memory"
    log_level: str = "INFO"
    schedule_name: str = "daily-message-presence-check"
    check_function_name: str = "daily-message-presence-check"
    consumer_function_name: str = "daily-message-alert-consumer"

    def __post_init__(self):
        # 不正なタイムゾーンはここで弾く（pytz.UnknownTimeZoneError は KeyError）
        try:
            pytz.timezone(self.timezone)
        except pytz.UnknownTimeZoneError:
            raise ValueError(f"Unknown TIMEZONE: {self.timezone!r}")
        parse_check_time(self.check_time)
        if self.request_timeout <= 0:
            raise ValueError("REQUEST_TIMEOUT_SECONDS must be positive")
        if self.store_backend not in ("dynamodb", "memory"):
            raise ValueError(f"Unknown STORE_BACKEND: {self.store_backend!r}")
        if self.alert_backend not in ("sqs", "memory"):
            raise ValueError(f"Unknown ALERT_BACKEND: {self.alert_backend!r}")

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "Settings":
        """
        環境変数から Settings を生成

        Args:
            environ: テスト用に差し替える環境変数（省略時は os.environ）
        """
        env = os.environ if environ is None else environ
        timeout = env.get("REQUEST_TIMEOUT_SECONDS", "5")
        try:
            request_timeout = float(timeout)
        except ValueError:
            raise ValueError(f"REQUEST_TIMEOUT_SECONDS must be a number, got {timeout!r}")

        return cls(
            table_name=env.get("DDB_TABLE_NAME", "DailyMessages"),
            alert_queue_url=env.get("ALERT_QUEUE_URL", ""),
            region=env.get("AWS_REGION", DEFAULT_REGION),
            timezone=env.get("TIMEZONE", DEFAULT_TIMEZONE),
            check_time=env.get("CHECK_TIME", "09:00"),
            request_timeout=request_timeout,
            store_backend=env.get("STORE_BACKEND", "dynamodb").lower(),
            alert_backend=env.get("ALERT_BACKEND", "sqs").lower(),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
            schedule_name=env.get("SCHEDULE_NAME", "daily-message-presence-check"),
            check_function_name=env.get("CHECK_FUNCTION_NAME", "daily-message-presence-check"),
            consumer_function_name=env.get("CONSUMER_FUNCTION_NAME", "daily-message-alert-consumer"),
        )

    def boto_config(self, read_timeout: Optional[float] = None) -> Config:
        """
        すべての AWS 呼び出しに適用するタイムアウト設定

        Args:
            read_timeout: 読み取りタイムアウト（省略時は request_timeout）。
                SQS のロングポーリングでは待機秒数ぶん長くする
        """
        return Config(
            region_name=self.region,
            connect_timeout=self.request_timeout,
            read_timeout=self.request_timeout if read_timeout is None else read_timeout,
            # リトライはスケジューラ・キュー側に任せる
            retries={"max_attempts": 1, "mode": "standard"},
        )


def configure_logging(level: str = "INFO") -> None:
    """
    ルートロガーを設定（Lambda では stdout が CloudWatch Logs に転送される）
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)


def get_settings() -> Settings:
    """.env を読み込んだうえで Settings を返す"""
    load_env_file()
    return Settings.from_env()
