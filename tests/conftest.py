"""テスト共通 fixtures"""
import os
from datetime import datetime

# daily_message.main はインポート時にアプリを生成するため、先にメモリ内バックエンドを指定する
os.environ["STORE_BACKEND"] = "memory"
os.environ["ALERT_BACKEND"] = "memory"
os.environ.setdefault("AWS_REGION", "ap-northeast-1")

import pytest
import pytz

from daily_message.alert_channel import InMemoryAlertChannel
from daily_message.database import InMemoryMessageDatabase


# 2025-06-01 00:30 UTC = 2025-06-01 09:30 JST
FIXED_NOW = datetime(2025, 6, 1, 0, 30, tzinfo=pytz.utc)


@pytest.fixture
def store():
    return InMemoryMessageDatabase()


@pytest.fixture
def channel():
    return InMemoryAlertChannel()


@pytest.fixture
def clock():
    return lambda: FIXED_NOW
