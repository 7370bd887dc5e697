"""
FastAPI アプリケーションのメインエントリポイント
"""
import json
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .batch_writer import BatchWriter
from .config import Settings, configure_logging, get_settings
from .database import create_database
from .dates import Clock, is_valid_date, today, utc_now
from .exceptions import ConflictError, PartialWriteError, TransientError, ValidationError


logger = logging.getLogger(__name__)


def _message_response(date: str, text: Optional[str]) -> JSONResponse:
    if text is None:
        return JSONResponse(
            status_code=404,
            content={"date": date, "text": None, "error": "MESSAGE_NOT_FOUND"},
        )
    return JSONResponse(status_code=200, content={"date": date, "text": text})


def create_app(settings: Optional[Settings] = None, store=None, clock: Clock = utc_now) -> FastAPI:
    """
    アプリケーションを生成

    Args:
        settings: 設定（省略時は環境変数から読み込み）
        store: レコードストア（省略時は設定に応じて生成）
        clock: 現在時刻を返す関数（テストで差し替え）
    """
    settings = settings or get_settings()
    store = store if store is not None else create_database(settings)
    writer = BatchWriter(store, clock=clock)

    app = FastAPI(title="Daily Message API", version="1.0.0")
    app.state.settings = settings
    app.state.store = store

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"error": exc.code})

    @app.exception_handler(ConflictError)
    async def handle_conflict_error(request: Request, exc: ConflictError):
        return JSONResponse(status_code=409, content={"error": exc.code, "date": exc.date})

    @app.exception_handler(PartialWriteError)
    async def handle_partial_write_error(request: Request, exc: PartialWriteError):
        return JSONResponse(status_code=502, content={"error": exc.code, "dates": exc.dates})

    @app.exception_handler(TransientError)
    async def handle_transient_error(request: Request, exc: TransientError):
        logger.warning("Transient error on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=503, content={"error": exc.code})

    @app.get("/health")
    def health_check():
        """ヘルスチェックエンドポイント"""
        return {"status": "ok", "timestamp": clock().isoformat()}

    @app.get("/today")
    def get_today_message():
        """
        今日のメッセージを取得

        - 「今日」は設定タイムゾーン（既定: Asia/Tokyo）で決める
        - ACTIVE でないメッセージは存在しないものとして 404
        """
        date = today(settings.timezone, clock())
        return _message_response(date, store.get_message(date))

    @app.get("/messages/{date}")
    def get_message(date: str):
        """特定日付のメッセージを取得"""
        if not is_valid_date(date):
            raise ValidationError("INVALID_DATE_FORMAT")
        return _message_response(date, store.get_message(date))

    @app.post("/messages/bulk")
    async def bulk_write_messages(request: Request):
        """
        メッセージを一括登録（最大25件）

        - items 形式または startDate + texts 形式
        - force=false の場合、既存の日付が1件でもあれば 409
        """
        body = await request.body()
        try:
            payload = json.loads(body) if body else {}
        except ValueError:
            raise ValidationError("INVALID_JSON")

        result = writer.write_request(payload)
        return result.to_dict()

    return app


def _build_default_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)
    return create_app(settings)


app = _build_default_app()
