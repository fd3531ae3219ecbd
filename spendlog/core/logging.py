"""JSON-lines logging with per-request and per-session context.

Context travels in contextvars: the HTTP middleware binds ``request_id`` and
the session owner, the session binds ``user_id`` and ``sync_mode`` for its
own tasks. Ledger identifiers can be attached per record through
``extra={"trip_id": ...}``.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
user_id_ctx: ContextVar[Optional[str]] = ContextVar("user_id", default=None)
sync_mode_ctx: ContextVar[Optional[str]] = ContextVar("sync_mode", default=None)

REQUEST_ID_HEADER = "X-Request-ID"
LEDGER_FIELDS = ("trip_id", "expense_id", "category_id", "currency")
# Chatty third-party loggers (Firestore watch stream, gRPC, urllib)
QUIET_LOGGERS = ("google", "grpc", "urllib3", "httpx")


class ContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        record.request_id = request_id_ctx.get() or "-"
        record.user_id = user_id_ctx.get() or "-"
        record.sync_mode = sync_mode_ctx.get() or "-"
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        entry: Dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
            "user_id": getattr(record, "user_id", "-"),
            "sync_mode": getattr(record, "sync_mode", "-"),
        }
        for name in LEDGER_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def init_logging(debug: bool = False) -> None:
    root = logging.getLogger()
    root.handlers.clear()
    level = logging.DEBUG if debug else logging.INFO
    root.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(ContextFilter())
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_session(user_id: str, sync_mode: str) -> None:
    user_id_ctx.set(user_id)
    sync_mode_ctx.set(sync_mode)


async def request_context_middleware(request, call_next):  # type: ignore
    rid = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    tokens = [(request_id_ctx, request_id_ctx.set(rid))]
    session = getattr(request.app.state, "session", None)
    if session is not None:
        tokens.append((user_id_ctx, user_id_ctx.set(session.user_id)))
        tokens.append((sync_mode_ctx, sync_mode_ctx.set(session.mode.value)))
    logger = logging.getLogger("spendlog.request")
    started = time.perf_counter()
    status = 500
    try:
        response = await call_next(request)
        status = response.status_code
        response.headers[REQUEST_ID_HEADER] = rid
        return response
    finally:
        logger.debug(
            "%s %s -> %d in %.1fms",
            request.method,
            request.url.path,
            status,
            (time.perf_counter() - started) * 1000,
        )
        for var, token in reversed(tokens):
            var.reset(token)
