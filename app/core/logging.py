from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from app.config import get_settings
from app.core.context import log_context

# Optional per-call fields passed via `extra=`; rendered only when present.
EXTRA_FIELDS = ("chain", "status")


def utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ChatContextFilter(logging.Filter):
    """Stamp every record with the request id and classified intent of the current turn."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in log_context().items():
            setattr(record, key, value)
        return True


def _extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {key: getattr(record, key) for key in EXTRA_FIELDS if getattr(record, key, None) is not None}


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": utc_iso(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
            "intent": getattr(record, "intent", "-"),
        }
        payload.update(_extras(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        fields = " ".join(f"{k}={v}" for k, v in _extras(record).items())
        line = (
            f"{utc_iso()} {record.levelname:<7} "
            f"[{getattr(record, 'request_id', '-')}|{getattr(record, 'intent', '-')}] "
            f"{record.name}: {record.getMessage()}"
        )
        if fields:
            line = f"{line} ({fields})"
        if record.exc_info:
            line = line + "\n" + self.formatException(record.exc_info)
        return line


def configure_logging() -> None:
    settings = get_settings()

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(ChatContextFilter())
    handler.setFormatter(JsonFormatter() if settings.log_json else TextFormatter())
    root.addHandler(handler)

    # upstream client chatter
    for noisy in ("uvicorn.access", "httpx", "httpcore", "openai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
