from __future__ import annotations

from contextvars import ContextVar
from typing import Dict, Optional

request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
intent_ctx: ContextVar[Optional[str]] = ContextVar("intent", default=None)


def set_request_id(request_id: Optional[str]) -> None:
    request_id_ctx.set(request_id)


def get_request_id() -> Optional[str]:
    return request_id_ctx.get()


def set_intent(intent: Optional[str]) -> None:
    intent_ctx.set(intent)


def log_context() -> Dict[str, str]:
    """Current request-scoped values for log records; unset values render as '-'."""
    return {
        "request_id": request_id_ctx.get() or "-",
        "intent": intent_ctx.get() or "-",
    }
