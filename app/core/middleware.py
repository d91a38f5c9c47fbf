from __future__ import annotations

import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.context import set_intent, set_request_id


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        """
        Sets request_id into contextvars for the lifetime of the request.

        Uses the X-Request-Id header when the caller sends one, otherwise
        generates a fresh id. The id is echoed back on the response.
        """
        request_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex

        try:
            set_request_id(request_id)
            response = await call_next(request)
            response.headers["X-Request-Id"] = request_id
            return response
        finally:
            # always clear context
            set_request_id(None)
            set_intent(None)
