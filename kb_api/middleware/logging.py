from __future__ import annotations

import json
import logging
import time
import uuid
from typing import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

ACCESS_LOGGER_NAME = "kb_api.access"
SLOW_REQUEST_MS = 5000


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One JSON access-log line per request, tagged with a request id."""

    def __init__(self, app, logger: logging.Logger | None = None, slow_request_ms: int = SLOW_REQUEST_MS) -> None:
        super().__init__(app)
        self.logger = logger if logger is not None else logging.getLogger(ACCESS_LOGGER_NAME)
        self.slow_request_ms = slow_request_ms

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            payload = self._payload("http_request_error", request, status=500, start=start)
            self._log(payload, level=logging.ERROR)
            raise

        response.headers.setdefault("x-request-id", request_id)
        payload = self._payload("http_request", request, status=response.status_code, start=start)
        if payload["duration_ms"] >= self.slow_request_ms:
            payload["slow"] = True
        self._log(payload, level=logging.WARNING if response.status_code >= 500 else logging.INFO)
        return response

    @staticmethod
    def _payload(event: str, request: Request, *, status: int, start: float) -> dict[str, object]:
        payload: dict[str, object] = {
            "event": event,
            "request_id": request.state.request_id,
            "method": request.method,
            "path": request.url.path,
            "status": status,
            "duration_ms": int((time.perf_counter() - start) * 1000),
        }
        user_id = getattr(request.state, "user_id", None)
        if user_id:
            payload["user_id"] = user_id
        return payload

    def _log(self, payload: dict[str, object], level: int = logging.INFO) -> None:
        self.logger.log(level, json.dumps(payload, separators=(",", ":")))
