from __future__ import annotations

import json
import logging
import time
import uuid
from typing import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

ACCESS_LOGGER_NAME = "doc_archive.access"
REQUEST_ID_HEADER = "x-request-id"

# set on request.state by the auth dependency once the session resolves
_STATE_FIELDS = ("user_id", "user_role")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One JSON access line per request, tagged with the caller when known."""

    def __init__(self, app, logger: logging.Logger | None = None) -> None:
        super().__init__(app)
        self.logger = logger or logging.getLogger(ACCESS_LOGGER_NAME)

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            self._log(self._entry(request, "http_request_error", 500, started), level=logging.ERROR)
            raise

        response.headers.setdefault(REQUEST_ID_HEADER, request_id)
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        self._log(self._entry(request, "http_request", response.status_code, started), level=level)
        return response

    @staticmethod
    def _entry(request: Request, event: str, status_code: int, started: float) -> dict[str, object]:
        entry: dict[str, object] = {
            "event": event,
            "request_id": request.state.request_id,
            "method": request.method,
            "path": request.url.path,
            "status": status_code,
            "duration_ms": int((time.perf_counter() - started) * 1000),
            "client": request.client.host if request.client else None,
        }
        for name in _STATE_FIELDS:
            value = getattr(request.state, name, None)
            if value:
                entry[name] = value
        return entry

    def _log(self, entry: dict[str, object], level: int = logging.INFO) -> None:
        self.logger.log(level, json.dumps(entry, separators=(",", ":")))
