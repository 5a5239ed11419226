from __future__ import annotations

import logging
from typing import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from ..config import settings

logger = logging.getLogger(__name__)

UPLOAD_PATH = "/api/upload"

# headroom for the multipart boundaries and metadata fields
MULTIPART_OVERHEAD_BYTES = 64 * 1024


class UploadSizeLimitMiddleware(BaseHTTPMiddleware):
    """Refuse oversized upload bodies from Content-Length before they are buffered.

    Bodies without a usable Content-Length still hit the byte cap in the
    storage layer while streaming to disk.
    """

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        if request.method == "POST" and request.url.path == UPLOAD_PATH:
            declared = request.headers.get("content-length", "")
            limit = settings.max_upload_bytes + MULTIPART_OVERHEAD_BYTES
            if declared.isdigit() and int(declared) > limit:
                logger.info("upload_rejected_by_length declared=%s limit=%s", declared, limit)
                return JSONResponse(status_code=400, content={"detail": "File too large."})
        return await call_next(request)
