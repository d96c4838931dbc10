"""
StorySnap Backend — Access Log Middleware
===========================================

What:  One log line per HTTP request: method, path, status, duration, client.
How:   Runs inside RequestIDMiddleware, so every line carries the request ID.
       Level follows the status class: 5xx ERROR, 4xx WARNING, else INFO.

Request bodies are never logged. Story drafts, base64 images and the
identity fields in moderation bodies all travel there.

Typical durations:
    - GET  /api/stories          10-50ms (one indexed query)
    - POST /api/stories/x/upvote  5-20ms (single UPDATE … RETURNING)
    - POST /api/translate         2-15s  (Gemini round-trip dominates)
    - POST /api/upload            0.5-5s (Cloudinary upload, with retries)
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from storysnap.middleware.request_id import request_id_var

logger = logging.getLogger("storysnap.access")

# Probes hit these every few seconds.
QUIET_PATHS = frozenset({"/health"})


def level_for_status(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Writes the access log to the `storysnap.access` logger."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")
        status = response.status_code

        logger.log(
            level_for_status(status),
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
