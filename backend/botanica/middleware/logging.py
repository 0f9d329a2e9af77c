"""
Botanica Backend — Access Logging Middleware
==============================================

What:  One access-log line per request on the `botanica.access` logger.
How:   Measures wall time around the downstream app; picks the level from
       the status code (5xx ERROR, 4xx WARNING, else INFO).

Log line:
    2024-01-15T12:00:00 [INFO] botanica.access: GET /api/plants 200 12.4ms [a1b2c3d4] from 10.0.0.7

Not logged: request bodies, query strings (search terms, OAuth codes),
Authorization headers. /health and served image files are skipped.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from botanica.middleware.request_id import request_id_var

logger = logging.getLogger("botanica.access")

_QUIET_PREFIXES = ("/health", "/api/files/")


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path.startswith(_QUIET_PREFIXES):
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")
        logger.log(
            log_level,
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
