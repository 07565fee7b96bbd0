"""Request logging middleware.

Binds a request id to the logging context and logs every completed
request with its status and duration.
"""

from __future__ import annotations

import time
from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from shared.observability import LogContext, get_logger, log_request

logger = get_logger(__name__)

REQUEST_ID_HEADER = "x-request-id"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Correlates log lines of one request and records its outcome."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex

        async with LogContext(request_id=request_id):
            start = time.perf_counter()
            response = await call_next(request)
            log_request(
                logger,
                request.method,
                request.url.path,
                response.status_code,
                (time.perf_counter() - start) * 1000,
                client_ip=request.client.host if request.client else None,
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
