"""Request logging middleware."""

import logging
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

logger = logging.getLogger(__name__)

SLOW_REQUEST_SECONDS = 1.0


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id and logs its outcome and duration.

    The id comes from ``X-Request-ID`` when the caller sends one and is echoed
    back, so a guest's support ticket can be matched to the settlement logs.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                f"{request.method} {request.url.path} failed after "
                f"{time.perf_counter() - started:.3f}s (request_id={request_id})"
            )
            raise

        elapsed = time.perf_counter() - started
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{elapsed:.3f}s"

        if elapsed > SLOW_REQUEST_SECONDS:
            logger.warning(
                f"Slow request {request.method} {request.url.path} -> {response.status_code} "
                f"in {elapsed:.3f}s (request_id={request_id})"
            )
        else:
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code} "
                f"in {elapsed:.3f}s (request_id={request_id})"
            )
        return response
