from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import time
from typing import Callable

from utils.correlation_id import (
    CORRELATION_HEADER,
    clear_correlation_id,
    new_correlation_id,
    set_correlation_id,
)
from utils.logger import setup_logger
from utils.prometheus_metrics import get_prometheus_metrics

logger = setup_logger(__name__)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or new_correlation_id()

        request.state.correlation_id = correlation_id
        set_correlation_id(correlation_id)

        try:
            response = await call_next(request)
        finally:
            clear_correlation_id()

        response.headers[CORRELATION_HEADER] = correlation_id

        return response


class RequestTimingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()

        correlation_id = getattr(request.state, "correlation_id", None)

        response = await call_next(request)

        duration_seconds = time.perf_counter() - start_time
        duration_ms = round(duration_seconds * 1000, 2)

        logger.info(
            "Request completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
                "correlation_id": correlation_id
            }
        )

        route = request.scope.get("route")
        endpoint = getattr(route, "path", request.url.path)
        get_prometheus_metrics().record_request(
            request.method, endpoint, response.status_code, duration_seconds
        )

        response.headers["X-Request-Duration-Ms"] = str(duration_ms)

        return response
