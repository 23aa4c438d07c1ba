"""
Request middleware: correlation ids, timing and request timeouts.
"""
import time
import uuid
import asyncio
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from fastapi import status
from fastapi.responses import JSONResponse

from correlab.core.errors import ErrorCodes, get_error_response
from correlab.core.performance import PerformanceMonitor

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """Tag every request and its log records with a correlation id."""

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        old_factory = logging.getLogRecordFactory()

        def record_factory(*args, **kwargs):
            record = old_factory(*args, **kwargs)
            record.correlation_id = correlation_id
            return record

        logging.setLogRecordFactory(record_factory)
        started = time.perf_counter()
        logger.info(f"Request started: {request.method} {request.url.path}")

        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.perf_counter() - started
            logger.error(
                f"Request failed: {request.method} {request.url.path} - {e} ({duration:.3f}s)",
                exc_info=True
            )
            body = get_error_response(ErrorCodes.UNKNOWN_ERROR)
            body["correlation_id"] = correlation_id
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=body,
                headers={CORRELATION_HEADER: correlation_id}
            )
        finally:
            logging.setLogRecordFactory(old_factory)

        duration = time.perf_counter() - started
        PerformanceMonitor.record_metric(
            "request_duration",
            duration,
            {"method": request.method, "path": request.url.path, "status_code": response.status_code}
        )
        response.headers[CORRELATION_HEADER] = correlation_id
        response.headers["X-Response-Time"] = f"{duration:.3f}"
        logger.info(
            f"Request completed: {request.method} {request.url.path} - {response.status_code} ({duration:.3f}s)",
            extra={"status_code": response.status_code, "duration": duration}
        )
        return response


class TimeoutMiddleware(BaseHTTPMiddleware):
    """Abort requests that run longer than the configured limit."""

    def __init__(self, app, timeout_seconds: float):
        super().__init__(app)
        self.timeout_seconds = timeout_seconds

    async def dispatch(self, request: Request, call_next):
        try:
            return await asyncio.wait_for(call_next(request), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            correlation_id = getattr(request.state, 'correlation_id', 'unknown')
            logger.error(f"Request timeout after {self.timeout_seconds} seconds: {request.url.path}")
            body = get_error_response(ErrorCodes.TIMEOUT)
            body['correlation_id'] = correlation_id
            return JSONResponse(
                status_code=status.HTTP_504_GATEWAY_TIMEOUT,
                content=body,
                headers={CORRELATION_HEADER: correlation_id}
            )
