# app/core/middleware.py
"""HTTP middleware: request correlation and access logging"""
import uuid
import time
import logging
from starlette.requests import Request

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


async def correlation_id_middleware(request: Request, call_next):
    """Attach a correlation ID to the request so booking logs can be traced"""
    correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
    request.state.correlation_id = correlation_id

    response = await call_next(request)
    response.headers[CORRELATION_HEADER] = correlation_id
    return response


async def request_logging_middleware(request: Request, call_next):
    """Log every request with its status and duration"""
    start_time = time.time()
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    try:
        response = await call_next(request)
    except Exception:
        logger.exception(
            f"Unhandled error on {request.method} {request.url.path}",
            extra={"correlation_id": correlation_id},
        )
        raise

    duration_ms = round((time.time() - start_time) * 1000, 2)
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms}ms)",
        extra={
            "correlation_id": correlation_id,
            "method": request.method,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
            "client": request.client.host if request.client else "unknown",
        }
    )

    return response
