# app/core/exceptions.py
"""
Booking engine error taxonomy.

Services raise these; the API layer maps them to HTTP responses in one place
(see register_exception_handlers). Nothing below the API layer should raise
HTTPException directly.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class BookingEngineError(Exception):
    """Base class for every error the booking engine raises on purpose"""

    status_code = 400
    error_kind = "booking_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BookingValidationError(BookingEngineError):
    """Malformed or out-of-bounds request data. Rejected before any write."""

    status_code = 400
    error_kind = "validation_error"


class DayUnavailableError(BookingValidationError):
    """The resolved schedule exists but the requested weekday is not bookable"""

    def __init__(self, day_name: str, reason: str = "No work hours available"):
        super().__init__(f"{reason} for {day_name}")
        self.day_name = day_name


class FeatureUnavailableError(BookingValidationError):
    error_kind = "feature_unavailable"


class CapacityConfigurationError(BookingValidationError):
    error_kind = "configuration_error"


class BookingConflictError(BookingEngineError):
    """The request is well-formed but collides with existing state"""

    status_code = 409
    error_kind = "conflict_error"


class CapacityExceededError(BookingConflictError):
    error_kind = "capacity_exceeded"

    def __init__(self, maximum: int):
        super().__init__(
            f"Time slot is fully booked (maximum {maximum} concurrent bookings)"
        )
        self.maximum = maximum


class BookingPermissionError(BookingEngineError):
    status_code = 403
    error_kind = "authorization_error"


class ResourceNotFoundError(BookingEngineError):
    status_code = 404
    error_kind = "not_found"


class TransientStoreError(BookingEngineError):
    """Raised once the retry budget for a transient database error is spent"""

    status_code = 503
    error_kind = "transient_error"


async def booking_engine_error_handler(request: Request, exc: BookingEngineError):
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    logger.info(
        f"{exc.error_kind}: {exc.message}",
        extra={"correlation_id": correlation_id, "status_code": exc.status_code},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.error_kind},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the domain error -> HTTP response mapping to an app"""
    app.add_exception_handler(BookingEngineError, booking_engine_error_handler)
