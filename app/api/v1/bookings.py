# ============================================================================
# FILE: app/api/v1/bookings.py
# JWT authenticated booking endpoints - thin HTTP layer
# ============================================================================
from fastapi import APIRouter, Depends, Path, status
from typing import List, Optional, Union

from app.api.dependencies import get_current_user_id, get_booking_service
from app.schemas.booking import (
    BatchBookingResponse,
    BookingCancelRequest,
    BookingCreateRequest,
    BookingResponse,
    BookingStatusUpdateRequest,
    BookingUpdateRequest,
)
from app.services.booking.booking_service import BookingService

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=Union[BookingResponse, BatchBookingResponse]
)
def create_booking(
        request: BookingCreateRequest,
        current_user_id: int = Depends(get_current_user_id),
        service: BookingService = Depends(get_booking_service)
):
    """
    Book time on a permanent order.
    Send `slots` to book several ranges at once; each slot succeeds or fails on its own.
    """
    if request.slots:
        result = service.create_multiple_bookings(
            order_id=request.order_id,
            client_id=current_user_id,
            slots=[slot.model_dump() for slot in request.slots]
        )
        return BatchBookingResponse(
            bookings=[BookingResponse.model_validate(b) for b in result["bookings"]],
            errors=result["errors"],
            success=result["success"]
        )

    booking = service.create_booking(
        order_id=request.order_id,
        client_id=current_user_id,
        scheduled_date=request.scheduled_date,
        start_time=request.start_time,
        end_time=request.end_time,
        market_member_id=request.market_member_id,
        message=request.message
    )
    return BookingResponse.model_validate(booking)


@router.get("/my", response_model=List[BookingResponse])
def get_my_bookings(
        current_user_id: int = Depends(get_current_user_id),
        service: BookingService = Depends(get_booking_service)
):
    """Bookings you made plus bookings on orders you own"""
    return service.get_client_bookings(current_user_id)


@router.get("/order/{order_id}", response_model=List[BookingResponse])
def get_order_bookings(
        order_id: int = Path(..., description="The order ID"),
        current_user_id: int = Depends(get_current_user_id),
        service: BookingService = Depends(get_booking_service)
):
    return service.get_order_bookings(order_id)


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
        booking_id: int = Path(..., description="The booking ID"),
        current_user_id: int = Depends(get_current_user_id),
        service: BookingService = Depends(get_booking_service)
):
    return service.get_booking(booking_id)


@router.patch("/{booking_id}", response_model=BookingResponse)
def update_booking(
        request: BookingUpdateRequest,
        booking_id: int = Path(..., description="The booking ID"),
        current_user_id: int = Depends(get_current_user_id),
        service: BookingService = Depends(get_booking_service)
):
    """Move a booking to another date or time (order owner only)"""
    return service.update_booking(
        booking_id=booking_id,
        actor_id=current_user_id,
        scheduled_date=request.scheduled_date,
        start_time=request.start_time,
        end_time=request.end_time
    )


@router.patch("/{booking_id}/cancel", response_model=BookingResponse)
def cancel_booking(
        request: Optional[BookingCancelRequest] = None,
        booking_id: int = Path(..., description="The booking ID"),
        current_user_id: int = Depends(get_current_user_id),
        service: BookingService = Depends(get_booking_service)
):
    return service.cancel_booking(
        booking_id=booking_id,
        actor_id=current_user_id,
        reason=request.reason if request else None
    )


@router.patch("/{booking_id}/status", response_model=BookingResponse)
def update_booking_status(
        request: BookingStatusUpdateRequest,
        booking_id: int = Path(..., description="The booking ID"),
        current_user_id: int = Depends(get_current_user_id),
        service: BookingService = Depends(get_booking_service)
):
    """Approve, reject, complete or cancel a booking"""
    return service.update_booking_status(
        booking_id=booking_id,
        actor_id=current_user_id,
        new_status=request.status
    )
