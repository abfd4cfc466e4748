# ============================================================================
# FILE: app/api/v1/orders.py
# Order availability and schedule endpoints
# ============================================================================
from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional

from app.api.dependencies import get_current_user_id, get_order_schedule_service
from app.config.database import get_db
from app.schemas.schedule import ScheduleUpdateRequest
from app.services.availability.availability_service import AvailabilityService
from app.services.order.order_schedule_service import UNSET, OrderScheduleService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("/{order_id}/available-slots")
def get_available_slots(
        order_id: int = Path(..., description="The order ID"),
        start_date: Optional[date] = Query(None, description="First date to include (defaults to today)"),
        end_date: Optional[date] = Query(None, description="Last date to include"),
        market_member_id: Optional[int] = Query(None, description="Only count this specialist's bookings"),
        db: Session = Depends(get_db)
):
    """
    Bookable days for a permanent order.
    Public: clients browse availability before signing in.
    """
    return AvailabilityService.get_available_slots(
        db=db,
        order_id=order_id,
        start_date=start_date,
        end_date=end_date,
        market_member_id=market_member_id
    )


@router.put("/{order_id}/schedule")
def update_order_schedule(
        request: ScheduleUpdateRequest,
        order_id: int = Path(..., description="The order ID"),
        current_user_id: int = Depends(get_current_user_id),
        service: OrderScheduleService = Depends(get_order_schedule_service)
):
    """
    Replace the weekly schedule and/or legacy available dates (order owner only).
    Future bookings that lose their time are cancelled; past ones block the edit.
    """
    sent = request.model_fields_set
    order = service.update_order_schedule(
        order_id=order_id,
        actor_id=current_user_id,
        weekly_schedule=request.weekly_schedule if "weekly_schedule" in sent else UNSET,
        available_dates=request.available_dates if "available_dates" in sent else UNSET
    )

    return {
        "id": order.id,
        "order_type": order.order_type,
        "status": order.status,
        "weekly_schedule": order.weekly_schedule,
        "available_dates": order.available_dates or [],
        "updated_at": order.updated_at.isoformat() if order.updated_at else None
    }
