# app/schemas/booking.py
from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Optional, Dict, Any, List
from datetime import date, datetime
from enum import Enum


class BookingStatusValue(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BookingSlot(BaseModel):
    """One requested time range inside a batch booking"""
    date: str = Field(..., description="Calendar date (YYYY-MM-DD)")
    start_time: str = Field(..., description="Start time (HH:MM)")
    end_time: str = Field(..., description="End time (HH:MM)")
    market_member_id: Optional[int] = Field(None, description="Specialist within a market")
    message: Optional[str] = Field(None, max_length=2000)


class BookingCreateRequest(BaseModel):
    """
    Single booking (scheduled_date/start_time/end_time) or batch (slots).
    Time format is checked by the booking service so errors share one message.
    """
    order_id: int = Field(..., description="Permanent order to book")
    scheduled_date: Optional[str] = Field(None, description="Calendar date (YYYY-MM-DD)")
    start_time: Optional[str] = Field(None, description="Start time (HH:MM)")
    end_time: Optional[str] = Field(None, description="End time (HH:MM)")
    market_member_id: Optional[int] = Field(None, description="Specialist within a market")
    message: Optional[str] = Field(None, max_length=2000, description="Note for the specialist")
    slots: Optional[List[BookingSlot]] = Field(None, description="Batch of time ranges")

    @model_validator(mode="after")
    def single_or_batch(self) -> "BookingCreateRequest":
        if self.slots:
            return self
        if not (self.scheduled_date and self.start_time and self.end_time):
            raise ValueError("Provide scheduled_date, start_time and end_time, or a non-empty slots list")
        return self


class BookingUpdateRequest(BaseModel):
    scheduled_date: Optional[str] = Field(None, description="New date (YYYY-MM-DD)")
    start_time: Optional[str] = Field(None, description="New start time (HH:MM)")
    end_time: Optional[str] = Field(None, description="New end time (HH:MM)")


class BookingCancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class BookingStatusUpdateRequest(BaseModel):
    status: str = Field(..., description="pending, confirmed, completed or cancelled")


class BookingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: int
    client_id: int
    market_member_id: Optional[int] = None
    scheduled_date: date
    start_time: str
    end_time: str
    status: BookingStatusValue
    message: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None


class BookingSlotError(BaseModel):
    slot: Dict[str, Any]
    error: str


class BatchBookingResponse(BaseModel):
    bookings: List[BookingResponse] = Field(default_factory=list)
    errors: List[BookingSlotError] = Field(default_factory=list)
    success: bool
