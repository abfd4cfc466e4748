# app/schemas/__init__.py
from .booking import (
    BookingStatusValue,
    BookingSlot,
    BookingCreateRequest,
    BookingUpdateRequest,
    BookingCancelRequest,
    BookingStatusUpdateRequest,
    BookingResponse,
    BookingSlotError,
    BatchBookingResponse
)

from .schedule import (
    TimeRangeSchema,
    DayScheduleSchema,
    WeeklyScheduleSchema,
    ScheduleUpdateRequest,
    validate_weekly_schedule,
    validate_available_dates
)
