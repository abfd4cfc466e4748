# app/schemas/schedule.py
from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from typing import Optional, Dict, Any, List
from datetime import date

from app.core.exceptions import BookingValidationError
from app.services.scheduling.time_utils import is_valid_time, to_minutes


class TimeRangeSchema(BaseModel):
    """HH:MM range, start strictly before end"""
    start: str = Field(..., description="Start time (HH:MM)")
    end: str = Field(..., description="End time (HH:MM)")

    @field_validator("start", "end")
    @classmethod
    def validate_time(cls, v: str) -> str:
        if not is_valid_time(v):
            raise ValueError("Time must be in HH:MM format")
        return v

    @model_validator(mode="after")
    def end_after_start(self) -> "TimeRangeSchema":
        if to_minutes(self.start) >= to_minutes(self.end):
            raise ValueError("End time must be after start time")
        return self


def _validate_exclusion_keys(v: Optional[Dict[str, List[TimeRangeSchema]]]):
    for key in (v or {}):
        try:
            date.fromisoformat(key)
        except ValueError:
            raise ValueError(f"Break exclusion key '{key}' is not a YYYY-MM-DD date")
    return v


class DayScheduleSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = Field(False, description="Whether the day accepts bookings")
    work_hours: Optional[TimeRangeSchema] = Field(None, alias="workHours")
    breaks: List[TimeRangeSchema] = Field(default_factory=list)
    break_exclusions: Optional[Dict[str, List[TimeRangeSchema]]] = Field(None, alias="breakExclusions")

    @field_validator("break_exclusions")
    @classmethod
    def validate_exclusion_keys(cls, v):
        return _validate_exclusion_keys(v)

    @model_validator(mode="after")
    def enabled_requires_work_hours(self) -> "DayScheduleSchema":
        if self.enabled and self.work_hours is None:
            raise ValueError("Work hours are required for enabled days")
        return self


class WeeklyScheduleSchema(BaseModel):
    """Per-weekday availability; missing days are closed"""
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    monday: Optional[DayScheduleSchema] = None
    tuesday: Optional[DayScheduleSchema] = None
    wednesday: Optional[DayScheduleSchema] = None
    thursday: Optional[DayScheduleSchema] = None
    friday: Optional[DayScheduleSchema] = None
    saturday: Optional[DayScheduleSchema] = None
    sunday: Optional[DayScheduleSchema] = None
    break_exclusions: Optional[Dict[str, List[TimeRangeSchema]]] = Field(None, alias="breakExclusions")

    @field_validator("break_exclusions")
    @classmethod
    def validate_exclusion_keys(cls, v):
        return _validate_exclusion_keys(v)


class ScheduleUpdateRequest(BaseModel):
    """Body of PUT /orders/{id}/schedule. Omitted fields are left untouched; null clears."""
    weekly_schedule: Optional[Dict[str, Any]] = Field(None, description="New weekly schedule, null to clear")
    available_dates: Optional[List[str]] = Field(None, description="Legacy date/time-slot strings")


def _first_error(exc: ValidationError) -> str:
    error = exc.errors()[0]
    location = ".".join(str(part) for part in error.get("loc", ()))
    message = error.get("msg", "invalid value")
    return f"{location}: {message}" if location else message


def validate_weekly_schedule(data: Any) -> WeeklyScheduleSchema:
    """Raise BookingValidationError for a malformed schedule payload"""
    if not isinstance(data, dict):
        raise BookingValidationError("Invalid weekly schedule: expected an object")
    try:
        return WeeklyScheduleSchema.model_validate(data)
    except ValidationError as e:
        raise BookingValidationError(f"Invalid weekly schedule: {_first_error(e)}")


def validate_available_dates(data: Any) -> List[str]:
    if data is None:
        return []
    if not isinstance(data, list) or not all(isinstance(item, str) for item in data):
        raise BookingValidationError("Invalid available dates: expected a list of strings")
    return data
