# app/services/scheduling/time_utils.py
"""HH:MM time helpers shared by every scheduling rule"""
import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Mapping, Optional, Union

from app.core.exceptions import BookingValidationError

TIME_PATTERN = re.compile(r"([0-1][0-9]|2[0-3]):[0-5][0-9]")


def is_valid_time(value: Any) -> bool:
    return isinstance(value, str) and TIME_PATTERN.fullmatch(value) is not None


def to_minutes(value: str) -> int:
    """Minutes since midnight for an HH:MM string"""
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


@dataclass(frozen=True)
class TimeRange:
    """A same-day half-open range [start, end)"""
    start: str
    end: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TimeRange":
        return cls(start=data.get("start"), end=data.get("end"))

    def to_dict(self) -> Dict[str, str]:
        return {"start": self.start, "end": self.end}

    @property
    def label(self) -> str:
        return f"{self.start}-{self.end}"

    def __str__(self):
        return self.label


WindowLike = Union[TimeRange, Mapping[str, str]]


def _window_bounds(window: WindowLike):
    if isinstance(window, TimeRange):
        return window.start, window.end
    return window["start"], window["end"]


def within_window(start: str, end: str, window: Optional[WindowLike]) -> bool:
    """True when [start, end) is non-empty and fits inside the window"""
    if window is None:
        return False
    window_start, window_end = _window_bounds(window)
    return (
        to_minutes(start) >= to_minutes(window_start)
        and to_minutes(end) <= to_minutes(window_end)
        and to_minutes(start) < to_minutes(end)
    )


def validate_time_range(start: str, end: str) -> None:
    """Format check followed by ordering check"""
    if not is_valid_time(start) or not is_valid_time(end):
        raise BookingValidationError("Invalid time format. Use HH:MM (e.g., 09:00)")
    if to_minutes(start) >= to_minutes(end):
        raise BookingValidationError("End time must be after start time")


def parse_iso_date(value: Union[str, date]) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise BookingValidationError(f"Invalid date '{value}'. Use YYYY-MM-DD")
