# app/services/scheduling/lifecycle.py
"""Booking status state machine and who may drive it"""
import enum
from typing import Dict, FrozenSet, Set

from app.core.exceptions import (
    BookingConflictError,
    BookingPermissionError,
    BookingValidationError,
)


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ActorRole(str, enum.Enum):
    CLIENT = "client"  # the user who made the booking
    OWNER = "owner"    # the user who owns the order


# Statuses that hold time on an order's calendar
OCCUPYING_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value, BookingStatus.COMPLETED.value)

# Statuses a schedule edit can still invalidate
SCHEDULE_SENSITIVE_STATUSES = (BookingStatus.CONFIRMED.value, BookingStatus.PENDING.value)

TERMINAL_STATUSES = frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED})

_BOTH = frozenset({ActorRole.OWNER, ActorRole.CLIENT})
_OWNER = frozenset({ActorRole.OWNER})

# current -> {target: roles allowed to make that move}
TRANSITIONS: Dict[BookingStatus, Dict[BookingStatus, FrozenSet[ActorRole]]] = {
    BookingStatus.PENDING: {
        BookingStatus.CONFIRMED: _OWNER,    # approve
        BookingStatus.CANCELLED: _BOTH,     # reject (owner) or withdraw (client)
    },
    BookingStatus.CONFIRMED: {
        BookingStatus.COMPLETED: _OWNER,
        BookingStatus.CANCELLED: _BOTH,
    },
    BookingStatus.COMPLETED: {},
    BookingStatus.CANCELLED: {},
}


def initial_status(requires_approval: bool) -> BookingStatus:
    return BookingStatus.PENDING if requires_approval else BookingStatus.CONFIRMED


def parse_status(value) -> BookingStatus:
    try:
        return BookingStatus(value)
    except ValueError:
        valid = ", ".join(s.value for s in BookingStatus)
        raise BookingValidationError(f"Invalid status. Must be one of: {valid}")


def actor_roles(actor_id: int, client_id: int, owner_id: int) -> Set[ActorRole]:
    """Roles the actor holds on a booking. A user booking their own order holds both."""
    roles = set()
    if actor_id == client_id:
        roles.add(ActorRole.CLIENT)
    if actor_id == owner_id:
        roles.add(ActorRole.OWNER)
    return roles


def ensure_transition_allowed(current, target, roles: Set[ActorRole]) -> BookingStatus:
    """Validate a status move; returns the parsed target status"""
    current_status = parse_status(current)
    target_status = parse_status(target)

    if current_status is BookingStatus.CANCELLED and target_status is BookingStatus.CANCELLED:
        raise BookingConflictError("Booking is already cancelled")
    if current_status in TERMINAL_STATUSES:
        raise BookingConflictError(f"Booking is already {current_status.value} and cannot change")

    allowed_roles = TRANSITIONS[current_status].get(target_status)
    if allowed_roles is None:
        if current_status is BookingStatus.PENDING:
            raise BookingValidationError(
                "Pending bookings can only be approved (confirmed) or rejected (cancelled)"
            )
        if target_status is BookingStatus.PENDING:
            raise BookingValidationError("Cannot change confirmed booking back to pending")
        raise BookingValidationError(f"Booking is already {current_status.value}")

    if not roles & allowed_roles:
        raise BookingPermissionError(
            f"You do not have permission to change this booking to {target_status.value}"
        )

    return target_status
