import pytest

from app.core.exceptions import BookingConflictError, BookingPermissionError, BookingValidationError
from app.services.scheduling.lifecycle import (
    ActorRole,
    BookingStatus,
    actor_roles,
    ensure_transition_allowed,
    initial_status,
)

OWNER = {ActorRole.OWNER}
CLIENT = {ActorRole.CLIENT}


def test_initial_status_follows_approval_flag():
    assert initial_status(True) is BookingStatus.PENDING
    assert initial_status(False) is BookingStatus.CONFIRMED


def test_actor_roles():
    assert actor_roles(1, client_id=1, owner_id=2) == CLIENT
    assert actor_roles(2, client_id=1, owner_id=2) == OWNER
    assert actor_roles(3, client_id=1, owner_id=2) == set()
    assert actor_roles(1, client_id=1, owner_id=1) == {ActorRole.CLIENT, ActorRole.OWNER}


def test_owner_approves_and_completes():
    assert ensure_transition_allowed("pending", "confirmed", OWNER) is BookingStatus.CONFIRMED
    assert ensure_transition_allowed("confirmed", "completed", OWNER) is BookingStatus.COMPLETED


def test_client_cannot_approve_or_complete():
    with pytest.raises(BookingPermissionError):
        ensure_transition_allowed("pending", "confirmed", CLIENT)
    with pytest.raises(BookingPermissionError):
        ensure_transition_allowed("confirmed", "completed", CLIENT)


@pytest.mark.parametrize("current", ["pending", "confirmed"])
@pytest.mark.parametrize("roles", [OWNER, CLIENT])
def test_either_party_may_cancel(current, roles):
    assert ensure_transition_allowed(current, "cancelled", roles) is BookingStatus.CANCELLED


def test_cancelling_twice_is_rejected():
    with pytest.raises(BookingConflictError, match="already cancelled"):
        ensure_transition_allowed("cancelled", "cancelled", OWNER)


def test_terminal_states_do_not_move():
    with pytest.raises(BookingConflictError):
        ensure_transition_allowed("completed", "cancelled", OWNER)
    with pytest.raises(BookingConflictError):
        ensure_transition_allowed("cancelled", "confirmed", OWNER)


def test_no_regression_to_pending():
    with pytest.raises(BookingValidationError, match="back to pending"):
        ensure_transition_allowed("confirmed", "pending", OWNER)


def test_pending_cannot_jump_to_completed():
    with pytest.raises(BookingValidationError, match="approved"):
        ensure_transition_allowed("pending", "completed", OWNER)


def test_unknown_status_is_a_validation_error():
    with pytest.raises(BookingValidationError, match="Invalid status"):
        ensure_transition_allowed("pending", "archived", OWNER)
