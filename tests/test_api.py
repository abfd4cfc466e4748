import pytest
from datetime import date

from fastapi.testclient import TestClient

from app.api.dependencies import create_access_token, get_notifier, get_subscription_checker
from app.config.database import get_db
from app.main import app
from tests.factories import make_booking, make_order, make_user, weekly_schedule

# Far enough ahead that "today" never catches up; 2030-06-03 is a Monday
MONDAY = "2030-06-03"


@pytest.fixture
def api(db, notifier, subscriptions):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_subscription_checker] = lambda: subscriptions
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def auth(user):
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def owner(db):
    return make_user(db, "Sam Specialist")


@pytest.fixture
def client_user(db):
    return make_user(db, "Alex Client")


@pytest.fixture
def order(db, owner):
    return make_order(db, owner)


def post_booking(api, user, order, start, end, on=MONDAY):
    return api.post(
        "/api/v1/bookings",
        json={"order_id": order.id, "scheduled_date": on, "start_time": start, "end_time": end},
        headers=auth(user),
    )


def test_create_booking(api, notifier, order, client_user):
    response = post_booking(api, client_user, order, "10:00", "11:00")

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "confirmed"
    assert body["scheduled_date"] == MONDAY
    assert body["client_id"] == client_user.id
    assert notifier.kinds() == ["new_booking"]


def test_conflict_maps_to_409(api, db, order, client_user):
    post_booking(api, client_user, order, "10:00", "11:00")

    response = post_booking(api, make_user(db, "Other"), order, "10:30", "11:30")

    assert response.status_code == 409
    assert response.json() == {
        "detail": "Time range conflicts with an existing booking",
        "error": "conflict_error",
    }


def test_validation_error_maps_to_400(api, order, client_user):
    response = post_booking(api, client_user, order, "18:00", "19:00")

    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


def test_missing_order_maps_to_404(api, client_user):
    response = api.post(
        "/api/v1/bookings",
        json={"order_id": 999, "scheduled_date": MONDAY, "start_time": "10:00", "end_time": "11:00"},
        headers=auth(client_user),
    )

    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


def test_incomplete_body_is_rejected(api, order, client_user):
    response = api.post("/api/v1/bookings", json={"order_id": order.id}, headers=auth(client_user))

    assert response.status_code == 422


def test_batch_booking(api, order, client_user):
    response = api.post(
        "/api/v1/bookings",
        json={
            "order_id": order.id,
            "slots": [
                {"date": MONDAY, "start_time": "10:00", "end_time": "11:00"},
                {"date": MONDAY, "start_time": "10:00", "end_time": "11:00"},
            ],
        },
        headers=auth(client_user),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert len(body["bookings"]) == 1
    assert body["errors"][0]["error"] == "Time range conflicts with an existing booking"


def test_token_required(api, order):
    response = api.post(
        "/api/v1/bookings",
        json={"order_id": order.id, "scheduled_date": MONDAY, "start_time": "10:00", "end_time": "11:00"},
    )

    assert response.status_code in (401, 403)


def test_bad_token_rejected(api):
    response = api.get("/api/v1/bookings/my", headers={"Authorization": "Bearer not-a-token"})

    assert response.status_code == 401


def test_my_bookings(api, db, order, client_user):
    post_booking(api, client_user, order, "10:00", "11:00")

    response = api.get("/api/v1/bookings/my", headers=auth(client_user))

    assert response.status_code == 200
    assert [b["start_time"] for b in response.json()] == ["10:00"]


def test_cancel_then_cancel_again(api, order, client_user):
    booking_id = post_booking(api, client_user, order, "10:00", "11:00").json()["id"]

    first = api.patch(f"/api/v1/bookings/{booking_id}/cancel", headers=auth(client_user))
    second = api.patch(f"/api/v1/bookings/{booking_id}/cancel", headers=auth(client_user))

    assert first.status_code == 200
    assert first.json()["status"] == "cancelled"
    assert second.status_code == 409


def test_status_change_permission(api, owner, order, client_user):
    booking_id = post_booking(api, client_user, order, "10:00", "11:00").json()["id"]

    denied = api.patch(
        f"/api/v1/bookings/{booking_id}/status", json={"status": "completed"}, headers=auth(client_user)
    )
    allowed = api.patch(
        f"/api/v1/bookings/{booking_id}/status", json={"status": "completed"}, headers=auth(owner)
    )

    assert denied.status_code == 403
    assert denied.json()["error"] == "authorization_error"
    assert allowed.json()["status"] == "completed"


def test_available_slots_are_public(api, order):
    response = api.get(
        f"/api/v1/orders/{order.id}/available-slots",
        params={"start_date": MONDAY, "end_date": "2030-06-09"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["mode"] == "weekly"
    assert len(body["available_days"]) == 5


def test_schedule_update(api, db, owner, order, client_user):
    booking = make_booking(db, order, client_user, date(2030, 6, 3), "10:00", "11:00")

    response = api.put(
        f"/api/v1/orders/{order.id}/schedule",
        json={"weekly_schedule": weekly_schedule(days=("tuesday",))},
        headers=auth(owner),
    )

    assert response.status_code == 200
    assert response.json()["weekly_schedule"]["monday"]["enabled"] is False
    db.expire_all()
    assert db.get(type(booking), booking.id).status == "cancelled"


def test_schedule_update_by_stranger(api, order, client_user):
    response = api.put(
        f"/api/v1/orders/{order.id}/schedule",
        json={"available_dates": []},
        headers=auth(client_user),
    )

    assert response.status_code == 403


def test_health(api):
    assert api.get("/health/").json()["status"] == "healthy"


def test_available_slots_range_is_capped(api, order):
    response = api.get(
        f"/api/v1/orders/{order.id}/available-slots",
        params={"start_date": MONDAY, "end_date": "2300-01-01"},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"
