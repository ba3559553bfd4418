from uuid import UUID

from app.src.db import Booking, Destination, Seat, sessionMaker
from app.src.enums import BookingStatus
from conftest import load


def disable(model, **filters):
    with sessionMaker() as session:
        session.query(model).filter_by(**filters).update({model.active: False})
        session.commit()


def test_create_booking(client, passenger, auditLog):
    response = client.post("/public/booking", data=passenger)

    assert response.status_code == 201, response.text
    body = response.json()
    assert body["status"] == "pending"
    assert body["amount"] == 80
    assert body["seat_number"] == 1
    assert load(Booking, UUID(body["id"])).email == "ama@example.com"
    assert auditLog[-1]["_app_id"] == 2


def test_booking_a_taken_seat(client, passenger):
    client.post("/public/booking", data=passenger)

    response = client.post("/public/booking", data={**passenger, "full_name": "Yaw"})

    assert response.status_code == 409
    assert response.headers["X-Error"] == "SeatTaken"


def test_booking_an_inactive_seat(client, passenger, seed):
    disable(Seat, bus_id=seed["bus_id"], seat_number=1)

    response = client.post("/public/booking", data=passenger)

    assert response.status_code == 412
    assert response.headers["X-Error"] == "SeatInactive"
    with sessionMaker() as session:
        assert session.query(Booking).count() == 0


def test_booking_an_inactive_destination(client, passenger, seed):
    disable(Destination, id=seed["destination_id"])

    response = client.post("/public/booking", data=passenger)

    assert response.status_code == 412
    assert response.headers["X-Error"] == "InactiveResource"


def test_booking_an_unknown_bus(client, passenger):
    response = client.post("/public/booking", data={**passenger, "bus_id": 999})

    assert response.status_code == 404


def test_booking_with_invalid_passenger_class(client, passenger):
    response = client.post(
        "/public/booking", data={**passenger, "passenger_class": "500"}
    )

    assert response.status_code == 422


def test_admin_marks_booking_paid(client, passenger, adminHeaders, smsOutbox):
    bookingId = client.post("/public/booking", data=passenger).json()["id"]

    response = client.patch(
        "/admin/booking",
        headers=adminHeaders,
        data={"id": bookingId, "status": "paid"},
    )

    assert response.status_code == 200, response.text
    assert response.json()["status"] == "paid"
    assert len(smsOutbox) == 1
    assert smsOutbox[0]["to"] == "233241234567"
    assert "Main Campus -> Kumasi" in smsOutbox[0]["content"]
    assert f"Ref: {bookingId[:8]}" in smsOutbox[0]["content"]


def test_status_change_returns_the_stored_booking(
    client, passenger, adminHeaders, smsOutbox
):
    bookingId = client.post("/public/booking", data=passenger).json()["id"]

    for newStatus in ["cancelled", "pending", "paid", "cancelled"]:
        response = client.patch(
            "/admin/booking",
            headers=adminHeaders,
            data={"id": bookingId, "status": newStatus},
        )
        assert response.status_code == 200, response.text
        assert response.json()["status"] == newStatus
        assert response.json()["updated_on"] is not None

    webhook = client.post(
        "/public/payment/hubtel/webhook",
        json={"status": "Success", "clientReference": bookingId},
    )
    assert webhook.status_code == 200
    assert len(smsOutbox) == 1


def test_admin_cannot_move_paid_back_to_pending(client, passenger, adminHeaders):
    bookingId = client.post("/public/booking", data=passenger).json()["id"]
    client.patch(
        "/admin/booking", headers=adminHeaders, data={"id": bookingId, "status": "paid"}
    )

    response = client.patch(
        "/admin/booking",
        headers=adminHeaders,
        data={"id": bookingId, "status": "pending"},
    )

    assert response.status_code == 406
    assert response.headers["X-Error"] == "InvalidStateTransition"


def test_admin_cancel_releases_the_seat(client, passenger, adminHeaders, smsOutbox):
    bookingId = client.post("/public/booking", data=passenger).json()["id"]

    response = client.patch(
        "/admin/booking",
        headers=adminHeaders,
        data={"id": bookingId, "status": "cancelled"},
    )

    assert response.status_code == 200
    assert client.post("/public/booking", data=passenger).status_code == 201
    assert smsOutbox == []


def test_admin_restore_on_a_rebooked_seat(client, passenger, adminHeaders):
    bookingId = client.post("/public/booking", data=passenger).json()["id"]
    client.patch(
        "/admin/booking",
        headers=adminHeaders,
        data={"id": bookingId, "status": "cancelled"},
    )
    client.post("/public/booking", data=passenger)

    response = client.patch(
        "/admin/booking",
        headers=adminHeaders,
        data={"id": bookingId, "status": "pending"},
    )

    assert response.status_code == 409
    assert load(Booking, UUID(bookingId)).status == BookingStatus.CANCELLED.value


def test_admin_lists_bookings(client, passenger, adminHeaders):
    client.post("/public/booking", data=passenger)
    client.post(
        "/public/booking",
        data={**passenger, "seat_number": 2, "full_name": "Kwame Boateng"},
    )

    everything = client.get("/admin/booking", headers=adminHeaders)
    searched = client.get(
        "/admin/booking", headers=adminHeaders, params={"search": "kwame"}
    )
    paid = client.get(
        "/admin/booking", headers=adminHeaders, params={"status": "paid"}
    )

    assert len(everything.json()) == 2
    assert [b["full_name"] for b in searched.json()] == ["Kwame Boateng"]
    assert paid.json() == []


def test_booking_list_requires_a_token(client):
    response = client.get(
        "/admin/booking", headers={"Authorization": "Bearer not-a-token"}
    )

    assert response.status_code == 401
