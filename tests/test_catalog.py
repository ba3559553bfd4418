import pytest

from app.src import exceptions, ledger
from app.src.db import Bus, Destination, Seat, sessionMaker
from app.src.enums import AdminRole
from app.src.functions import commitDeletion
from conftest import bookingDetails, createAdmin, signIn


def seatFlags(busId):
    with sessionMaker() as session:
        seats = (
            session.query(Seat)
            .filter(Seat.bus_id == busId)
            .order_by(Seat.seat_number)
            .all()
        )
        return [(s.seat_number, s.active) for s in seats]


def deleteRequest(client, url, headers, id):
    return client.request("DELETE", url, headers=headers, data={"id": id})


def test_creating_a_bus_provisions_its_seats(client, adminHeaders, seed):
    busType = client.post(
        "/admin/bus/type",
        headers=adminHeaders,
        data={"name": "Sprinter", "seat_count": 3},
    ).json()

    response = client.post(
        "/admin/bus",
        headers=adminHeaders,
        data={"name": "ATT-02", "bus_type_id": busType["id"]},
    )

    assert response.status_code == 201, response.text
    assert seatFlags(response.json()["id"]) == [(1, True), (2, True), (3, True)]


def test_bus_type_seat_count_is_bounded(client, adminHeaders):
    response = client.post(
        "/admin/bus/type",
        headers=adminHeaders,
        data={"name": "Empty", "seat_count": 0},
    )

    assert response.status_code == 422


def test_bus_of_an_inactive_type(client, adminHeaders, seed):
    client.patch(
        "/admin/bus/type",
        headers=adminHeaders,
        data={"id": seed["bus_type_id"], "active": False},
    )

    response = client.post(
        "/admin/bus",
        headers=adminHeaders,
        data={"name": "ATT-03", "bus_type_id": seed["bus_type_id"]},
    )

    assert response.status_code == 412


def test_public_bus_list_hides_inactive_buses(client, adminHeaders, seed):
    client.patch(
        "/admin/bus", headers=adminHeaders, data={"id": seed["bus_id"], "active": False}
    )

    assert client.get("/public/bus").json() == []
    assert len(client.get("/admin/bus", headers=adminHeaders).json()) == 1


def test_bus_with_bookings_cannot_be_deleted(client, adminHeaders, passenger, seed):
    client.post("/public/booking", data=passenger)

    response = deleteRequest(client, "/admin/bus", adminHeaders, seed["bus_id"])

    assert response.status_code == 409
    assert response.headers["X-Error"] == "DependencyInUse"


def test_deleting_a_bus_removes_its_seats(client, adminHeaders, seed):
    response = deleteRequest(client, "/admin/bus", adminHeaders, seed["bus_id"])

    assert response.status_code == 204
    assert seatFlags(seed["bus_id"]) == []
    with sessionMaker() as session:
        assert session.get(Bus, seed["bus_id"]) is None


def test_bus_type_in_use_cannot_be_deleted(client, adminHeaders, seed):
    response = deleteRequest(client, "/admin/bus/type", adminHeaders, seed["bus_type_id"])

    assert response.status_code == 409


def test_toggle_one_seat(client, adminHeaders, seed):
    response = client.patch(
        "/admin/bus/seat",
        headers=adminHeaders,
        data={"bus_id": seed["bus_id"], "seat_number": 2, "active": False},
    )

    assert response.status_code == 200
    assert response.json()["active"] is False
    assert seatFlags(seed["bus_id"])[1] == (2, False)


def test_toggle_an_unknown_seat(client, adminHeaders, seed):
    response = client.patch(
        "/admin/bus/seat",
        headers=adminHeaders,
        data={"bus_id": seed["bus_id"], "seat_number": 40, "active": False},
    )

    assert response.status_code == 404


def test_bulk_seat_update(client, adminHeaders, seed):
    client.patch(
        "/admin/bus/seat",
        headers=adminHeaders,
        data={"bus_id": seed["bus_id"], "seat_number": 2, "active": False},
    )

    response = client.patch(
        "/admin/bus/seat/bulk",
        headers=adminHeaders,
        data={"bus_id": seed["bus_id"], "active": False},
    )

    assert response.json() == {"bus_id": seed["bus_id"], "active": False, "updated": 3}
    assert all(not active for _, active in seatFlags(seed["bus_id"]))


def test_disabling_a_seat_keeps_its_booking(client, adminHeaders, passenger, seed):
    client.post("/public/booking", data=passenger)

    client.patch(
        "/admin/bus/seat",
        headers=adminHeaders,
        data={"bus_id": seed["bus_id"], "seat_number": 1, "active": False},
    )

    seatMap = client.get("/public/bus/seat/status", params={"bus_id": seed["bus_id"]})
    assert seatMap.json()[0] == {"seat_number": 1, "is_active": False, "status": "taken"}


def test_destination_lifecycle(client, adminHeaders):
    created = client.post(
        "/admin/destination",
        headers=adminHeaders,
        data={"name": "Accra", "price": "120.50"},
    )
    destinationId = created.json()["id"]
    updated = client.patch(
        "/admin/destination",
        headers=adminHeaders,
        data={"id": destinationId, "price": "130"},
    )
    deleted = deleteRequest(client, "/admin/destination", adminHeaders, destinationId)

    assert created.status_code == 201
    assert created.json()["price"] == 120.5
    assert updated.json()["price"] == 130
    assert deleted.status_code == 204
    assert client.get("/public/destination").json() == []


def test_public_catalog_lists_active_rows_by_name(client, adminHeaders):
    for name in ["Tamale", "Accra", "Cape Coast"]:
        client.post(
            "/admin/destination", headers=adminHeaders, data={"name": name, "price": 50}
        )
    client.post(
        "/admin/destination",
        headers=adminHeaders,
        data={"name": "Ho", "price": 50, "active": False},
    )

    names = [d["name"] for d in client.get("/public/destination").json()]

    assert names == ["Accra", "Cape Coast", "Tamale"]


def test_price_change_keeps_booked_amounts(client, adminHeaders, passenger, seed):
    bookingId = client.post("/public/booking", data=passenger).json()["id"]

    client.patch(
        "/admin/destination",
        headers=adminHeaders,
        data={"id": seed["destination_id"], "price": 95},
    )

    booking = client.get(
        "/admin/booking", headers=adminHeaders, params={"id": bookingId}
    ).json()[0]
    assert booking["amount"] == 80


def test_referenced_destination_cannot_be_deleted(client, adminHeaders, passenger, seed):
    client.post("/public/booking", data=passenger)

    response = deleteRequest(
        client, "/admin/destination", adminHeaders, seed["destination_id"]
    )

    assert response.status_code == 409


def test_duplicate_pickup_point(client, adminHeaders, seed):
    response = client.post(
        "/admin/pickup_point", headers=adminHeaders, data={"name": "Main Campus"}
    )

    assert response.status_code == 409
    assert response.headers["X-Error"] == "UniqueViolation"


def test_pickup_point_and_referral_lists(client, adminHeaders, seed):
    client.post("/admin/pickup_point", headers=adminHeaders, data={"name": "Adum"})
    client.patch(
        "/admin/referral",
        headers=adminHeaders,
        data={"id": seed["referral_id"], "active": False},
    )

    pickupPoints = [p["name"] for p in client.get("/public/pickup_point").json()]
    referrals = client.get("/public/referral").json()

    assert pickupPoints == ["Adum", "Main Campus"]
    assert referrals == []


def test_referenced_referral_cannot_be_deleted(client, adminHeaders, passenger, seed):
    client.post(
        "/public/booking", data={**passenger, "referral_id": seed["referral_id"]}
    )

    response = deleteRequest(client, "/admin/referral", adminHeaders, seed["referral_id"])

    assert response.status_code == 409


def test_catalog_changes_need_a_token(client, session, seed):
    createAdmin(session, "ops@atttransport.com", AdminRole.ADMIN)
    headers = signIn(client, "ops@atttransport.com")

    allowed = client.post("/admin/pickup_point", headers=headers, data={"name": "Adum"})
    anonymous = client.post("/admin/pickup_point", data={"name": "Kejetia"})

    assert allowed.status_code == 201
    assert anonymous.status_code in (401, 403)


def test_reference_added_after_the_check_still_blocks_deletion(session, seed):
    ledger.attemptBooking(session, seed["bus_id"], 1, bookingDetails(seed))
    session.delete(session.get(Destination, seed["destination_id"]))

    with pytest.raises(exceptions.DependencyInUse):
        commitDeletion(session, Destination)

    with sessionMaker() as other:
        assert other.get(Destination, seed["destination_id"]) is not None
