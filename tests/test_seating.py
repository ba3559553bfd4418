from app.src import ledger, seating
from app.src.db import Bus, BusType, Seat
from app.src.enums import BookingStatus
from conftest import bookingDetails


def makeBus(session, name, seatCount):
    busType = BusType(name=f"{name} type", seat_count=seatCount)
    session.add(busType)
    session.flush()
    bus = Bus(name=name, bus_type_id=busType.id)
    session.add(bus)
    session.flush()
    seating.provisionSeats(session, bus, seatCount)
    session.commit()
    return bus


def test_seat_status_derives_from_bookings(session, seed):
    bus = makeBus(session, "ATT-02", 3)
    session.query(Seat).filter(Seat.bus_id == bus.id, Seat.seat_number == 3).update(
        {Seat.active: False}
    )
    session.commit()
    booking = ledger.attemptBooking(session, bus.id, 1, bookingDetails(seed))
    ledger.changeStatus(session, booking, BookingStatus.PAID)

    assert seating.seatStatus(session, bus.id) == [
        {"seat_number": 1, "is_active": True, "status": "taken"},
        {"seat_number": 2, "is_active": True, "status": "available"},
        {"seat_number": 3, "is_active": False, "status": "available"},
    ]


def test_pending_booking_takes_the_seat(session, seed):
    ledger.attemptBooking(session, seed["bus_id"], 2, bookingDetails(seed))

    statuses = {s["seat_number"]: s["status"] for s in seating.seatStatus(session, seed["bus_id"])}
    assert statuses == {1: "available", 2: "taken", 3: "available", 4: "available"}


def test_cancelled_booking_frees_the_seat(session, seed):
    booking = ledger.attemptBooking(session, seed["bus_id"], 2, bookingDetails(seed))
    ledger.cancelBooking(session, booking)

    statuses = [s["status"] for s in seating.seatStatus(session, seed["bus_id"])]
    assert statuses == ["available"] * 4


def test_unknown_bus_has_no_seats(session, seed):
    assert seating.seatStatus(session, 12345) == []


def test_public_seat_map(client, session, seed):
    ledger.attemptBooking(session, seed["bus_id"], 3, bookingDetails(seed))

    response = client.get("/public/bus/seat/status", params={"bus_id": seed["bus_id"]})

    assert response.status_code == 200
    body = response.json()
    assert [s["seat_number"] for s in body] == [1, 2, 3, 4]
    assert body[2] == {"seat_number": 3, "is_active": True, "status": "taken"}
    # No passenger data on the public seat map
    assert all(set(s) == {"seat_number", "is_active", "status"} for s in body)
