import threading

import pytest

from app.src import exceptions, ledger
from app.src.db import Booking, Seat, sessionMaker
from app.src.enums import BookingStatus
from conftest import bookingDetails, load


def activeBookings(busId, seatNumber):
    with sessionMaker() as session:
        return (
            session.query(Booking)
            .filter(
                Booking.bus_id == busId,
                Booking.seat_number == seatNumber,
                Booking.status.in_(["pending", "paid"]),
            )
            .count()
        )


def test_booking_starts_pending(session, seed):
    booking = ledger.attemptBooking(session, seed["bus_id"], 1, bookingDetails(seed))

    stored = load(Booking, booking.id)
    assert stored.status == BookingStatus.PENDING.value
    assert stored.seat_number == 1
    assert float(stored.amount) == 80


def test_second_booking_of_a_seat_is_refused(session, seed):
    ledger.attemptBooking(session, seed["bus_id"], 2, bookingDetails(seed))

    with pytest.raises(exceptions.SeatTaken):
        ledger.attemptBooking(session, seed["bus_id"], 2, bookingDetails(seed))
    assert activeBookings(seed["bus_id"], 2) == 1


def test_other_seats_stay_bookable(session, seed):
    ledger.attemptBooking(session, seed["bus_id"], 1, bookingDetails(seed))
    ledger.attemptBooking(session, seed["bus_id"], 2, bookingDetails(seed))

    assert activeBookings(seed["bus_id"], 1) == 1
    assert activeBookings(seed["bus_id"], 2) == 1


def test_inactive_seat_is_refused_without_writing(session, seed):
    seat = (
        session.query(Seat)
        .filter(Seat.bus_id == seed["bus_id"], Seat.seat_number == 3)
        .first()
    )
    seat.active = False
    session.commit()

    with pytest.raises(exceptions.SeatInactive):
        ledger.attemptBooking(session, seed["bus_id"], 3, bookingDetails(seed))
    session.rollback()

    with sessionMaker() as other:
        assert other.query(Booking).count() == 0


def test_unknown_seat_is_refused(session, seed):
    with pytest.raises(exceptions.SeatInactive):
        ledger.attemptBooking(session, seed["bus_id"], 99, bookingDetails(seed))
    session.rollback()


def test_cancelling_releases_the_seat(session, seed):
    first = ledger.attemptBooking(session, seed["bus_id"], 1, bookingDetails(seed))
    ledger.cancelBooking(session, first)

    second = ledger.attemptBooking(session, seed["bus_id"], 1, bookingDetails(seed))
    assert second.status == BookingStatus.PENDING.value
    assert load(Booking, first.id).status == BookingStatus.CANCELLED.value


def test_restoring_a_cancelled_booking_on_a_taken_seat_is_refused(session, seed):
    first = ledger.attemptBooking(session, seed["bus_id"], 1, bookingDetails(seed))
    ledger.cancelBooking(session, first)
    ledger.attemptBooking(session, seed["bus_id"], 1, bookingDetails(seed))
    firstId = first.id

    with pytest.raises(exceptions.SeatTaken):
        ledger.changeStatus(session, first, BookingStatus.PENDING)
    assert load(Booking, firstId).status == BookingStatus.CANCELLED.value


def test_restoring_a_cancelled_booking_on_a_free_seat(session, seed):
    booking = ledger.attemptBooking(session, seed["bus_id"], 1, bookingDetails(seed))
    ledger.cancelBooking(session, booking)

    assert ledger.changeStatus(session, booking, BookingStatus.PENDING) is False
    assert load(Booking, booking.id).status == BookingStatus.PENDING.value


def test_change_status_reports_the_move_to_paid_once(session, seed):
    booking = ledger.attemptBooking(session, seed["bus_id"], 1, bookingDetails(seed))

    assert ledger.changeStatus(session, booking, BookingStatus.PAID) is True
    assert ledger.changeStatus(session, booking, BookingStatus.PAID) is False


def test_paid_booking_cannot_return_to_pending(session, seed):
    booking = ledger.attemptBooking(session, seed["bus_id"], 1, bookingDetails(seed))
    ledger.changeStatus(session, booking, BookingStatus.PAID)

    with pytest.raises(exceptions.InvalidStateTransition):
        ledger.changeStatus(session, booking, BookingStatus.PENDING)


def test_concurrent_bookings_of_one_seat(seed):
    barrier = threading.Barrier(2)
    outcomes = []
    lock = threading.Lock()

    def book():
        session = sessionMaker()
        try:
            barrier.wait()
            ledger.attemptBooking(session, seed["bus_id"], 4, bookingDetails(seed))
            result = "booked"
        except exceptions.SeatTaken:
            result = "taken"
        finally:
            session.close()
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=book) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    assert sorted(outcomes) == ["booked", "taken"]
    assert activeBookings(seed["bus_id"], 4) == 1
