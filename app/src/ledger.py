"""
Booking ledger.

Seat allocation relies on the partial unique index `idx_unique_active_booking`
of the booking table. Bookings are inserted without a prior availability
check and a violation of the index is reported as `SeatTaken`, so two
concurrent requests for one seat can never both succeed, whichever process or
instance serves them.
"""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.session import Session

from app.src import exceptions, validators
from app.src.db import ACTIVE_BOOKING_INDEX, Booking, Seat
from app.src.enums import BookingStatus


# Status changes available to the back office
BOOKING_STATUS_TRANSITION = {
    BookingStatus.PENDING.value: [
        BookingStatus.PAID.value,
        BookingStatus.CANCELLED.value,
    ],
    BookingStatus.CANCELLED.value: [BookingStatus.PENDING.value],
    BookingStatus.PAID.value: [BookingStatus.CANCELLED.value],
}


def isSeatConflict(e: IntegrityError) -> bool:
    """Check whether an integrity error comes from the seat allocation index."""
    table = Booking.__tablename__
    return exceptions.violatesIndex(
        e, ACTIVE_BOOKING_INDEX, [f"{table}.bus_id", f"{table}.seat_number"]
    )


def _commitSeatHolding(session: Session) -> None:
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        if isSeatConflict(e):
            raise exceptions.SeatTaken()
        raise


def attemptBooking(
    session: Session, busId: int, seatNumber: int, details: dict
) -> Booking:
    """
    Create a pending booking for a seat.

    Args:
        session (Session): Active SQLAlchemy session, committed on success.
        busId (int): The bus to book on.
        seatNumber (int): The seat number within the bus.
        details (dict): Remaining `Booking` columns (passenger, catalog
            references and the amount).

    Returns:
        Booking: The committed booking, always in `pending` status.

    Raises:
        exceptions.SeatInactive: The seat does not exist or is disabled.
            Raised before anything is written.
        exceptions.SeatTaken: Another pending or paid booking holds the seat.
    """
    seat = (
        session.query(Seat)
        .filter(Seat.bus_id == busId, Seat.seat_number == seatNumber)
        .first()
    )
    if seat is None or not seat.active:
        raise exceptions.SeatInactive()

    booking = Booking(
        **details,
        bus_id=busId,
        seat_number=seatNumber,
        status=BookingStatus.PENDING.value,
    )
    session.add(booking)
    _commitSeatHolding(session)
    return booking


def changeStatus(session: Session, booking: Booking, newStatus: BookingStatus) -> bool:
    """
    Move a booking to another lifecycle status and commit it.

    Cancelling releases the seat in the same update. Restoring a cancelled
    booking claims the seat again and fails with `SeatTaken` when someone
    else booked it in the meantime.

    Returns:
        bool: True if the booking has just become paid, the caller then sends
        the confirmation. Setting the current status again is a no-op.

    Raises:
        exceptions.InvalidStateTransition: The change is not allowed.
        exceptions.SeatTaken: The seat is held by another booking.
    """
    newStatus = BookingStatus(newStatus).value
    if booking.status == newStatus:
        return False
    validators.stateTransition(
        BOOKING_STATUS_TRANSITION, booking.status, newStatus, Booking.status
    )
    booking.status = newStatus
    _commitSeatHolding(session)
    return newStatus == BookingStatus.PAID.value


def cancelBooking(session: Session, booking: Booking) -> None:
    changeStatus(session, booking, BookingStatus.CANCELLED)
