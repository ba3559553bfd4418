"""
Seat registry and seat availability.

The availability of a seat is never stored. It is derived on every read from
the seat rows of the bus and the bookings that currently hold a seat, so it
always agrees with the partial unique index on the booking table.
"""

from typing import List
from sqlalchemy import case, exists
from sqlalchemy.orm.session import Session

from app.src.db import ACTIVE_BOOKING_STATUSES, Booking, Bus, Seat
from app.src.enums import SeatStatus


def provisionSeats(session: Session, bus: Bus, seatCount: int) -> List[Seat]:
    """
    Add one active seat per seat number from 1 to `seatCount` to a bus.

    The seats are only added to the session, the caller commits them together
    with the bus so a bus never exists without its seats.
    """
    seats = [
        Seat(bus_id=bus.id, seat_number=seatNumber, active=True)
        for seatNumber in range(1, seatCount + 1)
    ]
    session.add_all(seats)
    return seats


def seatStatus(session: Session, busId: int) -> List[dict]:
    """
    Report every seat of a bus with its active flag and booking status.

    A seat is `taken` when a pending or paid booking exists for it, otherwise
    it is `available`. Inactive seats keep their real status, callers combine
    both fields to decide whether a seat can be offered.

    Args:
        session (Session): Active SQLAlchemy session.
        busId (int): The bus to report on.

    Returns:
        List[dict]: `{"seat_number", "is_active", "status"}` per seat, ordered
        by seat number. Empty for an unknown bus. No passenger data is read.

    Example:
        >>> seatStatus(session, 1)
        [{'seat_number': 1, 'is_active': True, 'status': 'taken'},
         {'seat_number': 2, 'is_active': True, 'status': 'available'}]
    """
    holdsSeat = exists().where(
        Booking.bus_id == Seat.bus_id,
        Booking.seat_number == Seat.seat_number,
        Booking.status.in_(ACTIVE_BOOKING_STATUSES),
    )
    rows = (
        session.query(
            Seat.seat_number,
            Seat.active,
            case(
                (holdsSeat, SeatStatus.TAKEN.value),
                else_=SeatStatus.AVAILABLE.value,
            ).label("status"),
        )
        .filter(Seat.bus_id == busId)
        .order_by(Seat.seat_number.asc())
        .all()
    )
    return [
        {"seat_number": seatNumber, "is_active": bool(active), "status": status}
        for seatNumber, active, status in rows
    ]
