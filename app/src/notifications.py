import logging
from uuid import UUID

from app.src.constants import CURRENCY, MAX_SMS_LENGTH
from app.src.db import Booking, Destination, PickupPoint, sessionMaker
from app.src.functions import normalizeMsisdn, shortReference
from app.src.hubtel import sms

logger = logging.getLogger("uvicorn.error")


def composeConfirmation(booking: Booking, pickupName: str, destinationName: str) -> str:
    """
    Build the payment confirmation text, cut to the SMS length limit.

    Example:
        >>> composeConfirmation(booking, "Main Campus", "Kumasi")
        'ATT Transport: Payment confirmed. Main Campus -> Kumasi. Seat 4. GHS 80.00. Ref: 1b9d6bcd. Show SMS at boarding.'
    """
    message = (
        f"ATT Transport: Payment confirmed. {pickupName} -> {destinationName}. "
        f"Seat {booking.seat_number}. {CURRENCY} {float(booking.amount):.2f}. "
        f"Ref: {shortReference(booking.id)}. Show SMS at boarding."
    )
    return message[:MAX_SMS_LENGTH]


def sendPaidConfirmation(bookingId: UUID) -> None:
    """
    Text the passenger that their payment went through.

    Runs as a background task after the response has been sent, so it opens
    its own session. A failed delivery is logged and never reaches the caller
    or changes the booking.
    """
    session = sessionMaker()
    try:
        booking = session.query(Booking).filter(Booking.id == bookingId).first()
        if booking is None:
            return
        to = normalizeMsisdn(booking.phone)
        if to is None:
            logger.warning(f"No phone number on booking {bookingId}, SMS skipped")
            return

        pickup = session.get(PickupPoint, booking.pickup_point_id)
        destination = session.get(Destination, booking.destination_id)
        message = composeConfirmation(
            booking,
            pickup.name if pickup else "Pickup",
            destination.name if destination else "Destination",
        )
        sms.sendSMS(to, message)
    except Exception:
        logger.exception(f"Payment confirmation failed for booking {bookingId}")
    finally:
        session.close()
