"""
Payment reconciliation.

Hubtel reports the outcome of a checkout by calling the webhook, possibly
several times and in any order. Every notification is matched to its booking
through the client reference (the booking id) and applied so that redeliveries
leave the booking exactly as the first delivery did.
"""

import logging
from typing import Optional, Tuple
from pydantic import BaseModel
from sqlalchemy.orm.session import Session

from app.src.constants import HUBTEL_PAID_STATUSES
from app.src.db import Booking
from app.src.enums import BookingStatus
from app.src.functions import firstValue, toUUID

logger = logging.getLogger("uvicorn.error")

# Accepted spellings, in order of preference
STATUS_KEYS = ["status", "Status", "transactionStatus", "TransactionStatus"]
REFERENCE_KEYS = ["clientReference", "ClientReference", "checkoutId", "CheckoutId"]
TRANSACTION_KEYS = ["transactionId", "TransactionId"]
RECEIPT_KEYS = ["receiptUrl", "ReceiptUrl", "receiptURL"]
NESTED_KEYS = ["Data", "data"]


class PaymentNotification(BaseModel):
    status: Optional[str] = None
    reference: Optional[str] = None
    transaction_id: Optional[str] = None
    receipt_url: Optional[str] = None


def _lookup(payload: dict, keys: list) -> Optional[str]:
    value = firstValue(payload, keys)
    for nestedKey in NESTED_KEYS:
        if value:
            break
        nested = payload.get(nestedKey)
        if isinstance(nested, dict):
            value = firstValue(nested, keys)
    return str(value) if value else None


def parseNotification(payload: dict) -> PaymentNotification:
    """
    Extract the fields of a webhook body.

    Top level keys win over the ones inside a nested `Data` object.

    Example:
        >>> parseNotification({"Data": {"ClientReference": "a1", "Status": "Success"}})
        PaymentNotification(status='Success', reference='a1', transaction_id=None, receipt_url=None)
    """
    if not isinstance(payload, dict):
        return PaymentNotification()
    return PaymentNotification(
        status=_lookup(payload, STATUS_KEYS),
        reference=_lookup(payload, REFERENCE_KEYS),
        transaction_id=_lookup(payload, TRANSACTION_KEYS),
        receipt_url=_lookup(payload, RECEIPT_KEYS),
    )


def isPaidStatus(status: Optional[str]) -> bool:
    """Exact, case-sensitive match against the configured success vocabulary."""
    return status is not None and status in HUBTEL_PAID_STATUSES


def applyNotification(
    session: Session, notification: PaymentNotification
) -> Tuple[Optional[Booking], bool]:
    """
    Record a payment notification on its booking and commit.

    The payment reference and the receipt link are stored on every delivery.
    Only a paid notification for a pending booking changes the status; a
    cancelled booking stays cancelled and a paid booking stays paid.

    Args:
        session (Session): Active SQLAlchemy session.
        notification (PaymentNotification): Parsed webhook body.

    Returns:
        Tuple[Booking | None, bool]: The matched booking (None when the
        reference is missing or unknown) and whether this delivery moved it
        to paid. The confirmation SMS is sent only when the flag is True.
    """
    bookingId = toUUID(notification.reference)
    if bookingId is None:
        return None, False

    # Serializes redeliveries of the same notification on PostgreSQL
    booking = (
        session.query(Booking)
        .filter(Booking.id == bookingId)
        .with_for_update()
        .first()
    )
    if booking is None:
        return None, False

    booking.payment_reference = notification.transaction_id or notification.reference
    if notification.receipt_url:
        booking.receipt_url = notification.receipt_url

    paidNow = False
    if isPaidStatus(notification.status):
        if booking.status == BookingStatus.PENDING.value:
            booking.status = BookingStatus.PAID.value
            paidNow = True
        elif booking.status == BookingStatus.CANCELLED.value:
            logger.warning(f"Payment received for cancelled booking {booking.id}")
    session.commit()
    return booking, paidNow
