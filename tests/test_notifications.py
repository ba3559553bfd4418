from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID

import pytest

from app.src import cleaner, notifications
from app.src.db import AdminToken, Booking, sessionMaker
from app.src.functions import normalizeMsisdn
from conftest import ADMIN_EMAIL, createAdmin

BOOKING_ID = UUID("1b9d6bcd-bbfd-4b2d-9b5d-ab8dfbbd4bed")


def test_confirmation_text():
    booking = Booking(id=BOOKING_ID, seat_number=4, amount=Decimal("80"))

    message = notifications.composeConfirmation(booking, "Main Campus", "Kumasi")

    assert message == (
        "ATT Transport: Payment confirmed. Main Campus -> Kumasi. Seat 4. "
        "GHS 80.00. Ref: 1b9d6bcd. Show SMS at boarding."
    )


def test_confirmation_text_is_bounded():
    booking = Booking(id=BOOKING_ID, seat_number=4, amount=Decimal("80"))

    message = notifications.composeConfirmation(booking, "P" * 400, "Kumasi")

    assert len(message) == 300


def test_msisdn_normalization():
    assert normalizeMsisdn("024 123 4567") == "233241234567"
    assert normalizeMsisdn("+233 24 123 4567") == "233241234567"
    assert normalizeMsisdn("233241234567") == "233241234567"
    assert normalizeMsisdn("") is None


def test_confirmation_for_a_missing_booking(smsOutbox):
    notifications.sendPaidConfirmation(BOOKING_ID)

    assert smsOutbox == []


def test_confirmation_without_a_session(monkeypatch, smsOutbox):
    def unavailable():
        raise RuntimeError("pool exhausted")

    monkeypatch.setattr(notifications, "sessionMaker", unavailable)

    with pytest.raises(RuntimeError, match="pool exhausted"):
        notifications.sendPaidConfirmation(BOOKING_ID)
    assert smsOutbox == []


def test_removing_expired_tokens(session):
    admin = createAdmin(session, ADMIN_EMAIL)
    now = datetime.now(timezone.utc)
    session.add_all(
        [
            AdminToken(admin_id=admin.id, expires_in=60, expires_at=now - timedelta(hours=1)),
            AdminToken(admin_id=admin.id, expires_in=60, expires_at=now + timedelta(hours=1)),
        ]
    )
    session.commit()

    assert cleaner.removeExpiredTokens(session) == 1
    with sessionMaker() as other:
        assert other.query(AdminToken).count() == 1
