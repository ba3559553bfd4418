import os
import tempfile

# Configuration is read at import time, point it at a throwaway database first
_testDir = tempfile.mkdtemp(prefix="att-booking-")
os.environ["DB_URL"] = "sqlite:///" + os.path.join(_testDir, "test.db")
os.environ["HUBTEL_CLIENT_ID"] = "test-client"
os.environ["HUBTEL_CLIENT_SECRET"] = "test-secret"
os.environ["HUBTEL_MERCHANT_NUMBER"] = "2020202"

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.src import argon2, openobserve, seating
from app.src.db import (
    Admin,
    Bus,
    BusType,
    Destination,
    ORMbase,
    PickupPoint,
    Referral,
    engine,
    sessionMaker,
)
from app.src.enums import AdminRole, PassengerClass
from app.src.hubtel import sms

ADMIN_EMAIL = "admin@atttransport.com"
ADMIN_PASSWORD = "password"


@pytest.fixture(autouse=True)
def database():
    ORMbase.metadata.drop_all(engine)
    ORMbase.metadata.create_all(engine)
    yield
    engine.dispose()


@pytest.fixture(autouse=True)
def auditLog(monkeypatch):
    events = []
    monkeypatch.setattr(openobserve, "logEvent", events.append)
    return events


@pytest.fixture(autouse=True)
def smsOutbox(monkeypatch):
    messages = []

    def sendSMS(to, content):
        messages.append({"to": to, "content": content})
        return True

    monkeypatch.setattr(sms, "sendSMS", sendSMS)
    return messages


@pytest.fixture
def session():
    session = sessionMaker()
    yield session
    session.close()


@pytest.fixture
def client():
    with TestClient(app) as client:
        yield client


@pytest.fixture
def seed(session):
    """A 4 seat bus with one pickup point, destination and referral."""
    busType = BusType(name="Mini", seat_count=4)
    session.add(busType)
    session.flush()
    bus = Bus(name="ATT-01", bus_type_id=busType.id)
    session.add(bus)
    session.flush()
    seating.provisionSeats(session, bus, busType.seat_count)
    pickupPoint = PickupPoint(name="Main Campus")
    destination = Destination(name="Kumasi", price=80)
    referral = Referral(name="SRC")
    session.add_all([pickupPoint, destination, referral])
    session.commit()
    return {
        "bus_type_id": busType.id,
        "bus_id": bus.id,
        "pickup_point_id": pickupPoint.id,
        "destination_id": destination.id,
        "referral_id": referral.id,
    }


@pytest.fixture
def passenger(seed):
    """Booking form fields for seat 1 of the seeded bus."""
    return {
        "full_name": "Ama Mensah",
        "passenger_class": PassengerClass.LEVEL_200.value,
        "email": "ama@example.com",
        "phone": "0241234567",
        "emergency_name": "Kofi Mensah",
        "emergency_phone": "0201234567",
        "pickup_point_id": seed["pickup_point_id"],
        "destination_id": seed["destination_id"],
        "bus_id": seed["bus_id"],
        "seat_number": 1,
    }


def bookingDetails(seed) -> dict:
    """Booking columns other than the bus and seat, as the ledger expects them."""
    return {
        "full_name": "Ama Mensah",
        "passenger_class": PassengerClass.LEVEL_200.value,
        "email": "ama@example.com",
        "phone": "0241234567",
        "emergency_name": "Kofi Mensah",
        "emergency_phone": "0201234567",
        "pickup_point_id": seed["pickup_point_id"],
        "destination_id": seed["destination_id"],
        "amount": 80,
    }


def load(model, id):
    """Read one row in its own short transaction, SQLite allows a single writer."""
    with sessionMaker() as session:
        return session.get(model, id)


def createAdmin(session, email, role=AdminRole.SUPER_ADMIN) -> Admin:
    admin = Admin(
        email=email,
        name="Test admin",
        role=role,
        password=argon2.makePassword(ADMIN_PASSWORD),
    )
    session.add(admin)
    session.commit()
    return admin


def signIn(client, email) -> dict:
    response = client.post(
        "/admin/account/token", data={"email": email, "password": ADMIN_PASSWORD}
    )
    assert response.status_code == 201, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def adminHeaders(client, session):
    createAdmin(session, ADMIN_EMAIL)
    return signIn(client, ADMIN_EMAIL)
