import argparse
from http import HTTPStatus
from requests import get, post

from app.src import argon2, seating
from app.src.enums import AdminRole, PassengerClass
from app.src.urls import (
    URL_ADMIN_TOKEN,
    URL_BOOKING,
    URL_BUS,
    URL_DESTINATION,
    URL_PICKUP_POINT,
    URL_SEAT_STATUS,
)
from app.src.db import (
    Admin,
    Bus,
    BusType,
    Destination,
    PickupPoint,
    Referral,
    sessionMaker,
    engine,
    ORMbase,
)


# ----------------------------------- Project Setup -------------------------------------------#
def removeTables():
    ORMbase.metadata.drop_all(engine)
    print("* All tables deleted")


def createTables():
    ORMbase.metadata.create_all(engine)
    print("* All tables created")


def initDB():
    session = sessionMaker()
    admin = Admin(
        email="admin@atttransport.com",
        name="ATT admin",
        role=AdminRole.SUPER_ADMIN,
        password=argon2.makePassword("password"),
    )
    session.add(admin)

    busType = BusType(name="Standard coach", seat_count=32, description="2 + 2 seating")
    session.add(busType)
    session.flush()

    bus = Bus(name="ATT-01", bus_type_id=busType.id)
    session.add(bus)
    session.flush()
    seating.provisionSeats(session, bus, busType.seat_count)

    session.add_all(
        [
            PickupPoint(name="Main Campus"),
            PickupPoint(name="City Center"),
            Destination(name="Kumasi", price=80),
            Destination(name="Accra", price=120),
            Referral(name="SRC"),
            Referral(name="Friend"),
            Referral(name="Poster"),
        ]
    )
    session.commit()
    print("* Initialization completed")
    session.close()


def POST(URL: str, header: dict = {}, status_code: int = HTTPStatus.CREATED, **kwargs):
    response = post(URL, headers=header, **kwargs)
    assert response.status_code == status_code, response.text
    return response


def testDB():
    # Base URLs
    ADMIN_URL = "http://127.0.0.1:8080/admin"
    PUBLIC_URL = "http://127.0.0.1:8080/public"

    # Create admin token
    credentials = {"email": "admin@atttransport.com", "password": "password"}
    response = POST(ADMIN_URL + URL_ADMIN_TOKEN, data=credentials)
    print("* Created token for admin")
    accessToken = {"Authorization": f"Bearer {response.json()['access_token']}"}

    # Read the seeded catalog
    bus = get(ADMIN_URL + URL_BUS, headers=accessToken).json()[0]
    pickupPoint = get(PUBLIC_URL + URL_PICKUP_POINT).json()[0]
    destination = get(PUBLIC_URL + URL_DESTINATION).json()[0]

    # Book the first available seat
    seats = get(PUBLIC_URL + URL_SEAT_STATUS, params={"bus_id": bus["id"]}).json()
    seat = next(
        s for s in seats if s["is_active"] and s["status"] == "available"
    )
    bookingData = {
        "full_name": "Test Passenger",
        "passenger_class": PassengerClass.NON_STUDENT.value,
        "email": "passenger@example.com",
        "phone": "0241234567",
        "emergency_name": "Test Contact",
        "emergency_phone": "0201234567",
        "pickup_point_id": pickupPoint["id"],
        "destination_id": destination["id"],
        "bus_id": bus["id"],
        "seat_number": seat["seat_number"],
    }
    booking = POST(PUBLIC_URL + URL_BOOKING, data=bookingData)
    print(f"* Booked seat {seat['seat_number']} as {booking.json()['id']}")

    # The same seat must now be refused
    POST(PUBLIC_URL + URL_BOOKING, data=bookingData, status_code=HTTPStatus.CONFLICT)
    print("* Second booking of the seat refused")


# Setup database
if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    # remove tables
    parser.add_argument("-rm", action="store_true", help="remove tables")
    parser.add_argument("-cr", action="store_true", help="create tables")
    parser.add_argument("-init", action="store_true", help="initialize DB")
    parser.add_argument("-test", action="store_true", help="add test data")
    args = parser.parse_args()

    if args.cr:
        createTables()
    if args.init:
        initDB()
    if args.test:
        testDB()
    if args.rm:
        removeTables()
