from secrets import token_hex
from uuid import uuid4
from sqlalchemy import (
    TEXT,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
    create_engine,
    event,
    func,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from app.src.constants import (
    DB_URL,
    PSQL_DB_DRIVER,
    PSQL_DB_HOST,
    PSQL_DB_PASSWORD,
    PSQL_DB_NAME,
    PSQL_DB_PORT,
    PSQL_DB_USERNAME,
)
from app.src.enums import AccountStatus, AdminRole, BookingStatus, PlatformType


# Case-insensitive uniqueness of admin emails
ADMIN_EMAIL_INDEX = "idx_unique_admin_email"
# Name of the partial unique index guarding seat allocation
ACTIVE_BOOKING_INDEX = "idx_unique_active_booking"
# Booking statuses that hold a seat
ACTIVE_BOOKING_STATUSES = [BookingStatus.PENDING.value, BookingStatus.PAID.value]
ACTIVE_BOOKING_CLAUSE = "status IN ({})".format(
    ", ".join(f"'{value}'" for value in ACTIVE_BOOKING_STATUSES)
)


def _onSQLiteConnect(dbapi_connection, connection_record):
    # Hand transaction control to SQLAlchemy and honour ON DELETE rules
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _onSQLiteBegin(connection):
    connection.exec_driver_sql("BEGIN IMMEDIATE")


def makeEngine(url: str) -> Engine:
    """
    Create the SQLAlchemy engine for the given database URL.

    PostgreSQL is the production target. SQLite is accepted for local
    development and tests; its connections take the write lock when a
    transaction begins and enforce foreign keys, so concurrent bookings behave
    the same way they do on PostgreSQL.

    Args:
        url (str): SQLAlchemy database URL.

    Returns:
        Engine: The configured engine.
    """
    if url.startswith("sqlite"):
        sqliteEngine = create_engine(
            url=url,
            echo=False,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        event.listen(sqliteEngine, "connect", _onSQLiteConnect)
        event.listen(sqliteEngine, "begin", _onSQLiteBegin)
        return sqliteEngine
    return create_engine(url=url, echo=False)


# Global DBMS variables
dbURL = DB_URL or (
    f"{PSQL_DB_DRIVER}://{PSQL_DB_USERNAME}:{PSQL_DB_PASSWORD}"
    f"@{PSQL_DB_HOST}:{PSQL_DB_PORT}/{PSQL_DB_NAME}"
)
engine = makeEngine(dbURL)
sessionMaker = sessionmaker(bind=engine, expire_on_commit=False)
ORMbase = declarative_base()


# ----------------------------------- Account DB Models ---------------------------------------#
class Admin(ORMbase):
    """
    Represents a back office user allowed to manage the fleet, the reference
    catalog and the bookings.

    Columns:
        id (Integer):
            Primary key. Unique identifier for the admin.

        email (String(256)):
            Login identifier of the admin, stored in lower case.
            Must not be null.

        name (TEXT):
            Display name of the admin.

        role (Integer):
            Mapped from the `AdminRole` enum. Only `SUPER_ADMIN` may manage
            other admin accounts. Defaults to `AdminRole.ADMIN`.

        password (TEXT):
            Argon2 hash of the password. Plaintext is never stored.

        status (Integer):
            Mapped from the `AccountStatus` enum. Defaults to `AccountStatus.ACTIVE`.

        updated_on (DateTime):
            Timestamp automatically updated whenever the record is modified.

        created_on (DateTime):
            Timestamp of when the account was created.

    Constraints:
        idx_unique_admin_email:
            Unique index over lower(email), so two accounts can never differ
            only in the case of their email.
    """

    __tablename__ = "admin"

    id = Column(Integer, primary_key=True)
    email = Column(String(256), nullable=False)
    name = Column(TEXT, nullable=False)
    role = Column(Integer, nullable=False, default=AdminRole.ADMIN)
    password = Column(TEXT, nullable=False)
    status = Column(Integer, nullable=False, default=AccountStatus.ACTIVE)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


Index(ADMIN_EMAIL_INDEX, func.lower(Admin.email), unique=True)


class AdminToken(ORMbase):
    """
    Represents an authentication token issued to an admin.

    Columns:
        id (Integer):
            Primary key. Unique identifier for this token record.

        admin_id (Integer):
            Foreign key referencing `admin.id`.
            Cascades on delete, removing the admin removes its tokens.

        access_token (String(64)):
            Securely generated 64-character hexadecimal access token.

        expires_in (Integer):
            Token validity in seconds.

        expires_at (DateTime):
            Date and time after which the token becomes invalid.

        platform_type (Integer):
            Mapped from the `PlatformType` enum. Defaults to `PlatformType.OTHER`.

        client_details (TEXT):
            Optional description of the client device or environment.
    """

    __tablename__ = "admin_token"

    id = Column(Integer, primary_key=True)
    admin_id = Column(
        Integer,
        ForeignKey("admin.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    access_token = Column(
        String(64), unique=True, nullable=False, default=lambda: token_hex(32)
    )
    expires_in = Column(Integer, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    # Device related details
    platform_type = Column(Integer, default=PlatformType.OTHER)
    client_details = Column(TEXT)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


# ----------------------------------- Fleet DB Models -----------------------------------------#
class BusType(ORMbase):
    """
    A model of bus. The seat count of the type fixes how many seats are
    provisioned for every bus created with it.
    """

    __tablename__ = "bus_type"

    id = Column(Integer, primary_key=True)
    name = Column(String(64), nullable=False, unique=True)
    seat_count = Column(Integer, nullable=False)
    description = Column(TEXT)
    active = Column(Boolean, nullable=False, default=True)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


class Bus(ORMbase):
    """
    Represents a bus offered for booking.

    Columns:
        id (Integer):
            Primary key. Unique identifier for the bus.

        name (String(32)):
            Display name of the bus, e.g. "ATT-01".

        bus_type_id (Integer):
            Foreign key referencing `bus_type.id`.
            A bus type cannot be deleted while buses use it.

        active (Boolean):
            Only active buses are listed publicly and accept bookings.

        updated_on (DateTime):
            Timestamp automatically updated whenever the record is modified.

        created_on (DateTime):
            Timestamp indicating when the bus record was created.
    """

    __tablename__ = "bus"

    id = Column(Integer, primary_key=True)
    name = Column(String(32), nullable=False, index=True)
    bus_type_id = Column(
        Integer,
        ForeignKey("bus_type.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    active = Column(Boolean, nullable=False, default=True)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


class Seat(ORMbase):
    """
    A single seat of a bus.

    The `active` flag is operator controlled and independent of the booking
    state. Seats are removed only together with their bus.

    Constraints:
        UniqueConstraint(bus_id, seat_number):
            A seat number appears once per bus.
    """

    __tablename__ = "seat"
    __table_args__ = (UniqueConstraint("bus_id", "seat_number"),)

    id = Column(Integer, primary_key=True)
    bus_id = Column(
        Integer,
        ForeignKey("bus.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    seat_number = Column(Integer, nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


# ----------------------------------- Catalog DB Models ---------------------------------------#
class Destination(ORMbase):
    """
    A drop off point. The price is copied into every booking when it is
    created, later price changes never touch existing bookings.
    """

    __tablename__ = "destination"

    id = Column(Integer, primary_key=True)
    name = Column(String(64), nullable=False, unique=True)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


class PickupPoint(ORMbase):
    __tablename__ = "pickup_point"

    id = Column(Integer, primary_key=True)
    name = Column(String(64), nullable=False, unique=True)
    active = Column(Boolean, nullable=False, default=True)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


class Referral(ORMbase):
    __tablename__ = "referral"

    id = Column(Integer, primary_key=True)
    name = Column(String(64), nullable=False, unique=True)
    active = Column(Boolean, nullable=False, default=True)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


# ----------------------------------- Booking DB Models ---------------------------------------#
class Booking(ORMbase):
    """
    Represents one passenger's reservation of one seat on one bus.

    Columns:
        id (Uuid):
            Primary key. Also sent to the payment gateway as the client
            reference, so the webhook can find the booking again.

        full_name, passenger_class, email, phone (TEXT):
            Passenger details as entered on the booking form.

        emergency_name, emergency_phone (TEXT):
            Emergency contact of the passenger.

        pickup_point_id, destination_id, bus_id, referral_id (Integer):
            References to the catalog and the fleet. None of them cascade,
            a referenced row cannot be deleted while the booking exists.

        seat_number (Integer):
            Seat number within the bus.

        amount (Numeric(10, 2)):
            Destination price captured at creation time.

        status (String(16)):
            One of `pending`, `paid` or `cancelled`. Defaults to `pending`.

        payment_reference (TEXT):
            Gateway transaction id, or the client reference when none was sent.

        receipt_url (TEXT):
            Receipt link reported by the gateway.

    Constraints:
        idx_unique_active_booking:
            Partial unique index over (bus_id, seat_number) restricted to
            pending and paid rows. At most one such booking may exist per
            seat; cancelled bookings do not block the seat.
    """

    __tablename__ = "booking"
    __table_args__ = (
        Index(
            ACTIVE_BOOKING_INDEX,
            "bus_id",
            "seat_number",
            unique=True,
            postgresql_where=text(ACTIVE_BOOKING_CLAUSE),
            sqlite_where=text(ACTIVE_BOOKING_CLAUSE),
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    # Passenger details
    full_name = Column(TEXT, nullable=False)
    passenger_class = Column(String(16), nullable=False)
    email = Column(TEXT, nullable=False)
    phone = Column(TEXT, nullable=False)
    emergency_name = Column(TEXT, nullable=False)
    emergency_phone = Column(TEXT, nullable=False)
    # Trip details
    pickup_point_id = Column(
        Integer, ForeignKey("pickup_point.id", ondelete="RESTRICT"), nullable=False
    )
    destination_id = Column(
        Integer, ForeignKey("destination.id", ondelete="RESTRICT"), nullable=False
    )
    bus_id = Column(
        Integer, ForeignKey("bus.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    seat_number = Column(Integer, nullable=False)
    referral_id = Column(Integer, ForeignKey("referral.id", ondelete="RESTRICT"))
    # Payment details
    amount = Column(Numeric(10, 2), nullable=False)
    status = Column(String(16), nullable=False, default=BookingStatus.PENDING.value)
    payment_reference = Column(TEXT)
    receipt_url = Column(TEXT)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())
