from datetime import datetime
from enum import IntEnum
from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, BackgroundTasks, Depends, Query, status, Form
from sqlalchemy import or_
from sqlalchemy.orm.session import Session
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field, EmailStr

from app.api.bearer import bearer_admin
from app.src.constants import REGEX_PHONE
from app.src.db import Booking, Bus, Destination, PickupPoint, Referral, sessionMaker
from app.src import exceptions, validators, getters, ledger, notifications
from app.src.enums import BookingStatus, OrderIn, PassengerClass
from app.src.loggers import logEvent
from app.src.functions import enumStr, fuseExceptionResponses
from app.src.urls import URL_BOOKING

route_admin = APIRouter()
route_public = APIRouter()


## Output Schema
class PublicBookingSchema(BaseModel):
    id: UUID
    full_name: str
    pickup_point_id: int
    destination_id: int
    bus_id: int
    seat_number: int
    amount: float
    status: BookingStatus
    created_on: datetime


class BookingSchema(PublicBookingSchema):
    passenger_class: str
    email: str
    phone: str
    emergency_name: str
    emergency_phone: str
    referral_id: Optional[int]
    payment_reference: Optional[str]
    receipt_url: Optional[str]
    updated_on: Optional[datetime]


## Input Forms
class CreateForm(BaseModel):
    full_name: str = Field(Form(min_length=1, max_length=128))
    passenger_class: PassengerClass = Field(Form(description=enumStr(PassengerClass)))
    email: EmailStr = Field(Form(max_length=256, description="Email in RFC 5322 format"))
    phone: str = Field(Form(pattern=REGEX_PHONE, max_length=20))
    emergency_name: str = Field(Form(min_length=1, max_length=128))
    emergency_phone: str = Field(Form(pattern=REGEX_PHONE, max_length=20))
    pickup_point_id: int = Field(Form())
    destination_id: int = Field(Form())
    bus_id: int = Field(Form())
    seat_number: int = Field(Form(ge=1))
    referral_id: int | None = Field(Form(default=None))


class UpdateForm(BaseModel):
    id: UUID = Field(Form())
    status: BookingStatus = Field(Form(description=enumStr(BookingStatus)))


## Query Parameters
class OrderBy(IntEnum):
    created_on = 1
    updated_on = 2
    amount = 3
    seat_number = 4


class QueryParams(BaseModel):
    search: str | None = Field(
        Query(default=None, description="Matches name, email or phone")
    )
    status: BookingStatus | None = Field(
        Query(default=None, description=enumStr(BookingStatus))
    )
    bus_id: int | None = Field(Query(default=None))
    seat_number: int | None = Field(Query(default=None))
    destination_id: int | None = Field(Query(default=None))
    pickup_point_id: int | None = Field(Query(default=None))
    referral_id: int | None = Field(Query(default=None))
    id: UUID | None = Field(Query(default=None))
    # created_on based
    created_on_ge: datetime | None = Field(Query(default=None))
    created_on_le: datetime | None = Field(Query(default=None))
    # Ordering
    order_by: OrderBy = Field(
        Query(default=OrderBy.created_on, description=enumStr(OrderBy))
    )
    order_in: OrderIn = Field(Query(default=OrderIn.DESC, description=enumStr(OrderIn)))
    # Pagination
    offset: int = Field(Query(default=0, ge=0))
    limit: int = Field(Query(default=20, gt=0, le=100))


## Function
def searchBooking(session: Session, qParam: QueryParams) -> List[Booking]:
    query = session.query(Booking)

    # Filters
    if qParam.search is not None:
        pattern = f"%{qParam.search}%"
        query = query.filter(
            or_(
                Booking.full_name.ilike(pattern),
                Booking.email.ilike(pattern),
                Booking.phone.ilike(pattern),
            )
        )
    if qParam.status is not None:
        query = query.filter(Booking.status == qParam.status.value)
    if qParam.bus_id is not None:
        query = query.filter(Booking.bus_id == qParam.bus_id)
    if qParam.seat_number is not None:
        query = query.filter(Booking.seat_number == qParam.seat_number)
    if qParam.destination_id is not None:
        query = query.filter(Booking.destination_id == qParam.destination_id)
    if qParam.pickup_point_id is not None:
        query = query.filter(Booking.pickup_point_id == qParam.pickup_point_id)
    if qParam.referral_id is not None:
        query = query.filter(Booking.referral_id == qParam.referral_id)
    if qParam.id is not None:
        query = query.filter(Booking.id == qParam.id)
    # created_on based
    if qParam.created_on_ge is not None:
        query = query.filter(Booking.created_on >= qParam.created_on_ge)
    if qParam.created_on_le is not None:
        query = query.filter(Booking.created_on <= qParam.created_on_le)

    # Ordering
    orderingAttribute = getattr(Booking, OrderBy(qParam.order_by).name)
    if qParam.order_in == OrderIn.ASC:
        query = query.order_by(orderingAttribute.asc())
    else:
        query = query.order_by(orderingAttribute.desc())

    # Pagination
    query = query.offset(qParam.offset).limit(qParam.limit)
    return query.all()


## API endpoints [Admin]
@route_admin.patch(
    URL_BOOKING,
    tags=["Booking"],
    response_model=BookingSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.InvalidIdentifier(),
            exceptions.InvalidStateTransition(Booking.status),
            exceptions.SeatTaken(),
        ]
    ),
    description="""
    Changes the status of a booking.
    Allowed: pending to paid or cancelled, cancelled back to pending, paid to cancelled.
    A paid booking can never go back to pending.
    Cancelling releases the seat. Restoring a cancelled booking fails with SeatTaken when the seat was booked meanwhile.
    Marking a booking paid sends the passenger a confirmation SMS once the response is sent.
    """,
)
async def update_booking(
    background_tasks: BackgroundTasks,
    fParam: UpdateForm = Depends(),
    bearer=Depends(bearer_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(bearer.credentials, session)
        validators.adminPermission(getters.admin(token, session))

        booking = session.query(Booking).filter(Booking.id == fParam.id).first()
        if booking is None:
            raise exceptions.InvalidIdentifier()

        oldStatus = booking.status
        paidNow = ledger.changeStatus(session, booking, fParam.status)
        session.refresh(booking)
        if paidNow:
            background_tasks.add_task(notifications.sendPaidConfirmation, booking.id)

        bookingData = jsonable_encoder(booking)
        if booking.status != oldStatus:
            logEvent(token, request_info, bookingData)
        return bookingData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.get(
    URL_BOOKING,
    tags=["Booking"],
    response_model=List[BookingSchema],
    responses=fuseExceptionResponses([exceptions.InvalidToken()]),
    description="""
    Lists bookings, newest first by default.
    Filter by status, bus, seat, catalog references, creation time, or a free text search over name, email and phone.
    """,
)
async def fetch_booking(qParam: QueryParams = Depends(), bearer=Depends(bearer_admin)):
    try:
        session = sessionMaker()
        validators.adminToken(bearer.credentials, session)

        return searchBooking(session, qParam)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


## API endpoints [Public]
@route_public.post(
    URL_BOOKING,
    tags=["Booking"],
    response_model=PublicBookingSchema,
    status_code=status.HTTP_201_CREATED,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidIdentifier(),
            exceptions.InactiveResource(Bus),
            exceptions.SeatInactive(),
            exceptions.SeatTaken(),
        ]
    ),
    description="""
    Reserves a seat for a passenger. The booking starts as pending until the payment is confirmed.
    The amount is the current price of the destination.
    The bus, pickup point, destination and referral, when given, must exist and be active.
    Fails with SeatInactive for a disabled or unknown seat and with SeatTaken when another pending or paid booking holds the seat.
    """,
)
async def create_booking(
    fParam: CreateForm = Depends(),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        validators.activeReference(session, Bus, fParam.bus_id)
        validators.activeReference(session, PickupPoint, fParam.pickup_point_id)
        destination = validators.activeReference(
            session, Destination, fParam.destination_id
        )
        validators.activeReference(
            session, Referral, fParam.referral_id, optional=True
        )

        booking = ledger.attemptBooking(
            session,
            fParam.bus_id,
            fParam.seat_number,
            {
                "full_name": fParam.full_name,
                "passenger_class": fParam.passenger_class.value,
                "email": fParam.email,
                "phone": fParam.phone,
                "emergency_name": fParam.emergency_name,
                "emergency_phone": fParam.emergency_phone,
                "pickup_point_id": fParam.pickup_point_id,
                "destination_id": fParam.destination_id,
                "referral_id": fParam.referral_id,
                "amount": destination.price,
            },
        )
        session.refresh(booking)

        bookingData = jsonable_encoder(booking)
        logEvent(None, request_info, bookingData)
        return bookingData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
