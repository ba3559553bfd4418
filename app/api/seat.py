from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status, Form
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from app.api.bearer import bearer_admin
from app.src.db import Bus, Seat, sessionMaker
from app.src import exceptions, validators, getters, seating
from app.src.enums import SeatStatus
from app.src.loggers import logEvent
from app.src.functions import enumStr, fuseExceptionResponses
from app.src.urls import URL_SEAT, URL_SEAT_BULK, URL_SEAT_STATUS

route_admin = APIRouter()
route_public = APIRouter()


## Output Schema
class SeatSchema(BaseModel):
    id: int
    bus_id: int
    seat_number: int
    active: bool
    updated_on: Optional[datetime]
    created_on: datetime


class SeatStatusSchema(BaseModel):
    seat_number: int
    is_active: bool
    status: SeatStatus = Field(description=enumStr(SeatStatus))


class BulkUpdateSchema(BaseModel):
    bus_id: int
    active: bool
    updated: int


## Input Forms
class UpdateForm(BaseModel):
    bus_id: int = Field(Form())
    seat_number: int = Field(Form(ge=1))
    active: bool = Field(Form())


class BulkUpdateForm(BaseModel):
    bus_id: int = Field(Form())
    active: bool = Field(Form())


## Query Parameters
class QueryParams(BaseModel):
    bus_id: int = Field(Query())
    active: bool | None = Field(Query(default=None))


class StatusQueryParams(BaseModel):
    bus_id: int = Field(Query())


## API endpoints [Admin]
@route_admin.patch(
    URL_SEAT,
    tags=["Seat"],
    response_model=SeatSchema,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission(), exceptions.InvalidIdentifier()]
    ),
    description="""
    Enables or disables one seat of a bus.
    Disabling a seat stops new bookings for it, bookings already holding the seat are kept.
    """,
)
async def update_seat(
    fParam: UpdateForm = Depends(),
    bearer=Depends(bearer_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(bearer.credentials, session)
        validators.adminPermission(getters.admin(token, session))

        seat = (
            session.query(Seat)
            .filter(Seat.bus_id == fParam.bus_id, Seat.seat_number == fParam.seat_number)
            .first()
        )
        if seat is None:
            raise exceptions.InvalidIdentifier()

        if seat.active != fParam.active:
            seat.active = fParam.active
            session.commit()
            session.refresh(seat)
            logEvent(token, request_info, jsonable_encoder(seat))
        return seat
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.patch(
    URL_SEAT_BULK,
    tags=["Seat"],
    response_model=BulkUpdateSchema,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission(), exceptions.InvalidIdentifier()]
    ),
    description="""
    Enables or disables every seat of a bus in one statement.
    Returns the number of seats whose flag changed.
    """,
)
async def update_seats(
    fParam: BulkUpdateForm = Depends(),
    bearer=Depends(bearer_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(bearer.credentials, session)
        validators.adminPermission(getters.admin(token, session))

        if session.query(Bus.id).filter(Bus.id == fParam.bus_id).first() is None:
            raise exceptions.InvalidIdentifier()

        updated = (
            session.query(Seat)
            .filter(Seat.bus_id == fParam.bus_id, Seat.active.is_(not fParam.active))
            .update({Seat.active: fParam.active}, synchronize_session=False)
        )
        session.commit()

        bulkData = {"bus_id": fParam.bus_id, "active": fParam.active, "updated": updated}
        if updated:
            logEvent(token, request_info, bulkData)
        return bulkData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.get(
    URL_SEAT,
    tags=["Seat"],
    response_model=List[SeatSchema],
    responses=fuseExceptionResponses([exceptions.InvalidToken()]),
    description="""
    Lists the seats of a bus ordered by seat number.
    """,
)
async def fetch_seats(qParam: QueryParams = Depends(), bearer=Depends(bearer_admin)):
    try:
        session = sessionMaker()
        validators.adminToken(bearer.credentials, session)

        query = session.query(Seat).filter(Seat.bus_id == qParam.bus_id)
        if qParam.active is not None:
            query = query.filter(Seat.active.is_(qParam.active))
        return query.order_by(Seat.seat_number.asc()).all()
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


## API endpoints [Public]
@route_public.get(
    URL_SEAT_STATUS,
    tags=["Seat"],
    response_model=List[SeatStatusSchema],
    status_code=status.HTTP_200_OK,
    description="""
    Seat map of a bus: every seat with its active flag and whether it is taken.
    A seat is taken while a pending or paid booking holds it.
    An unknown bus returns an empty list. No passenger data is exposed.
    """,
)
async def fetch_seat_status(qParam: StatusQueryParams = Depends()):
    try:
        session = sessionMaker()

        return seating.seatStatus(session, qParam.bus_id)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
