from datetime import datetime
from enum import IntEnum
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status, Form
from sqlalchemy.orm.session import Session
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from app.api.bearer import bearer_admin
from app.src.constants import MAX_SEATS_PER_BUS
from app.src.db import Booking, Bus, BusType, sessionMaker
from app.src import exceptions, validators, getters, seating
from app.src.enums import OrderIn
from app.src.loggers import logEvent
from app.src.functions import (
    commitDeletion,
    enumStr,
    fuseExceptionResponses,
    updateIfChanged,
)
from app.src.urls import URL_BUS, URL_BUS_TYPE

route_admin = APIRouter()
route_public = APIRouter()


## Output Schema
class BusTypeSchema(BaseModel):
    id: int
    name: str
    seat_count: int
    description: Optional[str]
    active: bool
    updated_on: Optional[datetime]
    created_on: datetime


class PublicBusSchema(BaseModel):
    id: int
    name: str
    bus_type_id: int


class BusSchema(PublicBusSchema):
    active: bool
    updated_on: Optional[datetime]
    created_on: datetime


## Input Forms
class CreateBusTypeForm(BaseModel):
    name: str = Field(Form(min_length=1, max_length=64))
    seat_count: int = Field(Form(ge=1, le=MAX_SEATS_PER_BUS))
    description: str | None = Field(Form(max_length=1024, default=None))
    active: bool = Field(Form(default=True))


class UpdateBusTypeForm(BaseModel):
    id: int = Field(Form())
    name: str | None = Field(Form(min_length=1, max_length=64, default=None))
    description: str | None = Field(Form(max_length=1024, default=None))
    active: bool | None = Field(Form(default=None))


class CreateBusForm(BaseModel):
    name: str = Field(Form(min_length=1, max_length=32))
    bus_type_id: int = Field(Form())
    active: bool = Field(Form(default=True))


class UpdateBusForm(BaseModel):
    id: int = Field(Form())
    name: str | None = Field(Form(min_length=1, max_length=32, default=None))
    active: bool | None = Field(Form(default=None))


class DeleteForm(BaseModel):
    id: int = Field(Form())


## Query Parameters
class OrderBy(IntEnum):
    id = 1
    updated_on = 2
    created_on = 3


class BusTypeQueryParams(BaseModel):
    name: str | None = Field(Query(default=None))
    active: bool | None = Field(Query(default=None))
    id: int | None = Field(Query(default=None))
    # Ordering
    order_by: OrderBy = Field(Query(default=OrderBy.id, description=enumStr(OrderBy)))
    order_in: OrderIn = Field(Query(default=OrderIn.ASC, description=enumStr(OrderIn)))
    # Pagination
    offset: int = Field(Query(default=0, ge=0))
    limit: int = Field(Query(default=20, gt=0, le=100))


class BusQueryParams(BaseModel):
    name: str | None = Field(Query(default=None))
    bus_type_id: int | None = Field(Query(default=None))
    active: bool | None = Field(Query(default=None))
    # id based
    id: int | None = Field(Query(default=None))
    id_list: List[int] | None = Field(Query(default=None))
    # created_on based
    created_on_ge: datetime | None = Field(Query(default=None))
    created_on_le: datetime | None = Field(Query(default=None))
    # Ordering
    order_by: OrderBy = Field(Query(default=OrderBy.id, description=enumStr(OrderBy)))
    order_in: OrderIn = Field(Query(default=OrderIn.ASC, description=enumStr(OrderIn)))
    # Pagination
    offset: int = Field(Query(default=0, ge=0))
    limit: int = Field(Query(default=20, gt=0, le=100))


## Function
def searchBus(session: Session, qParam: BusQueryParams, activeOnly=False) -> List[Bus]:
    query = session.query(Bus)

    # Filters
    if activeOnly:
        query = query.filter(Bus.active.is_(True))
    elif qParam.active is not None:
        query = query.filter(Bus.active.is_(qParam.active))
    if qParam.name is not None:
        query = query.filter(Bus.name.ilike(f"%{qParam.name}%"))
    if qParam.bus_type_id is not None:
        query = query.filter(Bus.bus_type_id == qParam.bus_type_id)
    # id based
    if qParam.id is not None:
        query = query.filter(Bus.id == qParam.id)
    if qParam.id_list is not None:
        query = query.filter(Bus.id.in_(qParam.id_list))
    # created_on based
    if qParam.created_on_ge is not None:
        query = query.filter(Bus.created_on >= qParam.created_on_ge)
    if qParam.created_on_le is not None:
        query = query.filter(Bus.created_on <= qParam.created_on_le)

    # Ordering
    orderingAttribute = getattr(Bus, OrderBy(qParam.order_by).name)
    if qParam.order_in == OrderIn.ASC:
        query = query.order_by(orderingAttribute.asc())
    else:
        query = query.order_by(orderingAttribute.desc())

    # Pagination
    query = query.offset(qParam.offset).limit(qParam.limit)
    return query.all()


## API endpoints [Admin]
@route_admin.post(
    URL_BUS_TYPE,
    tags=["Bus Type"],
    response_model=BusTypeSchema,
    status_code=status.HTTP_201_CREATED,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Creates a new bus type. The seat count fixes how many seats every bus of this type gets.
    """,
)
async def create_bus_type(
    fParam: CreateBusTypeForm = Depends(),
    bearer=Depends(bearer_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(bearer.credentials, session)
        validators.adminPermission(getters.admin(token, session))

        busType = BusType(
            name=fParam.name,
            seat_count=fParam.seat_count,
            description=fParam.description,
            active=fParam.active,
        )
        session.add(busType)
        session.commit()
        session.refresh(busType)

        busTypeData = jsonable_encoder(busType)
        logEvent(token, request_info, busTypeData)
        return busTypeData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.patch(
    URL_BUS_TYPE,
    tags=["Bus Type"],
    response_model=BusTypeSchema,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission(), exceptions.InvalidIdentifier()]
    ),
    description="""
    Updates the name, description or active flag of a bus type.
    The seat count cannot change, seats of existing buses stay as provisioned.
    """,
)
async def update_bus_type(
    fParam: UpdateBusTypeForm = Depends(),
    bearer=Depends(bearer_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(bearer.credentials, session)
        validators.adminPermission(getters.admin(token, session))

        busType = session.query(BusType).filter(BusType.id == fParam.id).first()
        if busType is None:
            raise exceptions.InvalidIdentifier()

        updateIfChanged(
            busType,
            fParam,
            [BusType.name.key, BusType.description.key, BusType.active.key],
        )
        haveUpdates = session.is_modified(busType)
        if haveUpdates:
            session.commit()
            session.refresh(busType)

        busTypeData = jsonable_encoder(busType)
        if haveUpdates:
            logEvent(token, request_info, busTypeData)
        return busTypeData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.delete(
    URL_BUS_TYPE,
    tags=["Bus Type"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.DependencyInUse(BusType),
        ]
    ),
    description="""
    Deletes a bus type that no bus uses.
    """,
)
async def delete_bus_type(
    fParam: DeleteForm = Depends(),
    bearer=Depends(bearer_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(bearer.credentials, session)
        validators.adminPermission(getters.admin(token, session))

        busType = session.query(BusType).filter(BusType.id == fParam.id).first()
        if busType is not None:
            if session.query(Bus.id).filter(Bus.bus_type_id == busType.id).first():
                raise exceptions.DependencyInUse(BusType)
            session.delete(busType)
            commitDeletion(session, BusType)
            logEvent(token, request_info, jsonable_encoder(busType))
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.get(
    URL_BUS_TYPE,
    tags=["Bus Type"],
    response_model=List[BusTypeSchema],
    responses=fuseExceptionResponses([exceptions.InvalidToken()]),
    description="""
    Lists bus types.
    """,
)
async def fetch_bus_types(
    qParam: BusTypeQueryParams = Depends(), bearer=Depends(bearer_admin)
):
    try:
        session = sessionMaker()
        validators.adminToken(bearer.credentials, session)

        query = session.query(BusType)
        if qParam.name is not None:
            query = query.filter(BusType.name.ilike(f"%{qParam.name}%"))
        if qParam.active is not None:
            query = query.filter(BusType.active.is_(qParam.active))
        if qParam.id is not None:
            query = query.filter(BusType.id == qParam.id)

        orderingAttribute = getattr(BusType, OrderBy(qParam.order_by).name)
        if qParam.order_in == OrderIn.ASC:
            query = query.order_by(orderingAttribute.asc())
        else:
            query = query.order_by(orderingAttribute.desc())
        return query.offset(qParam.offset).limit(qParam.limit).all()
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.post(
    URL_BUS,
    tags=["Bus"],
    response_model=BusSchema,
    status_code=status.HTTP_201_CREATED,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.InvalidIdentifier(),
            exceptions.InactiveResource(BusType),
        ]
    ),
    description="""
    Creates a new bus of an active bus type.
    One active seat is provisioned per seat number, from 1 up to the seat count of the bus type.
    The bus and its seats are committed together.
    """,
)
async def create_bus(
    fParam: CreateBusForm = Depends(),
    bearer=Depends(bearer_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(bearer.credentials, session)
        validators.adminPermission(getters.admin(token, session))
        busType = validators.activeReference(session, BusType, fParam.bus_type_id)

        bus = Bus(name=fParam.name, bus_type_id=busType.id, active=fParam.active)
        session.add(bus)
        session.flush()
        seating.provisionSeats(session, bus, busType.seat_count)
        session.commit()
        session.refresh(bus)

        busData = jsonable_encoder(bus)
        logEvent(token, request_info, busData)
        return busData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.patch(
    URL_BUS,
    tags=["Bus"],
    response_model=BusSchema,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission(), exceptions.InvalidIdentifier()]
    ),
    description="""
    Updates the name or active flag of a bus.
    An inactive bus is hidden from passengers, its existing bookings are kept.
    """,
)
async def update_bus(
    fParam: UpdateBusForm = Depends(),
    bearer=Depends(bearer_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(bearer.credentials, session)
        validators.adminPermission(getters.admin(token, session))

        bus = session.query(Bus).filter(Bus.id == fParam.id).first()
        if bus is None:
            raise exceptions.InvalidIdentifier()

        updateIfChanged(bus, fParam, [Bus.name.key, Bus.active.key])
        haveUpdates = session.is_modified(bus)
        if haveUpdates:
            session.commit()
            session.refresh(bus)

        busData = jsonable_encoder(bus)
        if haveUpdates:
            logEvent(token, request_info, busData)
        return busData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.delete(
    URL_BUS,
    tags=["Bus"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.DependencyInUse(Bus),
        ]
    ),
    description="""
    Deletes a bus together with its seats.
    A bus with bookings, of any status, cannot be deleted. Deactivate it instead.
    """,
)
async def delete_bus(
    fParam: DeleteForm = Depends(),
    bearer=Depends(bearer_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(bearer.credentials, session)
        validators.adminPermission(getters.admin(token, session))

        bus = session.query(Bus).filter(Bus.id == fParam.id).first()
        if bus is not None:
            if session.query(Booking.id).filter(Booking.bus_id == bus.id).first():
                raise exceptions.DependencyInUse(Bus)
            session.delete(bus)
            commitDeletion(session, Bus)
            logEvent(token, request_info, jsonable_encoder(bus))
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.get(
    URL_BUS,
    tags=["Bus"],
    response_model=List[BusSchema],
    responses=fuseExceptionResponses([exceptions.InvalidToken()]),
    description="""
    Lists buses with filtering, sorting, and pagination.
    """,
)
async def fetch_buses(qParam: BusQueryParams = Depends(), bearer=Depends(bearer_admin)):
    try:
        session = sessionMaker()
        validators.adminToken(bearer.credentials, session)

        return searchBus(session, qParam)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


## API endpoints [Public]
@route_public.get(
    URL_BUS,
    tags=["Bus"],
    response_model=List[PublicBusSchema],
    description="""
    Lists the active buses passengers can book on.
    """,
)
async def fetch_buses(qParam: BusQueryParams = Depends()):
    try:
        session = sessionMaker()

        return searchBus(session, qParam, activeOnly=True)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
