from datetime import datetime
from decimal import Decimal
from enum import IntEnum
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status, Form
from sqlalchemy.orm.session import Session
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from app.api.bearer import bearer_admin
from app.src.db import Booking, Destination, sessionMaker
from app.src import exceptions, validators, getters
from app.src.enums import OrderIn
from app.src.loggers import logEvent
from app.src.functions import (
    commitDeletion,
    enumStr,
    fuseExceptionResponses,
    updateIfChanged,
)
from app.src.urls import URL_DESTINATION

route_admin = APIRouter()
route_public = APIRouter()


## Output Schema
class PublicDestinationSchema(BaseModel):
    id: int
    name: str
    price: float


class DestinationSchema(PublicDestinationSchema):
    active: bool
    updated_on: Optional[datetime]
    created_on: datetime


## Input Forms
class CreateForm(BaseModel):
    name: str = Field(Form(min_length=1, max_length=64))
    price: Decimal = Field(Form(ge=0, max_digits=10, decimal_places=2))
    active: bool = Field(Form(default=True))


class UpdateForm(BaseModel):
    id: int = Field(Form())
    name: str | None = Field(Form(min_length=1, max_length=64, default=None))
    price: Decimal | None = Field(
        Form(ge=0, max_digits=10, decimal_places=2, default=None)
    )
    active: bool | None = Field(Form(default=None))


class DeleteForm(BaseModel):
    id: int = Field(Form())


## Query Parameters
class OrderBy(IntEnum):
    id = 1
    name = 2
    price = 3
    created_on = 4


class QueryParams(BaseModel):
    name: str | None = Field(Query(default=None))
    active: bool | None = Field(Query(default=None))
    # price based
    price_ge: Decimal | None = Field(Query(default=None))
    price_le: Decimal | None = Field(Query(default=None))
    # id based
    id: int | None = Field(Query(default=None))
    id_list: List[int] | None = Field(Query(default=None))
    # Ordering
    order_by: OrderBy = Field(Query(default=OrderBy.name, description=enumStr(OrderBy)))
    order_in: OrderIn = Field(Query(default=OrderIn.ASC, description=enumStr(OrderIn)))
    # Pagination
    offset: int = Field(Query(default=0, ge=0))
    limit: int = Field(Query(default=100, gt=0, le=100))


## Function
def searchDestination(
    session: Session, qParam: QueryParams, activeOnly=False
) -> List[Destination]:
    query = session.query(Destination)

    # Filters
    if activeOnly:
        query = query.filter(Destination.active.is_(True))
    elif qParam.active is not None:
        query = query.filter(Destination.active.is_(qParam.active))
    if qParam.name is not None:
        query = query.filter(Destination.name.ilike(f"%{qParam.name}%"))
    if qParam.price_ge is not None:
        query = query.filter(Destination.price >= qParam.price_ge)
    if qParam.price_le is not None:
        query = query.filter(Destination.price <= qParam.price_le)
    if qParam.id is not None:
        query = query.filter(Destination.id == qParam.id)
    if qParam.id_list is not None:
        query = query.filter(Destination.id.in_(qParam.id_list))

    # Ordering
    orderingAttribute = getattr(Destination, OrderBy(qParam.order_by).name)
    if qParam.order_in == OrderIn.ASC:
        query = query.order_by(orderingAttribute.asc())
    else:
        query = query.order_by(orderingAttribute.desc())

    # Pagination
    query = query.offset(qParam.offset).limit(qParam.limit)
    return query.all()


## API endpoints [Admin]
@route_admin.post(
    URL_DESTINATION,
    tags=["Destination"],
    response_model=DestinationSchema,
    status_code=status.HTTP_201_CREATED,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.UniqueViolation("For name value Kumasi already exists"),
        ]
    ),
    description="""
    Creates a destination with its ticket price in GHS.
    """,
)
async def create_destination(
    fParam: CreateForm = Depends(),
    bearer=Depends(bearer_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(bearer.credentials, session)
        validators.adminPermission(getters.admin(token, session))

        destination = Destination(
            name=fParam.name, price=fParam.price, active=fParam.active
        )
        session.add(destination)
        session.commit()
        session.refresh(destination)

        destinationData = jsonable_encoder(destination)
        logEvent(token, request_info, destinationData)
        return destinationData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.patch(
    URL_DESTINATION,
    tags=["Destination"],
    response_model=DestinationSchema,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission(), exceptions.InvalidIdentifier()]
    ),
    description="""
    Updates a destination.
    A new price applies to bookings created afterwards, existing bookings keep their amount.
    """,
)
async def update_destination(
    fParam: UpdateForm = Depends(),
    bearer=Depends(bearer_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(bearer.credentials, session)
        validators.adminPermission(getters.admin(token, session))

        destination = (
            session.query(Destination).filter(Destination.id == fParam.id).first()
        )
        if destination is None:
            raise exceptions.InvalidIdentifier()

        updateIfChanged(
            destination,
            fParam,
            [Destination.name.key, Destination.price.key, Destination.active.key],
        )
        haveUpdates = session.is_modified(destination)
        if haveUpdates:
            session.commit()
            session.refresh(destination)

        destinationData = jsonable_encoder(destination)
        if haveUpdates:
            logEvent(token, request_info, destinationData)
        return destinationData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.delete(
    URL_DESTINATION,
    tags=["Destination"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.DependencyInUse(Destination),
        ]
    ),
    description="""
    Deletes a destination that no booking references. Deactivate it otherwise.
    """,
)
async def delete_destination(
    fParam: DeleteForm = Depends(),
    bearer=Depends(bearer_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(bearer.credentials, session)
        validators.adminPermission(getters.admin(token, session))

        destination = (
            session.query(Destination).filter(Destination.id == fParam.id).first()
        )
        if destination is not None:
            isReferenced = (
                session.query(Booking.id)
                .filter(Booking.destination_id == destination.id)
                .first()
            )
            if isReferenced:
                raise exceptions.DependencyInUse(Destination)
            session.delete(destination)
            commitDeletion(session, Destination)
            logEvent(token, request_info, jsonable_encoder(destination))
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.get(
    URL_DESTINATION,
    tags=["Destination"],
    response_model=List[DestinationSchema],
    responses=fuseExceptionResponses([exceptions.InvalidToken()]),
    description="""
    Lists destinations, active or not.
    """,
)
async def fetch_destination(
    qParam: QueryParams = Depends(), bearer=Depends(bearer_admin)
):
    try:
        session = sessionMaker()
        validators.adminToken(bearer.credentials, session)

        return searchDestination(session, qParam)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


## API endpoints [Public]
@route_public.get(
    URL_DESTINATION,
    tags=["Destination"],
    response_model=List[PublicDestinationSchema],
    description="""
    Lists the active destinations with their prices, ordered by name.
    """,
)
async def fetch_destination(qParam: QueryParams = Depends()):
    try:
        session = sessionMaker()

        return searchDestination(session, qParam, activeOnly=True)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
