from datetime import datetime
from enum import IntEnum
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status, Form
from sqlalchemy.orm.session import Session
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from app.api.bearer import bearer_admin
from app.src.db import Booking, PickupPoint, sessionMaker
from app.src import exceptions, validators, getters
from app.src.enums import OrderIn
from app.src.loggers import logEvent
from app.src.functions import (
    commitDeletion,
    enumStr,
    fuseExceptionResponses,
    updateIfChanged,
)
from app.src.urls import URL_PICKUP_POINT

route_admin = APIRouter()
route_public = APIRouter()


## Output Schema
class PublicPickupPointSchema(BaseModel):
    id: int
    name: str


class PickupPointSchema(PublicPickupPointSchema):
    active: bool
    updated_on: Optional[datetime]
    created_on: datetime


## Input Forms
class CreateForm(BaseModel):
    name: str = Field(Form(min_length=1, max_length=64))
    active: bool = Field(Form(default=True))


class UpdateForm(BaseModel):
    id: int = Field(Form())
    name: str | None = Field(Form(min_length=1, max_length=64, default=None))
    active: bool | None = Field(Form(default=None))


class DeleteForm(BaseModel):
    id: int = Field(Form())


## Query Parameters
class OrderBy(IntEnum):
    id = 1
    name = 2
    created_on = 3


class QueryParams(BaseModel):
    name: str | None = Field(Query(default=None))
    active: bool | None = Field(Query(default=None))
    id: int | None = Field(Query(default=None))
    # Ordering
    order_by: OrderBy = Field(Query(default=OrderBy.name, description=enumStr(OrderBy)))
    order_in: OrderIn = Field(Query(default=OrderIn.ASC, description=enumStr(OrderIn)))
    # Pagination
    offset: int = Field(Query(default=0, ge=0))
    limit: int = Field(Query(default=100, gt=0, le=100))


## Function
def searchPickupPoint(
    session: Session, qParam: QueryParams, activeOnly=False
) -> List[PickupPoint]:
    query = session.query(PickupPoint)

    # Filters
    if activeOnly:
        query = query.filter(PickupPoint.active.is_(True))
    elif qParam.active is not None:
        query = query.filter(PickupPoint.active.is_(qParam.active))
    if qParam.name is not None:
        query = query.filter(PickupPoint.name.ilike(f"%{qParam.name}%"))
    if qParam.id is not None:
        query = query.filter(PickupPoint.id == qParam.id)

    # Ordering
    orderingAttribute = getattr(PickupPoint, OrderBy(qParam.order_by).name)
    if qParam.order_in == OrderIn.ASC:
        query = query.order_by(orderingAttribute.asc())
    else:
        query = query.order_by(orderingAttribute.desc())

    # Pagination
    query = query.offset(qParam.offset).limit(qParam.limit)
    return query.all()


## API endpoints [Admin]
@route_admin.post(
    URL_PICKUP_POINT,
    tags=["Pickup Point"],
    response_model=PickupPointSchema,
    status_code=status.HTTP_201_CREATED,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Creates a pickup point.
    """,
)
async def create_pickup_point(
    fParam: CreateForm = Depends(),
    bearer=Depends(bearer_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(bearer.credentials, session)
        validators.adminPermission(getters.admin(token, session))

        pickupPoint = PickupPoint(name=fParam.name, active=fParam.active)
        session.add(pickupPoint)
        session.commit()
        session.refresh(pickupPoint)

        pickupPointData = jsonable_encoder(pickupPoint)
        logEvent(token, request_info, pickupPointData)
        return pickupPointData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.patch(
    URL_PICKUP_POINT,
    tags=["Pickup Point"],
    response_model=PickupPointSchema,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission(), exceptions.InvalidIdentifier()]
    ),
    description="""
    Renames, enables or disables a pickup point.
    """,
)
async def update_pickup_point(
    fParam: UpdateForm = Depends(),
    bearer=Depends(bearer_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(bearer.credentials, session)
        validators.adminPermission(getters.admin(token, session))

        pickupPoint = (
            session.query(PickupPoint).filter(PickupPoint.id == fParam.id).first()
        )
        if pickupPoint is None:
            raise exceptions.InvalidIdentifier()

        updateIfChanged(
            pickupPoint, fParam, [PickupPoint.name.key, PickupPoint.active.key]
        )
        haveUpdates = session.is_modified(pickupPoint)
        if haveUpdates:
            session.commit()
            session.refresh(pickupPoint)

        pickupPointData = jsonable_encoder(pickupPoint)
        if haveUpdates:
            logEvent(token, request_info, pickupPointData)
        return pickupPointData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.delete(
    URL_PICKUP_POINT,
    tags=["Pickup Point"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.DependencyInUse(PickupPoint),
        ]
    ),
    description="""
    Deletes a pickup point that no booking references. Deactivate it otherwise.
    """,
)
async def delete_pickup_point(
    fParam: DeleteForm = Depends(),
    bearer=Depends(bearer_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(bearer.credentials, session)
        validators.adminPermission(getters.admin(token, session))

        pickupPoint = (
            session.query(PickupPoint).filter(PickupPoint.id == fParam.id).first()
        )
        if pickupPoint is not None:
            isReferenced = (
                session.query(Booking.id)
                .filter(Booking.pickup_point_id == pickupPoint.id)
                .first()
            )
            if isReferenced:
                raise exceptions.DependencyInUse(PickupPoint)
            session.delete(pickupPoint)
            commitDeletion(session, PickupPoint)
            logEvent(token, request_info, jsonable_encoder(pickupPoint))
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.get(
    URL_PICKUP_POINT,
    tags=["Pickup Point"],
    response_model=List[PickupPointSchema],
    responses=fuseExceptionResponses([exceptions.InvalidToken()]),
    description="""
    Lists pickup points, active or not.
    """,
)
async def fetch_pickup_point(
    qParam: QueryParams = Depends(), bearer=Depends(bearer_admin)
):
    try:
        session = sessionMaker()
        validators.adminToken(bearer.credentials, session)

        return searchPickupPoint(session, qParam)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


## API endpoints [Public]
@route_public.get(
    URL_PICKUP_POINT,
    tags=["Pickup Point"],
    response_model=List[PublicPickupPointSchema],
    description="""
    Lists the active pickup points, ordered by name.
    """,
)
async def fetch_pickup_point(qParam: QueryParams = Depends()):
    try:
        session = sessionMaker()

        return searchPickupPoint(session, qParam, activeOnly=True)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
