from datetime import datetime
from enum import IntEnum
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status, Form
from sqlalchemy.orm.session import Session
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from app.api.bearer import bearer_admin
from app.src.db import Booking, Referral, sessionMaker
from app.src import exceptions, validators, getters
from app.src.enums import OrderIn
from app.src.loggers import logEvent
from app.src.functions import (
    commitDeletion,
    enumStr,
    fuseExceptionResponses,
    updateIfChanged,
)
from app.src.urls import URL_REFERRAL

route_admin = APIRouter()
route_public = APIRouter()


## Output Schema
class PublicReferralSchema(BaseModel):
    id: int
    name: str


class ReferralSchema(PublicReferralSchema):
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
def searchReferral(
    session: Session, qParam: QueryParams, activeOnly=False
) -> List[Referral]:
    query = session.query(Referral)

    # Filters
    if activeOnly:
        query = query.filter(Referral.active.is_(True))
    elif qParam.active is not None:
        query = query.filter(Referral.active.is_(qParam.active))
    if qParam.name is not None:
        query = query.filter(Referral.name.ilike(f"%{qParam.name}%"))
    if qParam.id is not None:
        query = query.filter(Referral.id == qParam.id)

    # Ordering
    orderingAttribute = getattr(Referral, OrderBy(qParam.order_by).name)
    if qParam.order_in == OrderIn.ASC:
        query = query.order_by(orderingAttribute.asc())
    else:
        query = query.order_by(orderingAttribute.desc())

    # Pagination
    query = query.offset(qParam.offset).limit(qParam.limit)
    return query.all()


## API endpoints [Admin]
@route_admin.post(
    URL_REFERRAL,
    tags=["Referral"],
    response_model=ReferralSchema,
    status_code=status.HTTP_201_CREATED,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Creates a referral source.
    """,
)
async def create_referral(
    fParam: CreateForm = Depends(),
    bearer=Depends(bearer_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(bearer.credentials, session)
        validators.adminPermission(getters.admin(token, session))

        referral = Referral(name=fParam.name, active=fParam.active)
        session.add(referral)
        session.commit()
        session.refresh(referral)

        referralData = jsonable_encoder(referral)
        logEvent(token, request_info, referralData)
        return referralData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.patch(
    URL_REFERRAL,
    tags=["Referral"],
    response_model=ReferralSchema,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission(), exceptions.InvalidIdentifier()]
    ),
    description="""
    Renames, enables or disables a referral source.
    """,
)
async def update_referral(
    fParam: UpdateForm = Depends(),
    bearer=Depends(bearer_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(bearer.credentials, session)
        validators.adminPermission(getters.admin(token, session))

        referral = (
            session.query(Referral).filter(Referral.id == fParam.id).first()
        )
        if referral is None:
            raise exceptions.InvalidIdentifier()

        updateIfChanged(
            referral, fParam, [Referral.name.key, Referral.active.key]
        )
        haveUpdates = session.is_modified(referral)
        if haveUpdates:
            session.commit()
            session.refresh(referral)

        referralData = jsonable_encoder(referral)
        if haveUpdates:
            logEvent(token, request_info, referralData)
        return referralData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.delete(
    URL_REFERRAL,
    tags=["Referral"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.DependencyInUse(Referral),
        ]
    ),
    description="""
    Deletes a referral source that no booking references. Deactivate it otherwise.
    """,
)
async def delete_referral(
    fParam: DeleteForm = Depends(),
    bearer=Depends(bearer_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(bearer.credentials, session)
        validators.adminPermission(getters.admin(token, session))

        referral = (
            session.query(Referral).filter(Referral.id == fParam.id).first()
        )
        if referral is not None:
            isReferenced = (
                session.query(Booking.id)
                .filter(Booking.referral_id == referral.id)
                .first()
            )
            if isReferenced:
                raise exceptions.DependencyInUse(Referral)
            session.delete(referral)
            commitDeletion(session, Referral)
            logEvent(token, request_info, jsonable_encoder(referral))
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.get(
    URL_REFERRAL,
    tags=["Referral"],
    response_model=List[ReferralSchema],
    responses=fuseExceptionResponses([exceptions.InvalidToken()]),
    description="""
    Lists referral sources, active or not.
    """,
)
async def fetch_referral(
    qParam: QueryParams = Depends(), bearer=Depends(bearer_admin)
):
    try:
        session = sessionMaker()
        validators.adminToken(bearer.credentials, session)

        return searchReferral(session, qParam)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


## API endpoints [Public]
@route_public.get(
    URL_REFERRAL,
    tags=["Referral"],
    response_model=List[PublicReferralSchema],
    description="""
    Lists the active referral sources, ordered by name.
    """,
)
async def fetch_referral(qParam: QueryParams = Depends()):
    try:
        session = sessionMaker()

        return searchReferral(session, qParam, activeOnly=True)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
