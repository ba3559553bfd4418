from datetime import datetime, timedelta, timezone
from secrets import token_hex
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status, Form
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field, EmailStr
from sqlalchemy import func
from sqlalchemy.orm.session import Session

from app.api.bearer import bearer_admin
from app.src.constants import MAX_ADMIN_TOKENS, MAX_TOKEN_VALIDITY
from app.src.db import Admin, AdminToken, sessionMaker
from app.src import argon2, exceptions, validators, getters
from app.src.enums import AccountStatus, AdminRole, PlatformType
from app.src.loggers import logEvent
from app.src.functions import enumStr, fuseExceptionResponses
from app.src.urls import URL_ADMIN_TOKEN

route_admin = APIRouter()


## Output Schema
class SessionSchema(BaseModel):
    id: int
    admin_id: int
    expires_in: int
    expires_at: datetime
    platform_type: int
    client_details: Optional[str]
    updated_on: Optional[datetime]
    created_on: datetime


class SignInSchema(SessionSchema):
    access_token: str
    token_type: Optional[str] = "bearer"


## Input Forms
class SignInForm(BaseModel):
    email: EmailStr = Field(Form(max_length=256))
    password: str = Field(Form(max_length=32))
    platform_type: PlatformType = Field(
        Form(description=enumStr(PlatformType), default=PlatformType.OTHER)
    )
    client_details: str | None = Field(
        Form(max_length=1024, default=None, description="Browser or device name")
    )


class SessionForm(BaseModel):
    id: int | None = Field(
        Form(default=None, description="Session to act on, the current one if omitted")
    )


## Query Parameters
class QueryParams(BaseModel):
    admin_id: int | None = Field(Query(default=None))
    platform_type: PlatformType | None = Field(
        Query(default=None, description=enumStr(PlatformType))
    )
    # Pagination
    offset: int = Field(Query(default=0, ge=0))
    limit: int = Field(Query(default=20, gt=0, le=100))


## Function
def findAdmin(session: Session, email: str) -> Admin | None:
    # Rows written outside the account API may hold mixed case
    return session.query(Admin).filter(func.lower(Admin.email) == email.lower()).first()


def openSession(session: Session, admin: Admin, fParam: SignInForm) -> AdminToken:
    """
    Issue a new access token, closing the oldest sessions of the admin so at
    most `MAX_ADMIN_TOKENS` stay open.
    """
    openTokens = (
        session.query(AdminToken)
        .filter(AdminToken.admin_id == admin.id)
        .order_by(AdminToken.created_on.desc(), AdminToken.id.desc())
        .all()
    )
    for stale in openTokens[MAX_ADMIN_TOKENS - 1 :]:
        session.delete(stale)
    session.flush()

    token = AdminToken(
        admin_id=admin.id,
        expires_in=MAX_TOKEN_VALIDITY,
        expires_at=datetime.now(timezone.utc) + timedelta(seconds=MAX_TOKEN_VALIDITY),
        platform_type=fParam.platform_type,
        client_details=fParam.client_details,
    )
    session.add(token)
    session.commit()
    session.refresh(token)
    return token


def ownedSession(current: AdminToken, id: int | None) -> AdminToken:
    if id is None or id == current.id:
        return current
    raise exceptions.NoPermission()


def auditData(token: AdminToken) -> dict:
    return jsonable_encoder(token, exclude={"access_token"})


## API endpoints [Admin]
@route_admin.post(
    URL_ADMIN_TOKEN,
    tags=["Token"],
    response_model=SignInSchema,
    status_code=status.HTTP_201_CREATED,
    responses=fuseExceptionResponses(
        [exceptions.InactiveAccount(), exceptions.InvalidCredentials()]
    ),
    description="""
    Back office sign-in.
    The email is matched without regard to case and the password against its Argon2 hash.
    A suspended account cannot sign in.
    An admin keeps at most MAX_ADMIN_TOKENS sessions open, signing in again closes the oldest one.
    The token is valid for MAX_TOKEN_VALIDITY seconds.
    """,
)
async def create_token(
    fParam: SignInForm = Depends(),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        admin = findAdmin(session, fParam.email)
        if admin is None or not argon2.checkPassword(fParam.password, admin.password):
            raise exceptions.InvalidCredentials()
        if admin.status != AccountStatus.ACTIVE:
            raise exceptions.InactiveAccount()

        token = openSession(session, admin, fParam)
        logEvent(token, request_info, auditData(token))
        return jsonable_encoder(token)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.patch(
    URL_ADMIN_TOKEN,
    tags=["Token"],
    response_model=SignInSchema,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Keeps the current back office session alive.
    Only the session making the request can be extended, its id may be given or left out.
    The validity grows by MAX_TOKEN_VALIDITY seconds and a new access token replaces the old one.
    """,
)
async def refresh_token(
    fParam: SessionForm = Depends(),
    bearer=Depends(bearer_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        current = validators.adminToken(bearer.credentials, session)
        token = ownedSession(current, fParam.id)

        token.expires_in += MAX_TOKEN_VALIDITY
        token.expires_at += timedelta(seconds=MAX_TOKEN_VALIDITY)
        token.access_token = token_hex(32)
        session.commit()
        session.refresh(token)

        logEvent(token, request_info, auditData(token))
        return jsonable_encoder(token)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.delete(
    URL_ADMIN_TOKEN,
    tags=["Token"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Signs out of a back office session, the current one when no id is given.
    Only a super admin can close the sessions of another admin, for example on a lost device.
    An unknown id is ignored.
    """,
)
async def delete_token(
    fParam: SessionForm = Depends(),
    bearer=Depends(bearer_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        current = validators.adminToken(bearer.credentials, session)

        token = current
        if fParam.id is not None:
            token = session.get(AdminToken, fParam.id)
            if token is None:
                return Response(status_code=status.HTTP_204_NO_CONTENT)
            if token.admin_id != current.admin_id:
                validators.adminPermission(
                    getters.admin(current, session), [AdminRole.SUPER_ADMIN]
                )

        session.delete(token)
        session.commit()
        logEvent(current, request_info, auditData(token))
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.get(
    URL_ADMIN_TOKEN,
    tags=["Token"],
    response_model=List[SessionSchema],
    responses=fuseExceptionResponses([exceptions.InvalidToken()]),
    description="""
    Lists open back office sessions, newest first, without their access tokens.
    A super admin sees the sessions of every admin, other admins only their own.
    """,
)
async def fetch_tokens(qParam: QueryParams = Depends(), bearer=Depends(bearer_admin)):
    try:
        session = sessionMaker()
        current = validators.adminToken(bearer.credentials, session)
        admin = getters.admin(current, session)

        query = session.query(AdminToken)
        if admin is None or admin.role != AdminRole.SUPER_ADMIN:
            query = query.filter(AdminToken.admin_id == current.admin_id)
        if qParam.admin_id is not None:
            query = query.filter(AdminToken.admin_id == qParam.admin_id)
        if qParam.platform_type is not None:
            query = query.filter(AdminToken.platform_type == qParam.platform_type)

        query = query.order_by(AdminToken.created_on.desc(), AdminToken.id.desc())
        return query.offset(qParam.offset).limit(qParam.limit).all()
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
