from datetime import datetime
from enum import IntEnum
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status, Form
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field, EmailStr

from app.api.bearer import bearer_admin
from app.src.constants import REGEX_PASSWORD
from app.src.db import Admin, AdminToken, sessionMaker
from app.src import argon2, exceptions, validators, getters
from app.src.enums import AccountStatus, AdminRole, OrderIn
from app.src.loggers import logEvent
from app.src.functions import enumStr, fuseExceptionResponses
from app.src.urls import URL_ADMIN_ACCOUNT

route_admin = APIRouter()


## Output Schema
class AdminSchema(BaseModel):
    id: int
    email: str
    name: str
    role: int
    status: int
    updated_on: Optional[datetime]
    created_on: datetime


## Input Forms
class CreateForm(BaseModel):
    email: EmailStr = Field(
        Form(max_length=256, description="Email in RFC 5322 format")
    )
    name: str = Field(Form(min_length=1, max_length=64))
    password: str = Field(Form(pattern=REGEX_PASSWORD, min_length=8, max_length=32))
    role: AdminRole = Field(Form(description=enumStr(AdminRole), default=AdminRole.ADMIN))


class UpdateForm(BaseModel):
    id: int | None = Field(Form(default=None))
    name: str | None = Field(Form(min_length=1, max_length=64, default=None))
    password: str | None = Field(
        Form(pattern=REGEX_PASSWORD, min_length=8, max_length=32, default=None)
    )
    role: AdminRole | None = Field(Form(description=enumStr(AdminRole), default=None))
    status: AccountStatus | None = Field(
        Form(description=enumStr(AccountStatus), default=None)
    )


class DeleteForm(BaseModel):
    id: int = Field(Form())


## Query Parameters
class OrderBy(IntEnum):
    id = 1
    updated_on = 2
    created_on = 3


class QueryParams(BaseModel):
    email: str | None = Field(Query(default=None))
    name: str | None = Field(Query(default=None))
    role: AdminRole | None = Field(Query(default=None, description=enumStr(AdminRole)))
    status: AccountStatus | None = Field(
        Query(default=None, description=enumStr(AccountStatus))
    )
    # id based
    id: int | None = Field(Query(default=None))
    id_list: List[int] | None = Field(Query(default=None))
    # Ordering
    order_by: OrderBy = Field(Query(default=OrderBy.id, description=enumStr(OrderBy)))
    order_in: OrderIn = Field(Query(default=OrderIn.DESC, description=enumStr(OrderIn)))
    # Pagination
    offset: int = Field(Query(default=0, ge=0))
    limit: int = Field(Query(default=20, gt=0, le=100))


## API endpoints [Admin]
@route_admin.post(
    URL_ADMIN_ACCOUNT,
    tags=["Account"],
    response_model=AdminSchema,
    status_code=status.HTTP_201_CREATED,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.UniqueViolation("For email value admin@example.com already exists"),
        ]
    ),
    description="""
    Create a new admin account. Only a super admin can create accounts.
    The email is stored in lower case, duplicates are rejected.
    The password is hashed using Argon2 before storing.
    """,
)
async def create_admin(
    fParam: CreateForm = Depends(),
    bearer=Depends(bearer_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(bearer.credentials, session)
        validators.adminPermission(getters.admin(token, session), [AdminRole.SUPER_ADMIN])

        admin = Admin(
            email=fParam.email.lower(),
            name=fParam.name,
            password=argon2.makePassword(fParam.password),
            role=fParam.role,
        )
        session.add(admin)
        session.commit()
        session.refresh(admin)

        adminData = jsonable_encoder(admin, exclude={"password"})
        logEvent(token, request_info, adminData)
        return adminData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.patch(
    URL_ADMIN_ACCOUNT,
    tags=["Account"],
    response_model=AdminSchema,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission(), exceptions.InvalidIdentifier()]
    ),
    description="""
    Update an admin account.
    Admins can update their own name and password.
    Only a super admin can update other accounts or change a role or status, never their own.
    Suspending an account revokes all of its tokens.
    """,
)
async def update_admin(
    fParam: UpdateForm = Depends(),
    bearer=Depends(bearer_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(bearer.credentials, session)
        caller = getters.admin(token, session)

        if fParam.id is None:
            fParam.id = token.admin_id
        isSelfUpdate = fParam.id == token.admin_id
        isSuperAdmin = bool(caller and caller.role == AdminRole.SUPER_ADMIN)
        if not isSelfUpdate and not isSuperAdmin:
            raise exceptions.NoPermission()

        admin = session.query(Admin).filter(Admin.id == fParam.id).first()
        if admin is None:
            raise exceptions.InvalidIdentifier()

        if fParam.password is not None:
            admin.password = argon2.makePassword(fParam.password)
        if fParam.name is not None and admin.name != fParam.name:
            admin.name = fParam.name
        if fParam.role is not None and admin.role != fParam.role:
            if isSelfUpdate or not isSuperAdmin:
                raise exceptions.NoPermission()
            admin.role = fParam.role
        if fParam.status is not None and admin.status != fParam.status:
            if isSelfUpdate or not isSuperAdmin:
                raise exceptions.NoPermission()
            # Remove all the tokens
            if fParam.status == AccountStatus.SUSPENDED:
                session.query(AdminToken).filter(
                    AdminToken.admin_id == fParam.id
                ).delete()
            admin.status = fParam.status

        haveUpdates = session.is_modified(admin)
        if haveUpdates:
            session.commit()
            session.refresh(admin)

        adminData = jsonable_encoder(admin, exclude={"password"})
        if haveUpdates:
            logEvent(token, request_info, adminData)
        return adminData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.delete(
    URL_ADMIN_ACCOUNT,
    tags=["Account"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=fuseExceptionResponses([exceptions.InvalidToken(), exceptions.NoPermission()]),
    description="""
    Delete an admin account. Only a super admin can delete accounts.
    Self-deletion is not allowed.
    """,
)
async def delete_admin(
    fParam: DeleteForm = Depends(),
    bearer=Depends(bearer_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(bearer.credentials, session)
        validators.adminPermission(getters.admin(token, session), [AdminRole.SUPER_ADMIN])

        # Prevent self deletion
        if fParam.id == token.admin_id:
            raise exceptions.NoPermission()

        admin = session.query(Admin).filter(Admin.id == fParam.id).first()
        if admin is not None:
            session.delete(admin)
            session.commit()
            logEvent(token, request_info, jsonable_encoder(admin, exclude={"password"}))
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.get(
    URL_ADMIN_ACCOUNT,
    tags=["Account"],
    response_model=List[AdminSchema],
    responses=fuseExceptionResponses([exceptions.InvalidToken()]),
    description="""
    Fetch admin accounts with filtering, sorting, and pagination.
    """,
)
async def fetch_admin(qParam: QueryParams = Depends(), bearer=Depends(bearer_admin)):
    try:
        session = sessionMaker()
        validators.adminToken(bearer.credentials, session)

        query = session.query(Admin)

        # Filters
        if qParam.email is not None:
            query = query.filter(Admin.email.ilike(f"%{qParam.email}%"))
        if qParam.name is not None:
            query = query.filter(Admin.name.ilike(f"%{qParam.name}%"))
        if qParam.role is not None:
            query = query.filter(Admin.role == qParam.role)
        if qParam.status is not None:
            query = query.filter(Admin.status == qParam.status)
        if qParam.id is not None:
            query = query.filter(Admin.id == qParam.id)
        if qParam.id_list is not None:
            query = query.filter(Admin.id.in_(qParam.id_list))

        # Ordering
        orderingAttribute = getattr(Admin, OrderBy(qParam.order_by).name)
        if qParam.order_in == OrderIn.ASC:
            query = query.order_by(orderingAttribute.asc())
        else:
            query = query.order_by(orderingAttribute.desc())

        # Pagination
        query = query.offset(qParam.offset).limit(qParam.limit)
        return query.all()
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
