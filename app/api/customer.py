from datetime import datetime
from typing import List
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from app.api.bearer import bearer_admin
from app.src.db import sessionMaker
from app.src import analytics, exceptions, validators, getters
from app.src.functions import fuseExceptionResponses
from app.src.urls import URL_CUSTOMER

route_admin = APIRouter()


## Output Schema
class CustomerSchema(BaseModel):
    email: str
    full_name: str
    phone: str
    passenger_class: str
    total_bookings: int
    total_spent: float
    last_booking: datetime


## Query Parameters
class QueryParams(BaseModel):
    search: str | None = Field(
        Query(default=None, description="Matches name, email or phone")
    )
    # Pagination
    offset: int = Field(Query(default=0, ge=0))
    limit: int = Field(Query(default=20, gt=0, le=100))


## API endpoints [Admin]
@route_admin.get(
    URL_CUSTOMER,
    tags=["Customer"],
    response_model=List[CustomerSchema],
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Lists the passengers who have booked, one entry per email address regardless of its case.
    Name, phone and passenger class are taken from the latest booking.
    Total spent only counts paid bookings.
    Ordered by the latest booking, most recent first.
    """,
)
async def fetch_customer(qParam: QueryParams = Depends(), bearer=Depends(bearer_admin)):
    try:
        session = sessionMaker()
        token = validators.adminToken(bearer.credentials, session)
        validators.adminPermission(getters.admin(token, session))

        customers = analytics.customerReport(session, qParam.search)
        return customers[qParam.offset : qParam.offset + qParam.limit]
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
