from typing import List
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.api.bearer import bearer_admin
from app.src.db import sessionMaker
from app.src import analytics, exceptions, validators, getters
from app.src.functions import fuseExceptionResponses
from app.src.urls import URL_ANALYTICS

route_admin = APIRouter()


## Output Schema
class StatusShareSchema(BaseModel):
    status: str
    count: int
    percentage: float


class DestinationShareSchema(BaseModel):
    destination_id: int
    name: str
    bookings: int
    revenue: float


class MonthlyRevenueSchema(BaseModel):
    month: str
    revenue: float


class DailyBookingsSchema(BaseModel):
    date: str
    count: int


class AnalyticsSchema(BaseModel):
    total_revenue: float
    total_bookings: int
    by_status: List[StatusShareSchema]
    by_destination: List[DestinationShareSchema]
    monthly_revenue: List[MonthlyRevenueSchema]
    daily_bookings: List[DailyBookingsSchema]


## API endpoints [Admin]
@route_admin.get(
    URL_ANALYTICS,
    tags=["Analytics"],
    response_model=AnalyticsSchema,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Revenue summary of all bookings.
    Revenue only counts paid bookings.
    Returns booking counts per status with their share, bookings and revenue per destination,
    paid revenue for each of the last 6 months and booking counts for each of the last 7 days.
    """,
)
async def fetch_analytics(bearer=Depends(bearer_admin)):
    try:
        session = sessionMaker()
        token = validators.adminToken(bearer.credentials, session)
        validators.adminPermission(getters.admin(token, session))

        return analytics.report(session)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
