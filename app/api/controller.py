from fastapi import FastAPI
from app.api import (
    admin_token,
    admin_account,
    bus,
    seat,
    destination,
    pickup_point,
    referral,
    booking,
    payment,
    analytics,
    customer,
)
from app.src.enums import AppID


# ------------------------------------------------------
# Create separate FastAPI apps for each user domain
# ------------------------------------------------------
app_admin = FastAPI(title="Admin APP")
app_public = FastAPI(title="Public APP")

# Tag each app with its AppID
app_admin.state.id = AppID.ADMIN
app_public.state.id = AppID.PUBLIC


# ------------------------------------------------------
# Admin routers
# ------------------------------------------------------
app_admin.include_router(admin_token.route_admin)
app_admin.include_router(admin_account.route_admin)
app_admin.include_router(bus.route_admin)
app_admin.include_router(seat.route_admin)
app_admin.include_router(destination.route_admin)
app_admin.include_router(pickup_point.route_admin)
app_admin.include_router(referral.route_admin)
app_admin.include_router(booking.route_admin)
app_admin.include_router(analytics.route_admin)
app_admin.include_router(customer.route_admin)


# ------------------------------------------------------
# Public routers
# ------------------------------------------------------
app_public.include_router(bus.route_public)
app_public.include_router(seat.route_public)
app_public.include_router(destination.route_public)
app_public.include_router(pickup_point.route_public)
app_public.include_router(referral.route_public)
app_public.include_router(booking.route_public)
app_public.include_router(payment.route_public)
