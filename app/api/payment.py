from logging import getLogger
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.exc import SQLAlchemyError

from app.src.db import sessionMaker
from app.src import exceptions, getters, notifications, reconciler, schemas
from app.src.hubtel import checkout
from app.src.loggers import logEvent
from app.src.functions import fuseExceptionResponses
from app.src.urls import URL_PAYMENT, URL_PAYMENT_WEBHOOK

route_public = APIRouter()
logger = getLogger("uvicorn.error")


## Output Schema
class CheckoutSchema(BaseModel):
    url: str


## Input Body
class CreateBody(BaseModel):
    bookingId: str = Field(min_length=1)
    amount: float = Field(gt=0)
    fullName: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


## API endpoints [Public]
@route_public.post(
    URL_PAYMENT,
    tags=["Payment"],
    response_model=CheckoutSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidPayload(),
            exceptions.ProviderError("Failed to initiate Hubtel checkout"),
        ]
    ),
    description="""
    Opens a Hubtel checkout for a booking and returns the URL to redirect the payer to.
    Expects a JSON body with bookingId and a positive amount, optionally fullName, email and phone.
    The booking id is the client reference Hubtel reports back to the webhook.
    The payer returns to the calling origin, or to the configured return URL.
    """,
)
async def create_payment(
    request: Request,
    request_info=Depends(getters.requestInfo),
):
    try:
        try:
            fBody = CreateBody.model_validate(await request.json())
        except (ValueError, ValidationError):
            raise exceptions.InvalidPayload()

        origin = request.headers.get("origin")
        url = checkout.initiateCheckout(
            fBody.bookingId,
            fBody.amount,
            fullName=fBody.fullName,
            email=fBody.email,
            phone=fBody.phone,
            returnUrl=f"{origin.rstrip('/')}/" if origin else None,
        )
        logEvent(None, request_info, jsonable_encoder(fBody))
        return {"url": url}
    except Exception as e:
        exceptions.handle(e)


@route_public.api_route(
    URL_PAYMENT_WEBHOOK,
    methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    tags=["Payment"],
    response_model=schemas.Acknowledgement,
    responses=fuseExceptionResponses(
        [exceptions.WebhookStorageError("Failed to store the payment notification")]
    ),
    description="""
    Receives Hubtel payment notifications. Accepts any method, OPTIONS is acknowledged directly.
    The body is parsed leniently, an unreadable body counts as empty.
    The booking is found through the client reference. Notifications without a known reference are acknowledged and ignored.
    Payment reference and receipt are recorded on every call.
    A successful status moves a pending booking to paid and sends one confirmation SMS.
    Redeliveries do not change the booking again and send nothing.
    """,
)
async def payment_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    request_info=Depends(getters.requestInfo),
):
    if request.method == "OPTIONS":
        return {"ok": True}

    try:
        payload = await request.json()
    except ValueError:
        payload = {}
    notification = reconciler.parseNotification(payload)
    if notification.reference is None:
        logger.warning(f"Hubtel notification without client reference: {payload}")
        return {"ok": True}

    try:
        session = sessionMaker()
        booking, paidNow = reconciler.applyNotification(session, notification)
        if booking is None:
            logger.warning(f"Hubtel notification for unknown booking {notification.reference}")
            return {"ok": True}
        if paidNow:
            background_tasks.add_task(notifications.sendPaidConfirmation, booking.id)

        logData = jsonable_encoder(notification)
        logData["booking_status"] = booking.status
        logData["paid_now"] = paidNow
        logEvent(None, request_info, logData)
        return {"ok": True}
    except SQLAlchemyError as e:
        exceptions.logException(e)
        raise exceptions.WebhookStorageError("Failed to store the payment notification")
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
