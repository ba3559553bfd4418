import base64, logging, requests
from decimal import Decimal
from uuid import UUID

from app.src.constants import (
    HTTP_TIMEOUT,
    HUBTEL_CALLBACK_URL,
    HUBTEL_CHECKOUT_DESCRIPTION,
    HUBTEL_CHECKOUT_URL,
    HUBTEL_CLIENT_ID,
    HUBTEL_CLIENT_SECRET,
    HUBTEL_MERCHANT_NUMBER,
    HUBTEL_RETURN_URL,
    HUBTEL_SUCCESS_CODE,
)
from app.src.exceptions import ProviderError

logger = logging.getLogger("uvicorn.error")


def basicAuth(clientId: str, clientSecret: str) -> str:
    credentials = base64.b64encode(
        bytes(clientId + ":" + clientSecret, "utf-8")
    ).decode("utf-8")
    return "Basic " + credentials


def _checkoutUrl(body) -> str | None:
    if not isinstance(body, dict):
        return None
    for dataKey, urlKey in (("data", "checkoutUrl"), ("Data", "CheckoutUrl")):
        data = body.get(dataKey)
        if isinstance(data, dict) and data.get(urlKey):
            return data[urlKey]
    return None


def initiateCheckout(
    bookingId: UUID,
    amount: Decimal | float,
    fullName: str | None = None,
    email: str | None = None,
    phone: str | None = None,
    returnUrl: str | None = None,
) -> str:
    """
    Open a Hubtel hosted checkout for a booking.

    The booking id is sent as the client reference, Hubtel echoes it back in
    every webhook call for this checkout.

    Args:
        bookingId (UUID): The booking being paid.
        amount (Decimal | float): Amount in GHS, rounded to two decimals.
        fullName, email, phone (str | None): Payer details shown by Hubtel.
        returnUrl (str | None): Where the payer lands afterwards, the
            configured return URL when None.

    Returns:
        str: The checkout URL the payer is redirected to.

    Raises:
        ProviderError: Missing credentials, an unreachable gateway, or a
            response without a success code and a checkout URL.
    """
    if not (HUBTEL_CLIENT_ID and HUBTEL_CLIENT_SECRET and HUBTEL_MERCHANT_NUMBER):
        raise ProviderError("Missing Hubtel credentials")

    payload = {
        "totalAmount": round(float(amount), 2),
        "description": HUBTEL_CHECKOUT_DESCRIPTION,
        "callbackUrl": HUBTEL_CALLBACK_URL,
        "returnUrl": returnUrl or HUBTEL_RETURN_URL,
        "cancellationUrl": returnUrl or HUBTEL_RETURN_URL,
        "merchantAccountNumber": HUBTEL_MERCHANT_NUMBER,
        "clientReference": str(bookingId),
        "customerName": fullName,
        "customerEmail": email,
        "customerMsisdn": phone,
    }
    headers = {
        "Content-type": "application/json",
        "Authorization": basicAuth(HUBTEL_CLIENT_ID, HUBTEL_CLIENT_SECRET),
    }
    try:
        response = requests.post(
            HUBTEL_CHECKOUT_URL, json=payload, headers=headers, timeout=HTTP_TIMEOUT
        )
    except requests.RequestException as e:
        raise ProviderError("Failed to reach Hubtel", str(e))

    try:
        body = response.json()
    except ValueError:
        body = response.text

    responseCode = None
    if isinstance(body, dict):
        responseCode = body.get("responseCode") or body.get("ResponseCode")
    checkoutUrl = _checkoutUrl(body)
    if not response.ok or responseCode != HUBTEL_SUCCESS_CODE or not checkoutUrl:
        logger.error(f"Hubtel checkout rejected booking {bookingId}: {body}")
        raise ProviderError("Failed to initiate Hubtel checkout", body)
    return checkoutUrl
