import logging, requests

from app.src.constants import (
    HTTP_TIMEOUT,
    HUBTEL_SMS_CLIENT_ID,
    HUBTEL_SMS_CLIENT_SECRET,
    HUBTEL_SMS_FROM,
    HUBTEL_SMS_URL,
)
from app.src.exceptions import NotificationDeliveryFailure
from app.src.hubtel.checkout import basicAuth

logger = logging.getLogger("uvicorn.error")


def sendSMS(to: str, content: str) -> bool:
    """
    Send one SMS through the Hubtel messaging API. There is no retry.

    Args:
        to (str): Recipient MSISDN, e.g. "233241234567".
        content (str): Message text.

    Returns:
        bool: False when SMS credentials are not configured and nothing was
        sent, True once Hubtel accepted the message.

    Raises:
        NotificationDeliveryFailure: The gateway was unreachable or rejected
            the message.
    """
    if not (HUBTEL_SMS_CLIENT_ID and HUBTEL_SMS_CLIENT_SECRET):
        logger.warning("Hubtel SMS credentials are missing, message not sent")
        return False

    headers = {
        "Content-type": "application/json",
        "Authorization": basicAuth(HUBTEL_SMS_CLIENT_ID, HUBTEL_SMS_CLIENT_SECRET),
    }
    payload = {"From": HUBTEL_SMS_FROM, "To": to, "Content": content}
    try:
        response = requests.post(
            HUBTEL_SMS_URL, json=payload, headers=headers, timeout=HTTP_TIMEOUT
        )
    except requests.RequestException as e:
        raise NotificationDeliveryFailure(f"Hubtel SMS unreachable: {e}") from e

    try:
        body = response.json()
    except ValueError:
        body = {}
    status = None
    if isinstance(body, dict):
        status = body.get("status", body.get("Status"))
    # Hubtel reports an accepted message with status 0
    if not response.ok or status not in (None, 0, "0"):
        raise NotificationDeliveryFailure(
            f"Hubtel SMS rejected with HTTP {response.status_code}: {body}"
        )
    logger.info(f"SMS sent to {to}")
    return True
