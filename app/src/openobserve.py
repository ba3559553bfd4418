import base64, json, requests
from requests import Response

from app.src.constants import (
    HTTP_TIMEOUT,
    OPENOBSERVE_HOST,
    OPENOBSERVE_ORG,
    OPENOBSERVE_PASSWORD,
    OPENOBSERVE_PORT,
    OPENOBSERVE_PROTOCOL,
    OPENOBSERVE_STREAM,
    OPENOBSERVE_USERNAME,
)

# Prepare Basic Auth credentials
credentials = base64.b64encode(
    bytes(OPENOBSERVE_USERNAME + ":" + OPENOBSERVE_PASSWORD, "utf-8")
).decode("utf-8")

# Default headers for all requests
headers = {"Content-type": "application/json", "Authorization": "Basic " + credentials}

# Construct OpenObserve endpoint URL
openobserve_host = f"{OPENOBSERVE_PROTOCOL}://{OPENOBSERVE_HOST}:{OPENOBSERVE_PORT}"
openobserve_url = f"{openobserve_host}/api/{OPENOBSERVE_ORG}/{OPENOBSERVE_STREAM}/_json"


def logEvent(eventData: dict) -> Response:
    """
    Send an audit event to the configured OpenObserve stream.

    Args:
        eventData (dict): The event to store.
            Example:
                {
                    "_method": "PATCH",
                    "_path": "/admin/booking",
                    "_app_id": 1,
                    "_admin_id": 1,
                    "status": "paid"
                }

    Returns:
        requests.Response: The HTTP response returned by OpenObserve.
    """
    return requests.post(
        openobserve_url,
        headers=headers,
        data=json.dumps(eventData, default=str),
        timeout=HTTP_TIMEOUT,
    )
