from typing import Optional
from app.src.db import AdminToken
from app.src import openobserve
from app.src.schemas import RequestInfo


def logEvent(
    token: Optional[AdminToken],
    requestInfo: RequestInfo,
    data: dict,
) -> None:
    """
    Log an event to OpenObserve with request and user context.

    Args:
        token (AdminToken | None): Token of the signed in admin, None for
            public callers such as passengers and the payment gateway.
        requestInfo (RequestInfo): Metadata about the current request.
        data (dict): Additional event-specific details to include in the log.

    Notes:
        - Automatically attaches `_app_id`, `_method`, `_path`.
        - `_admin_id` is attached only for authenticated requests.
    """
    logDetails = {
        "_method": requestInfo.method,
        "_path": requestInfo.path,
        "_app_id": requestInfo.app_id,
    }
    if isinstance(token, AdminToken):
        logDetails["_admin_id"] = token.admin_id

    logDetails.update(data)
    openobserve.logEvent(logDetails)
