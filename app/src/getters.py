from fastapi import Request
from sqlalchemy.orm.session import Session

from app.src import schemas
from app.src.db import Admin, AdminToken


def requestInfo(request: Request) -> schemas.RequestInfo:
    """
    Extract metadata about the incoming request.

    Args:
        request (Request): FastAPI request object.

    Returns:
        schemas.RequestInfo: Pydantic model containing:
            - method (str): HTTP method (GET, POST, etc.).
            - path (str): Path portion of the request URL.
            - app_id (int): Application ID from app state.
    """
    return schemas.RequestInfo(
        method=request.method,
        path=request.url.path,
        app_id=request.scope["app"].state.id,
    )


def admin(token: AdminToken, session: Session) -> Admin | None:
    """Fetch the admin account owning a token."""
    return session.query(Admin).filter(Admin.id == token.admin_id).first()
