"""
Validation and permission checks for the booking API.

This module centralizes guard logic such as:
- Token validation
- Role-based permission checks
- State transition enforcement
- Catalog reference checks

All functions raise appropriate exceptions from `app.src.exceptions`
when validation fails, ensuring consistent error handling.
"""

from datetime import datetime, timezone
from typing import Any, Iterable
from sqlalchemy import Column
from sqlalchemy.orm.session import Session

from app.src.db import Admin, AdminToken
from app.src.enums import AccountStatus, AdminRole
from app.src import exceptions
from app.src.functions import isValidTransition


# ---------------------------------------------------------------------------
# Token validation
# ---------------------------------------------------------------------------
def adminToken(access_token: str, session: Session) -> AdminToken:
    """
    Validate an admin access token.

    Args:
        access_token (str): The bearer token string provided by the client.
        session (Session): Active SQLAlchemy session for DB lookup.

    Returns:
        AdminToken: The valid token object from the database.

    Raises:
        exceptions.InvalidToken: If the token is not found or has expired.
    """
    current_time = datetime.now(timezone.utc)

    token = (
        session.query(AdminToken)
        .filter(
            AdminToken.access_token == access_token,
            AdminToken.expires_at > current_time,
        )
        .first()
    )

    if token is None:
        raise exceptions.InvalidToken()

    return token


# ---------------------------------------------------------------------------
# Permission checks
# ---------------------------------------------------------------------------
def adminPermission(
    admin: Admin | None, roles: Iterable[AdminRole] = tuple(AdminRole)
) -> bool:
    """
    Validate that the admin is active and holds one of the given roles.

    Raises:
        exceptions.NoPermission: If the admin is missing, suspended or has
            another role.
    """
    if admin and admin.status == AccountStatus.ACTIVE and admin.role in roles:
        return True
    raise exceptions.NoPermission()


# ---------------------------------------------------------------------------
# Other validations
# ---------------------------------------------------------------------------
def stateTransition(
    transitions: dict[Any, list[Any]], old_state: Any, new_state: Any, state: Column
) -> bool:
    """
    Validate whether a state transition is allowed.

    Raises:
        exceptions.InvalidStateTransition: If the transition is not permitted.
    """
    if not isValidTransition(transitions, old_state, new_state):
        raise exceptions.InvalidStateTransition(state)
    return True


def activeReference(session: Session, orm_class, id: int | None, optional=False):
    """
    Fetch a catalog or fleet row referenced by a booking and make sure it can
    still be used.

    Args:
        session (Session): Active SQLAlchemy session.
        orm_class: Model with `id` and `active` columns.
        id (int | None): The referenced identifier.
        optional (bool): Accept a missing reference.

    Returns:
        The referenced row, or None for an accepted missing reference.

    Raises:
        exceptions.InvalidIdentifier: If the row does not exist.
        exceptions.InactiveResource: If the row is disabled.
    """
    if id is None and optional:
        return None
    row = session.query(orm_class).filter(orm_class.id == id).first()
    if row is None:
        raise exceptions.InvalidIdentifier()
    if not row.active:
        raise exceptions.InactiveResource(orm_class)
    return row
