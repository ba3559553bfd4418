from typing import List, Dict, Any, Iterable, Optional
from uuid import UUID
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.session import Session

from app.src import schemas
from app.src.constants import BOOKING_REFERENCE_LENGTH, GHANA_COUNTRY_CODE
from app.src.exceptions import APIException, DependencyInUse, isForeignKeyViolation


def fuseExceptionResponses(exceptions: List[APIException]) -> Dict[int, dict]:
    """
    Generate OpenAPI response documentation by fusing multiple APIException instances.

    Args:
        exceptions (List[APIException]): List of instantiated exceptions.

    Returns:
        Dict[int, dict]: A dictionary of OpenAPI response specs grouped by status code.
    """
    responses = {}

    for exception in exceptions:
        status_code = exception.status_code
        example_key = type(exception).__name__
        example_value = {
            "summary": str(exception.headers),
            "value": {"detail": exception.detail},
        }

        if status_code not in responses:
            responses[status_code] = {
                "model": schemas.ErrorResponse,
                "content": {
                    "application/json": {"examples": {example_key: example_value}}
                },
            }
        else:
            responses[status_code]["content"]["application/json"]["examples"][
                example_key
            ] = example_value

    return responses


def enumStr(enumClass) -> str:
    """
    Convert an Enum class into a comma-separated string of its members.

    Each enum member is formatted as "<NAME>: <VALUE>".

    Example:
        >>> enumStr(BookingStatus)
        'PENDING: pending, PAID: paid, CANCELLED: cancelled'
    """
    return ", ".join(f"{x.name}: {x.value}" for x in enumClass)


def isValidTransition(
    transitions: dict[Any, list[Any]], old_state: Any, new_state: Any
) -> bool:
    """
    Check if a state transition is valid.

    Args:
        transitions (dict[Any, list[Any]]): Mapping of valid transitions.
            Example:
                {
                    "pending": ["paid", "cancelled"],
                    "cancelled": ["pending"],
                }
        old_state (Any): Current state value.
        new_state (Any): Desired new state value.

    Returns:
        bool: True if transition is valid, False otherwise.

    Notes:
        - If `old_state` is not in the transitions mapping, this will return False.
    """
    if not transitions:
        return False
    if old_state not in transitions:
        return False
    return new_state in transitions[old_state]


def updateIfChanged(targetObj, sourceObj, fields: List[str]) -> None:
    """
    Update attributes on a target object from a source object
    only if the values differ and the new value is not None.

    Designed for use with SQLAlchemy models, where `fields` are typically
    provided as `Model.field.key`.

    Example:
        >>> updateIfChanged(destination, fParam, [Destination.name.key, Destination.price.key])
        # destination is updated where values differ, unchanged fields are skipped
    """
    for field in fields:
        new_value = getattr(sourceObj, field, None)
        if new_value is not None:
            old_value = getattr(targetObj, field)
            if old_value != new_value:
                setattr(targetObj, field, new_value)


def firstValue(payload: dict, keys: Iterable[str]) -> Any:
    """
    Return the first truthy value found under any of the given keys.

    Payment gateways are not consistent about key casing, so callers list
    every spelling they accept in order of preference.

    Example:
        >>> firstValue({"ClientReference": "abc"}, ["clientReference", "ClientReference"])
        'abc'
        >>> firstValue({}, ["status"]) is None
        True
    """
    for key in keys:
        value = payload.get(key)
        if value:
            return value
    return None


def toUUID(value: Any) -> Optional[UUID]:
    """Parse a booking reference, returning None when it is not a UUID."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


def shortReference(bookingId: UUID | str) -> str:
    """Passenger facing reference, the leading characters of the booking id."""
    return str(bookingId)[:BOOKING_REFERENCE_LENGTH]


def normalizeMsisdn(phone: Optional[str]) -> Optional[str]:
    """
    Convert a Ghanaian phone number into the MSISDN form expected by the SMS
    gateway (country code, no plus sign).

    Example:
        >>> normalizeMsisdn("024 123 4567")
        '233241234567'
        >>> normalizeMsisdn("+233241234567")
        '233241234567'
        >>> normalizeMsisdn(None) is None
        True
    """
    if not phone:
        return None
    digits = "".join(c for c in str(phone) if c.isdigit() or c == "+")
    if digits.startswith("+"):
        return digits[1:]
    if digits.startswith(GHANA_COUNTRY_CODE):
        return digits
    if digits.startswith("0") and len(digits) >= 10:
        return GHANA_COUNTRY_CODE + digits[1:]
    return digits or None


def commitDeletion(session: Session, orm_class) -> None:
    """
    Commit a pending delete of a catalog or fleet row.

    Callers check for referencing bookings first, a booking inserted between
    that check and the commit is still caught here by the foreign key.

    Raises:
        DependencyInUse: Another row still references the deleted one.
    """
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        if isForeignKeyViolation(e):
            raise DependencyInUse(orm_class)
        raise
