"""
Centralized exception handling for the ATT Transport booking API.

This module provides:
- Base APIException class extending FastAPI's HTTPException.
- Custom domain-specific exceptions with appropriate status codes and headers.
- Utility functions for formatting DB errors, logging, and routing exceptions.

Usage:
    - Raise specific exceptions in route handlers or services.
    - Use `handle()` to normalize raw exceptions (DB, Pydantic) into API-friendly responses.
"""

from traceback import format_exception
from logging import getLogger
from typing import Iterable
from fastapi import status, HTTPException
from sqlalchemy.exc import IntegrityError
from psycopg2.errorcodes import UNIQUE_VIOLATION, FOREIGN_KEY_VIOLATION
from pydantic import ValidationError
from sqlalchemy import Column


# ---------------------------------------------------------------------------
# Utility functions
# ---------------------------------------------------------------------------
def _sqlState(e: IntegrityError) -> str | None:
    diag = getattr(e.orig, "diag", None)
    return getattr(diag, "sqlstate", None)


def formatIntegrityError(e: IntegrityError) -> str:
    """
    Format a database integrity error into a user-friendly message.
    """
    diag = getattr(e.orig, "diag", None)
    errorMessage: str = getattr(diag, "message_detail", None) or str(e.orig)
    errorMessage = errorMessage.translate({ord(i): None for i in '\\"\\.\\(\\)'})
    errorMessage = errorMessage.replace("Key ", "For ")
    errorMessage = errorMessage.replace("=", " value ")
    return errorMessage


def isUniqueViolation(e: IntegrityError) -> bool:
    sqlState = _sqlState(e)
    if sqlState is not None:
        return sqlState == UNIQUE_VIOLATION
    return "UNIQUE constraint failed" in str(e.orig)


def isForeignKeyViolation(e: IntegrityError) -> bool:
    sqlState = _sqlState(e)
    if sqlState is not None:
        return sqlState == FOREIGN_KEY_VIOLATION
    return "FOREIGN KEY constraint failed" in str(e.orig)


def violatesIndex(e: IntegrityError, indexName: str, columns: Iterable[str]) -> bool:
    """
    Check whether an integrity error was raised by a specific unique index.

    PostgreSQL reports the index name through psycopg2's `diag`, SQLite only
    lists the offending `table.column` pairs in its message.

    Args:
        e (IntegrityError): The error raised on flush or commit.
        indexName (str): Name of the unique index.
        columns (Iterable[str]): The indexed columns as `table.column`.

    Returns:
        bool: True if the violation belongs to the index.
    """
    if not isUniqueViolation(e):
        return False
    diag = getattr(e.orig, "diag", None)
    if diag is not None:
        return diag.constraint_name == indexName
    message = str(e.orig)
    return all(column in message for column in columns)


def logException(e: Exception) -> None:
    """Log an exception with traceback using Uvicorn's error logger."""
    detail = str(format_exception(type(e), e, e.__traceback__))
    logger = getLogger("uvicorn.error")
    logger.error(detail)


# ---------------------------------------------------------------------------
# Base Exception
# ---------------------------------------------------------------------------
class APIException(HTTPException):
    """
    Base class for all application-specific exceptions.

    Provides default handling of status_code, detail, and headers.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    detail = None
    headers = None

    def __init__(self, *args, **kwargs):
        kwargs.setdefault("status_code", self.status_code)
        kwargs.setdefault("detail", self.detail)
        kwargs.setdefault("headers", self.headers)
        super().__init__(*args, **kwargs)


# ---------------------------------------------------------------------------
# Exception handling entrypoint
# ---------------------------------------------------------------------------
def handle(e: Exception):
    """
    Normalize and re-raise exceptions as API-friendly errors.

    Converts raw exceptions from the DB and Pydantic into
    corresponding APIException subclasses.
    """
    if isinstance(e, IntegrityError):
        if isUniqueViolation(e):
            raise UniqueViolation(formatIntegrityError(e))
        if isForeignKeyViolation(e):
            raise ForeignKeyViolation(formatIntegrityError(e))
    if isinstance(e, ValidationError):
        raise PydanticError(detail=e.errors())
    if isinstance(e, APIException):
        raise e

    logException(e)
    raise e


# ---------------------------------------------------------------------------
# Exception Classes
# ---------------------------------------------------------------------------
class PydanticError(APIException):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    headers = {"X-Error": "PydanticError"}

    def __init__(self, detail: str):
        super().__init__(detail=detail)


class UniqueViolation(APIException):
    status_code = status.HTTP_409_CONFLICT
    headers = {"X-Error": "UniqueViolation"}

    def __init__(self, detail: str):
        super().__init__(detail=detail)


class ForeignKeyViolation(APIException):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    headers = {"X-Error": "ForeignKeyViolation"}

    def __init__(self, detail: str):
        super().__init__(detail=detail)


class InvalidCredentials(APIException):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Invalid email or password"
    headers = {"X-Error": "InvalidCredentials"}


class InactiveAccount(APIException):
    status_code = status.HTTP_412_PRECONDITION_FAILED
    detail = "The account is not in active status"
    headers = {"X-Error": "InactiveAccount"}


class InvalidToken(APIException):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Invalid token"
    headers = {"X-Error": "InvalidToken"}


class NoPermission(APIException):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "This user has no permission to perform this action"
    headers = {"X-Error": "NoPermission"}


class InvalidIdentifier(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Invalid ID provided"
    headers = {"X-Error": "InvalidIdentifier"}


class InvalidStateTransition(APIException):
    status_code = status.HTTP_406_NOT_ACCEPTABLE
    headers = {"X-Error": "InvalidStateTransition"}

    def __init__(self, column_name: Column):
        detail = f"The {column_name.name} cannot be set to the provided value"
        super().__init__(detail=detail)


class InactiveResource(APIException):
    status_code = status.HTTP_412_PRECONDITION_FAILED
    headers = {"X-Error": "InactiveResource"}

    def __init__(self, orm_class):
        detail = (
            f"The status of {orm_class.__name__} is not in an active or useful state"
        )
        super().__init__(detail=detail)


class DependencyInUse(APIException):
    status_code = status.HTTP_409_CONFLICT
    headers = {"X-Error": "DependencyInUse"}

    def __init__(self, orm_class):
        detail = f"The {orm_class.__name__} is still referenced by other records"
        super().__init__(detail=detail)


class SeatInactive(APIException):
    status_code = status.HTTP_412_PRECONDITION_FAILED
    detail = "The selected seat is not available for booking, pick another seat"
    headers = {"X-Error": "SeatInactive"}


class SeatTaken(APIException):
    status_code = status.HTTP_409_CONFLICT
    detail = "The selected seat has already been booked, pick another seat"
    headers = {"X-Error": "SeatTaken"}


class InvalidPayload(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Invalid payload"
    headers = {"X-Error": "InvalidPayload"}


class ProviderError(APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    headers = {"X-Error": "ProviderError"}

    def __init__(self, error: str, details=None):
        super().__init__(detail={"error": error, "details": details})


class WebhookStorageError(APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    headers = {"X-Error": "WebhookStorageError"}

    def __init__(self, detail: str):
        super().__init__(detail=detail)


# Never reaches a client, the notification task logs it and moves on
class NotificationDeliveryFailure(Exception):
    pass
