from typing import Any, List, Tuple, Type

from fastapi import status

from src.domain.errors import (
    AuthorizationError,
    ConflictError,
    ExpiredError,
    InactiveActorError,
    InvalidTokenError,
    NotFoundError,
    TenantIsolationError,
    ValidationError,
)
from src.domain.result import Error, Result


class ClientError(Exception):
    def __init__(self, base_error: Error, status_code: int = status.HTTP_400_BAD_REQUEST):
        self.base_error = base_error
        self.status_code = status_code
        super().__init__(base_error.message)


class ServerError(Exception):
    def __init__(self, base_error: Error):
        self.base_error = base_error
        super().__init__(base_error.message)


# Expired and unknown/consumed tokens look the same from outside
INVITATION_TOKEN_ERROR = Error(
    "INVITATION_TOKEN_INVALID", "Invitation token is invalid or has expired"
)

STATUS_BY_ERROR: List[Tuple[Type[Error], int]] = [
    (TenantIsolationError, status.HTTP_403_FORBIDDEN),
    (InactiveActorError, status.HTTP_403_FORBIDDEN),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (ConflictError, status.HTTP_409_CONFLICT),
    (ExpiredError, status.HTTP_410_GONE),
    (InvalidTokenError, status.HTTP_410_GONE),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
]


def to_http_error(error: Error) -> Exception:
    if isinstance(error, (ExpiredError, InvalidTokenError)):
        return ClientError(INVITATION_TOKEN_ERROR, status_code=status.HTTP_410_GONE)
    for error_class, status_code in STATUS_BY_ERROR:
        if isinstance(error, error_class):
            return ClientError(error, status_code=status_code)
    return ServerError(error)


def unwrap(result: Result) -> Any:
    """Value of an ok Result; raises the mapped HTTP error otherwise"""
    if result.is_err():
        raise to_http_error(result.error)
    return result.value
