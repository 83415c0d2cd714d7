"""HTTP exceptions and translation of domain errors."""

from fastapi import HTTPException, status

from slotmanager.services.errors import (
    AllocationConflict,
    AllocationNotFound,
    AllocationRejected,
    DuplicateResource,
    ResourceNotFound,
    SlotManagerError,
)


class AuthenticationError(HTTPException):
    """Exception raised when authentication fails."""

    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class PermissionDeniedError(HTTPException):
    """Exception raised for inactive accounts."""

    def __init__(self, detail: str = "Inactive user"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFoundError(HTTPException):
    """Exception raised when a phone, IP or allocation is not found."""

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class BadRequestError(HTTPException):
    """Exception raised when a request is refused, e.g. by admission."""

    def __init__(self, detail: str = "Bad request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class ConflictError(HTTPException):
    """Exception raised for duplicates and lost concurrent writes."""

    def __init__(self, detail: str = "Resource already exists"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


# Most specific class first
_DOMAIN_TO_HTTP = (
    (ResourceNotFound, NotFoundError),
    (AllocationNotFound, NotFoundError),
    (AllocationRejected, BadRequestError),
    (DuplicateResource, ConflictError),
    (AllocationConflict, ConflictError),
)


def to_http_exception(exc: SlotManagerError) -> HTTPException:
    """Map a service-layer error onto the HTTP exception returned to clients."""
    for domain_error, http_error in _DOMAIN_TO_HTTP:
        if isinstance(exc, domain_error):
            return http_error(str(exc))
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=str(exc),
    )
