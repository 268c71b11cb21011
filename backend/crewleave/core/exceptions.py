"""Business-rule rejections raised by the leave services.

Every rejection carries a human-readable message that is shown to the caller
verbatim, and the HTTP status class it maps to at the API boundary.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse


class LeaveError(Exception):
    """Base class for structured rejections."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(LeaveError):
    """Malformed or policy-violating input (dates, zero working days, minimum stay)."""


class ConflictError(LeaveError):
    """Overlap, capacity exceeded, insufficient balance, duplicate invite."""


class NotFoundError(LeaveError):
    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(LeaveError):
    """Acting user may not touch this record (e.g. cancelling someone else's request)."""

    status_code = status.HTTP_403_FORBIDDEN


class StateError(LeaveError):
    """Operation not allowed in the record's current status."""


class IntegrityError(LeaveError):
    """Store or transaction failure. The message never includes driver details."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "The operation could not be completed, please retry"):
        super().__init__(message)


async def leave_error_handler(request: Request, exc: LeaveError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})
