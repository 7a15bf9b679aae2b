"""
HTTP Error Mapping
==================

Translate the error taxonomy into HTTP responses.
"""

from fastapi import status
from fastapi.responses import JSONResponse

from shared.errors import (
    AuthError,
    ConnectivityError,
    DiplomaRegistryError,
    InvalidTransition,
    NotFoundError,
    OperationTimeout,
    RejectionError,
)
from shared.models import ErrorResponse


_STATUS_BY_FAMILY: list[tuple[type[DiplomaRegistryError], int]] = [
    (ConnectivityError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (AuthError, status.HTTP_401_UNAUTHORIZED),
    (RejectionError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (OperationTimeout, status.HTTP_504_GATEWAY_TIMEOUT),
    (InvalidTransition, status.HTTP_409_CONFLICT),
]


def http_status_for(error: DiplomaRegistryError) -> int:
    """HTTP status for a typed failure."""
    for family, status_code in _STATUS_BY_FAMILY:
        if isinstance(error, family):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_response(error: DiplomaRegistryError) -> JSONResponse:
    """Render a typed failure as a JSON error body."""
    status_code = http_status_for(error)
    body = ErrorResponse.from_error(error, status_code)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))
