"""Translation of billing errors into HTTP responses."""

from __future__ import annotations

from fastapi import HTTPException, status

from app.backend.src.services.errors import (
    BillingError,
    ConflictError,
    InvoiceNotFoundError,
    NotFoundError,
    RenderingError,
    StorageError,
    UnknownClientError,
    ValidationError,
)


def http_error(exc: BillingError) -> HTTPException:
    """Return the HTTP exception matching ``exc``'s place in the taxonomy."""

    if isinstance(exc, (UnknownClientError, InvoiceNotFoundError, NotFoundError)):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, ConflictError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, ValidationError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, (StorageError, RenderingError)):
        code = status.HTTP_502_BAD_GATEWAY
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(exc))


__all__ = ["http_error"]
