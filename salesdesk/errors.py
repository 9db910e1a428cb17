"""
Domain errors for the conversion workflow.

ValidationError, AuthorizationError, NotFoundError and ConflictError abort
the operation and reach the caller unchanged. ExternalLookupError and
NotificationError are caught at the boundary and downgraded to warnings.
"""

from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class WorkflowError(Exception):
    """Base class for errors raised by SalesDesk services."""

    code = "workflow_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(WorkflowError):
    """Malformed input, rejected before any state mutation."""

    code = "validation_error"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class AuthorizationError(WorkflowError):
    """Actor lacks the role required for the requested operation."""

    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(WorkflowError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(WorkflowError):
    """Target record is not in the expected state; refetch and retry."""

    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class ExternalLookupError(WorkflowError):
    """Exchange-rate lookup failed."""

    code = "external_lookup_failed"
    status_code = status.HTTP_502_BAD_GATEWAY


class NotificationError(WorkflowError):
    """E-mail or calendar side effect failed after the workflow committed."""

    code = "notification_failed"
    status_code = status.HTTP_502_BAD_GATEWAY


class ErrorDetail(BaseModel):
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None


class ErrorEnvelope(BaseModel):
    error: ErrorDetail


def workflow_error_handler(_: Request, exc: WorkflowError) -> JSONResponse:
    envelope = ErrorEnvelope(
        error=ErrorDetail(code=exc.code, message=exc.message, details=exc.details)
    )
    return JSONResponse(status_code=exc.status_code, content=envelope.model_dump())
