"""
Custom exception classes and error handling.

Provides consistent error responses across the API. Recovery-program
errors are raised by the services and surfaced to the client unmodified.
"""
from fastapi import HTTPException, status
from typing import Optional, Dict, Any


class APIException(HTTPException):
    """Base API exception with consistent structure."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code


class NotFoundError(APIException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: str, error_code: str = "NOT_FOUND"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found: {identifier}",
            error_code=error_code
        )


class ValidationError(APIException):
    """Validation error."""

    def __init__(self, detail: str, field: Optional[str] = None):
        error_code = f"VALIDATION_ERROR_{field.upper()}" if field else "VALIDATION_ERROR"
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
            error_code=error_code
        )


class ConflictError(APIException):
    """Resource conflict (e.g., duplicate entry)."""

    def __init__(self, detail: str, error_code: str = "CONFLICT"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            error_code=error_code
        )


# ============ Recovery program errors ============

class NotEnrolledError(NotFoundError):
    """Patient has no recovery program enrollment."""

    def __init__(self, patient_id: str):
        super().__init__("Recovery enrollment", patient_id, error_code="NOT_ENROLLED")
        self.patient_id = patient_id


class AlreadyEnrolledError(ConflictError):
    """Patient already has an enrollment; use update instead."""

    def __init__(self, patient_id: str):
        super().__init__(
            f"Patient {patient_id} already has a recovery program",
            error_code="ALREADY_ENROLLED",
        )
        self.patient_id = patient_id


class UnknownTaskInstanceError(NotFoundError):
    """Task does not exist or does not belong to the caller's enrollment."""

    def __init__(self, task_instance_id: str):
        super().__init__("Recovery task", task_instance_id, error_code="UNKNOWN_TASK_INSTANCE")
        self.task_instance_id = task_instance_id


class TransientStoreError(APIException):
    """Persistence backend unavailable or failed mid-request."""

    def __init__(self, detail: str = "Storage temporarily unavailable"):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
            error_code="STORE_UNAVAILABLE",
        )
