"""
Custom exception classes for the application.

Every error carries a machine-readable code, a message, an HTTP status and
optional details, and renders to the standard error envelope.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "MAPPING_ERROR")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource or state (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class UnauthorizedError(AppError):
    """Caller is not signed in or lacks the required role (401)."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# IMPORT PIPELINE ERRORS
# ===================

class ExtractionError(ValidationError):
    """Uploaded file is unreadable, empty, or in an unsupported format."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="EXTRACTION_ERROR",
            message=message,
            details=details
        )


class MappingError(ValidationError):
    """One or more required fields have no bound source column."""

    def __init__(self, missing_labels: list[str]):
        super().__init__(
            code="MAPPING_ERROR",
            message=f"Please map required columns: {', '.join(missing_labels)}",
            details={"missing_fields": missing_labels}
        )
        self.missing_labels = missing_labels


class RowValidationError(ValidationError):
    """
    A single row failed business validation.

    Never aborts a batch; the importer records it as a skipped row.
    """

    def __init__(self, row_number: int, reasons: list[str]):
        super().__init__(
            code="ROW_VALIDATION_ERROR",
            message="; ".join(reasons),
            details={"row": row_number, "reasons": reasons}
        )
        self.row_number = row_number
        self.reasons = reasons


class CommitError(AppError):
    """Storage failure while committing an import batch (502)."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="COMMIT_ERROR",
            message=message,
            status_code=502,
            details=details
        )


class InvalidWizardTransitionError(ConflictError):
    """Requested wizard action is not legal in the current state."""

    def __init__(self, current_state: str, action: str, reason: Optional[str] = None):
        super().__init__(
            code="INVALID_WIZARD_TRANSITION",
            message=reason or f"Cannot {action} while import is in {current_state} state",
            details={
                "current_state": current_state,
                "action": action,
            }
        )


class ImportSessionNotFoundError(NotFoundError):
    """Import session does not exist or has expired."""

    def __init__(self, session_id: str):
        super().__init__(
            resource="Import session",
            identifier=session_id,
            code="IMPORT_SESSION_NOT_FOUND"
        )


class ImportSessionBusyError(ConflictError):
    """Another action on the same import session is still running."""

    def __init__(self, session_id: str):
        super().__init__(
            code="IMPORT_SESSION_BUSY",
            message="Import session is busy, wait for the current action to finish",
            details={"id": session_id}
        )


class ImportRowNotFoundError(NotFoundError):
    """Row number is not part of the session working set."""

    def __init__(self, row_number: int):
        super().__init__(
            resource="Import row",
            identifier=str(row_number),
            code="IMPORT_ROW_NOT_FOUND"
        )


# ===================
# LINE ITEM ERRORS
# ===================

class LineItemNotFoundError(NotFoundError):
    """Line item not found or not owned by the caller."""

    def __init__(self, item_id: str):
        super().__init__(
            resource="Line item",
            identifier=item_id,
            code="LINE_ITEM_NOT_FOUND"
        )
