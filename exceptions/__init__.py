"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    UnauthorizedError,
    DatabaseError,

    # Import pipeline
    ExtractionError,
    MappingError,
    RowValidationError,
    CommitError,
    InvalidWizardTransitionError,
    ImportSessionNotFoundError,
    ImportSessionBusyError,
    ImportRowNotFoundError,

    # Line items
    LineItemNotFoundError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "UnauthorizedError",
    "DatabaseError",

    # Import pipeline
    "ExtractionError",
    "MappingError",
    "RowValidationError",
    "CommitError",
    "InvalidWizardTransitionError",
    "ImportSessionNotFoundError",
    "ImportSessionBusyError",
    "ImportRowNotFoundError",

    # Line items
    "LineItemNotFoundError",
]
