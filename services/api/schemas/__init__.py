"""
Pydantic schemas for API request/response validation.
"""
from .letter import (
    FieldErrorOut,
    ProjectTypeOut,
    ReviewRecordIn,
    ReviewRecordOut,
    ValidationFailedOut,
    WarningOut,
)

__all__ = [
    "FieldErrorOut",
    "ProjectTypeOut",
    "ReviewRecordIn",
    "ReviewRecordOut",
    "ValidationFailedOut",
    "WarningOut",
]
