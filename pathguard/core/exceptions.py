"""
PathGuardian - Error taxonomy
Exceptions shared by the map session, the HTTP clients and the API.
"""

from enum import Enum
from typing import Optional


class ValidationReason(str, Enum):
    """Why a draft report was rejected locally."""
    MISSING_LOCATION = "missing_location"
    MISSING_TITLE = "missing_title"
    INVALID_IMAGE = "invalid_image"
    INVALID_CATEGORY = "invalid_category"
    INVALID_SEVERITY = "invalid_severity"


class PathGuardError(RuntimeError):
    """Base class for all PathGuardian errors."""


class ValidationError(PathGuardError):
    """Raised when a draft is rejected before it reaches the network."""

    def __init__(self, reason: ValidationReason, message: Optional[str] = None):
        self.reason = reason
        super().__init__(message or reason.value)


class UploadError(PathGuardError):
    """Raised when a single image upload fails."""

    def __init__(self, message: str, filename: Optional[str] = None):
        self.filename = filename
        super().__init__(message)


class PersistenceError(PathGuardError):
    """Raised when the report store rejects a read or write."""


class AnalysisError(PathGuardError):
    """Raised when the image analysis service fails."""


class PermissionDeniedError(PathGuardError):
    """Raised when a caller lacks the privilege for an action."""


class InvalidStatusTransition(PathGuardError):
    """Raised when a report status change is not allowed."""
