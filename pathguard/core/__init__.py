"""
PathGuardian - Core Utilities
Central configuration, logging, errors and shared helpers.
"""

from pathguard.core.config import settings
from pathguard.core.constants import (
    HAZARD_CATEGORIES,
    CATEGORY_COLORS,
    CATEGORY_ICONS,
    MAX_IMAGE_BYTES,
)
from pathguard.core.exceptions import (
    PathGuardError,
    ValidationError,
    ValidationReason,
    UploadError,
    PersistenceError,
    AnalysisError,
    PermissionDeniedError,
    InvalidStatusTransition,
)
from pathguard.core.geo_utils import LngLat, BoundingBox, calculate_centroid
from pathguard.core.tasks import BackgroundTasks

__all__ = [
    "settings",
    "HAZARD_CATEGORIES",
    "CATEGORY_COLORS",
    "CATEGORY_ICONS",
    "MAX_IMAGE_BYTES",
    "PathGuardError",
    "ValidationError",
    "ValidationReason",
    "UploadError",
    "PersistenceError",
    "AnalysisError",
    "PermissionDeniedError",
    "InvalidStatusTransition",
    "LngLat",
    "BoundingBox",
    "calculate_centroid",
    "BackgroundTasks",
]
