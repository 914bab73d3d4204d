"""
PathGuardian - Interactive Map Session
Interaction modes, viewport, markers, filters and report submission.
"""

from .notices import Notice, NoticeLevel, NoticeQueue
from .surface import (
    Cursor,
    DeviceProfile,
    InteractionMode,
    MapSurface,
    SelectionMarker,
    SurfaceAction,
)
from .viewport import LayerRegistry, MapViewport
from .report_collections import ReportCollections
from .markers import Marker, MarkerLayer
from .filters import FilterController, FilterOptions, date_lower_bound
from .submission import ReportSubmissionFlow, SubmissionOutcome
from .session import MapSession

__all__ = [
    "Notice",
    "NoticeLevel",
    "NoticeQueue",
    "Cursor",
    "DeviceProfile",
    "InteractionMode",
    "MapSurface",
    "SelectionMarker",
    "SurfaceAction",
    "LayerRegistry",
    "MapViewport",
    "ReportCollections",
    "Marker",
    "MarkerLayer",
    "FilterController",
    "FilterOptions",
    "date_lower_bound",
    "ReportSubmissionFlow",
    "SubmissionOutcome",
    "MapSession",
]
