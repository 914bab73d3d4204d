"""
PathGuardian - API Clients
Async httpx clients for reports, image storage, analysis and points.
"""

from .base import ApiClient, SessionContext, USER_ID_HEADER, USER_ROLE_HEADER, ADMIN_ROLE
from .reports_client import ReportsClient
from .storage_client import StorageClient
from .analysis_client import AnalysisClient, ProcessedImage
from .points_client import PointsClient
from .service import PathGuardClient

__all__ = [
    "ApiClient",
    "SessionContext",
    "USER_ID_HEADER",
    "USER_ROLE_HEADER",
    "ADMIN_ROLE",
    "ReportsClient",
    "StorageClient",
    "AnalysisClient",
    "ProcessedImage",
    "PointsClient",
    "PathGuardClient",
]
