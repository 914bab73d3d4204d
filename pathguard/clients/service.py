"""
Bundle of all API clients sharing one connection pool
"""

from typing import Optional

import httpx

from pathguard.core.config import settings
from .analysis_client import AnalysisClient
from .base import SessionContext
from .points_client import PointsClient
from .reports_client import ReportsClient
from .storage_client import StorageClient


class PathGuardClient:
    """
    Entry point for talking to the PathGuardian API.

    Usage:
        async with PathGuardClient(SessionContext(user_id="u1")) as api:
            session = MapSession(api.context, api.reports, api.storage,
                                 api.analysis, api.points)
    """

    def __init__(
        self,
        context: Optional[SessionContext] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.context = context or SessionContext()
        self.http = httpx.AsyncClient(
            base_url=(base_url or settings.api_base_url).rstrip("/"),
            timeout=timeout or settings.request_timeout,
            transport=transport,
        )

        self.reports = ReportsClient(self.context, http=self.http)
        self.storage = StorageClient(self.context, http=self.http)
        self.analysis = AnalysisClient(self.context, http=self.http)
        self.points = PointsClient(self.context, http=self.http)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()

    async def aclose(self) -> None:
        await self.http.aclose()
