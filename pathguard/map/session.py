"""
Map session: wires the surface, viewport, markers, filters and the
submission flow around one explicit SessionContext
"""

import logging
from typing import List, Optional

from pathguard.clients.base import SessionContext
from pathguard.clients.service import PathGuardClient
from pathguard.core.exceptions import PathGuardError, PermissionDeniedError
from pathguard.core.tasks import BackgroundTasks
from pathguard.crowdsource.report_handler import (
    HazardCategory,
    HazardReport,
    ImageUpload,
    ReportDraft,
)
from .filters import FilterController
from .markers import MarkerLayer
from .notices import NoticeLevel, NoticeQueue
from .report_collections import ReportCollections
from .submission import ReportSubmissionFlow, SubmissionOutcome
from .surface import DeviceProfile, MapSurface
from .viewport import MapViewport

logger = logging.getLogger(__name__)


class MapSession:
    """
    Everything one user sees and does on the hazard map.

    Usage:
        async with PathGuardClient(SessionContext(user_id="u1")) as api:
            session = MapSession.from_client(api, DeviceProfile.from_viewport_width(390))
            await session.load()
            session.surface.request_report()
            session.surface.tap(LngLat(139.70, 35.69))
            outcome = await session.submit_report(session.build_draft("崩れかけた塀", "disaster", 4))
    """

    def __init__(
        self,
        context: SessionContext,
        reports_client,
        storage_client,
        analysis_client,
        points_client,
        device: DeviceProfile = DeviceProfile.POINTER,
        viewport: Optional[MapViewport] = None,
        notices: Optional[NoticeQueue] = None,
        tasks: Optional[BackgroundTasks] = None
    ):
        self.context = context
        self.reports_client = reports_client
        self.notices = notices or NoticeQueue()
        self.tasks = tasks or BackgroundTasks()
        self.viewport = viewport or MapViewport()

        self.surface = MapSurface(device, self.viewport.get_center, self.notices)
        self.collections = ReportCollections()
        self.markers = MarkerLayer(self.collections, self.tasks, points_client)
        self.filters = FilterController(
            self.collections, reports_client, context, self.markers, self.notices
        )
        self.submission = ReportSubmissionFlow(
            context,
            self.surface,
            self.collections,
            reports_client,
            storage_client,
            analysis_client,
            points_client,
            self.tasks,
            self.notices,
        )

    @classmethod
    def from_client(
        cls,
        api: PathGuardClient,
        device: DeviceProfile = DeviceProfile.POINTER,
        **kwargs
    ) -> "MapSession":
        return cls(api.context, api.reports, api.storage, api.analysis, api.points, device, **kwargs)

    @property
    def selected_report(self) -> Optional[HazardReport]:
        return self.markers.selected_report

    async def load(self) -> bool:
        """Fetch reports for the current filters."""
        return await self.filters.refresh()

    def build_draft(
        self,
        title: str,
        category: HazardCategory,
        severity: int,
        description: Optional[str] = None,
        original_image: Optional[ImageUpload] = None,
        processed_images: Optional[List[ImageUpload]] = None
    ) -> ReportDraft:
        """Draft a report at the location currently selected on the map."""
        return ReportDraft(
            title=title,
            category=category,
            severity=severity,
            position=self.surface.selected_location,
            description=description,
            original_image=original_image,
            processed_images=list(processed_images or []),
        )

    async def submit_report(self, draft: ReportDraft) -> SubmissionOutcome:
        return await self.submission.submit(draft)

    def click_marker(self, report_id: str) -> Optional[HazardReport]:
        return self.markers.click(report_id)

    def select_report(self, report: HazardReport) -> None:
        """Select a report from the sidebar list and fly to it."""
        self.markers.selected_report = report
        self.viewport.fly_to(report.position)

    async def delete_report(self, report_id: str) -> bool:
        """
        Delete a report as an administrator.

        Returns:
            False if the report is not loaded locally (nothing is sent)

        Raises:
            PermissionDeniedError: if the session is not an admin
            PathGuardError: if the remote deletion fails
        """
        if not self.context.is_admin:
            self.notices.push("権限エラー", "レポートの削除権限がありません。", NoticeLevel.ERROR)
            raise PermissionDeniedError("Only administrators can delete reports")

        if not self.collections.contains(report_id):
            logger.debug(f"Delete skipped, report {report_id} is not loaded")
            return False

        try:
            await self.reports_client.delete(report_id)
        except PathGuardError as e:
            logger.error(f"Error deleting report: {e}")
            self.notices.push(
                "削除エラー", f"レポートの削除中にエラーが発生しました: {e}", NoticeLevel.ERROR
            )
            raise

        self.collections.remove(report_id)
        if self.selected_report is not None and self.selected_report.id == report_id:
            self.markers.clear_selection()

        self.notices.push("削除成功", f"レポート (ID: {report_id}) を削除しました。", NoticeLevel.SUCCESS)
        return True

    async def close(self) -> None:
        """Wait for background work to finish."""
        await self.tasks.drain()
