"""
Marker layer derived from the local report collections
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from pathguard.core.config import settings
from pathguard.core.constants import (
    APPROVED_MARKER_OPACITY,
    CATEGORY_COLORS,
    CATEGORY_ICONS,
    DEFAULT_CATEGORY_COLOR,
    DEFAULT_CATEGORY_ICON,
    PENDING_MARKER_OPACITY,
)
from pathguard.core.geo_utils import BoundingBox, LngLat
from pathguard.core.tasks import BackgroundTasks
from pathguard.crowdsource.report_handler import HazardReport
from .report_collections import ReportCollections

logger = logging.getLogger(__name__)

APPROVED_MARKER_CLASS = "danger-marker"
PENDING_MARKER_CLASS = "pending-marker"


@dataclass(frozen=True)
class Marker:
    """Visual marker for one report."""
    report_id: str
    position: LngLat
    color: str
    icon: str
    opacity: float
    css_class: str
    is_pending: bool
    title: str
    severity: int

    @classmethod
    def for_report(cls, report: HazardReport, is_pending: bool) -> "Marker":
        category = report.category.value
        return cls(
            report_id=report.id,
            position=report.position,
            color=CATEGORY_COLORS.get(category, DEFAULT_CATEGORY_COLOR),
            icon=CATEGORY_ICONS.get(category, DEFAULT_CATEGORY_ICON),
            opacity=PENDING_MARKER_OPACITY if is_pending else APPROVED_MARKER_OPACITY,
            css_class=(
                f"{PENDING_MARKER_CLASS if is_pending else APPROVED_MARKER_CLASS} "
                f"danger-level-{report.severity} danger-marker-{category}"
            ),
            is_pending=is_pending,
            title=report.title,
            severity=report.severity,
        )


class MarkerLayer:
    """
    One marker per loaded report, redrawn from scratch on every change.

    Clicking a marker selects its report and awards the report's owner
    points in the background.
    """

    def __init__(
        self,
        collections: ReportCollections,
        tasks: BackgroundTasks,
        points_client=None,
        show_pending: bool = True,
        view_points: Optional[int] = None
    ):
        """
        Args:
            collections: Approved and pending reports to draw
            tasks: Runner for fire-and-forget point awards
            points_client: Client with an async ``award(user_id, delta)``
            show_pending: Whether pending reports get markers
            view_points: Points for viewing a report (default from settings)
        """
        self.collections = collections
        self.tasks = tasks
        self.points_client = points_client
        self.show_pending = show_pending
        self.view_points = view_points if view_points is not None else settings.points_marker_viewed

        self.markers: Dict[str, Marker] = {}
        self.selected_report: Optional[HazardReport] = None
        self.redraw_count = 0

        collections.subscribe(self.sync)
        self.sync()

    def set_show_pending(self, show_pending: bool) -> None:
        if show_pending != self.show_pending:
            self.show_pending = show_pending
            self.sync()

    def sync(self) -> None:
        """Clear all markers and draw them again from the collections."""
        self.markers.clear()

        for report in self.collections.approved:
            self.markers[report.id] = Marker.for_report(report, is_pending=False)

        if self.show_pending:
            for report in self.collections.pending:
                # A report in both collections is drawn as approved
                self.markers.setdefault(report.id, Marker.for_report(report, is_pending=True))

        self.redraw_count += 1
        logger.debug(f"Markers redrawn: {len(self.markers)}")

    def click(self, report_id: str) -> Optional[HazardReport]:
        """
        Handle a marker click.

        Must be called on the running event loop; the owner's award is
        spawned there as a background task.

        Returns:
            The selected report, or None if no marker has that id

        Raises:
            RuntimeError: if an award is due and no event loop is running
        """
        if report_id not in self.markers:
            logger.debug(f"Click on unknown marker {report_id}")
            return None

        report = self.collections.find(report_id)
        self.selected_report = report

        if report is not None and report.user_id and self.points_client is not None:
            self.tasks.spawn(
                self.points_client.award(report.user_id, self.view_points),
                name=f"award-view-{report.id}",
            )

        return report

    def clear_selection(self) -> None:
        self.selected_report = None

    def in_bounds(self, bbox: BoundingBox) -> List[Marker]:
        return [m for m in self.markers.values() if bbox.contains(*m.position)]

    def __len__(self) -> int:
        return len(self.markers)
