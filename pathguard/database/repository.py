"""
SQL-backed stores for reports and points

Same method names as the in-memory ReportHandler and PointsLedger so the
API can use either.
"""

import logging
import uuid
from datetime import timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from pathguard.core.exceptions import InvalidStatusTransition, PersistenceError
from pathguard.crowdsource.report_handler import (
    HazardCategory,
    HazardReport,
    ReportQuery,
    ReportStatus,
    check_severity,
)
from .connection import DatabaseConnection
from .models import DangerReportRecord, UserPoints

logger = logging.getLogger(__name__)


class SqlReportStore:
    """Report store persisted in the danger_reports table."""

    def __init__(self, db: DatabaseConnection):
        self.db = db

    def create_report(
        self,
        title: str,
        category: HazardCategory,
        severity: int,
        longitude: float,
        latitude: float,
        description: Optional[str] = None,
        image_url: Optional[str] = None,
        processed_image_urls: Optional[List[str]] = None,
        user_id: Optional[str] = None,
    ) -> HazardReport:
        """Insert a report; the status is always pending."""
        record = DangerReportRecord(
            id=str(uuid.uuid4()),
            title=title,
            description=description,
            danger_type=HazardCategory(category),
            danger_level=check_severity(severity),
            longitude=longitude,
            latitude=latitude,
            status=ReportStatus.PENDING,
            image_url=image_url,
            processed_image_urls=list(processed_image_urls or []),
            user_id=user_id,
        )

        try:
            with self.db.get_session() as session:
                session.add(record)
                session.flush()
                report = record.to_report()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to create report: {e}")

        logger.info(f"New report stored: {report.id} at ({longitude}, {latitude})")
        return report

    def get_report(self, report_id: str) -> Optional[HazardReport]:
        try:
            with self.db.get_session() as session:
                record = session.get(DangerReportRecord, report_id)
                return record.to_report() if record else None
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load report {report_id}: {e}")

    def query(self, query: ReportQuery) -> List[HazardReport]:
        """Return matching reports, newest first."""
        stmt = select(DangerReportRecord)

        if query.status is not None:
            stmt = stmt.where(DangerReportRecord.status == query.status)
        if query.category is not None:
            stmt = stmt.where(DangerReportRecord.danger_type == query.category)
        if query.severity is not None:
            stmt = stmt.where(DangerReportRecord.danger_level == query.severity)
        if query.created_after is not None:
            stmt = stmt.where(
                DangerReportRecord.created_at >= query.created_after.astimezone(timezone.utc)
            )
        if query.user_id is not None:
            stmt = stmt.where(DangerReportRecord.user_id == query.user_id)
        if query.bbox is not None:
            stmt = stmt.where(
                DangerReportRecord.longitude.between(query.bbox.west, query.bbox.east),
                DangerReportRecord.latitude.between(query.bbox.south, query.bbox.north),
            )

        stmt = stmt.order_by(DangerReportRecord.created_at.desc())

        try:
            with self.db.get_session() as session:
                return [record.to_report() for record in session.scalars(stmt)]
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to query reports: {e}")

    def update_status(self, report_id: str, new_status: ReportStatus) -> Optional[HazardReport]:
        try:
            with self.db.get_session() as session:
                record = session.get(DangerReportRecord, report_id)
                if record is None:
                    return None

                if not record.status.can_transition_to(new_status):
                    raise InvalidStatusTransition(
                        f"Report {report_id} cannot go from {record.status.value} to {new_status.value}"
                    )

                old_status = record.status
                record.status = new_status
                session.flush()
                report = record.to_report()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to update report {report_id}: {e}")

        logger.info(f"Report {report_id} status: {old_status.value} -> {new_status.value}")
        return report

    def append_processed_images(self, report_id: str, urls: List[str]) -> Optional[HazardReport]:
        try:
            with self.db.get_session() as session:
                record = session.get(DangerReportRecord, report_id)
                if record is None:
                    return None

                # Reassign so the JSON column is flagged as modified
                record.processed_image_urls = list(record.processed_image_urls or []) + list(urls)
                session.flush()
                return record.to_report()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to update images of {report_id}: {e}")

    def delete_report(self, report_id: str) -> Optional[HazardReport]:
        """Remove a report. Deleting an unknown id is a no-op."""
        try:
            with self.db.get_session() as session:
                record = session.get(DangerReportRecord, report_id)
                if record is None:
                    logger.debug(f"Delete ignored, report {report_id} not found")
                    return None

                report = record.to_report()
                session.delete(record)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to delete report {report_id}: {e}")

        logger.info(f"Report {report_id} deleted")
        report.status = ReportStatus.DELETED
        return report

    def get_statistics(self) -> Dict[str, Any]:
        """Get report statistics; with_photo counts reports carrying an original photo."""
        try:
            with self.db.get_session() as session:
                by_status = {
                    status.value: count
                    for status, count in session.execute(
                        select(DangerReportRecord.status, func.count())
                        .group_by(DangerReportRecord.status)
                    )
                }
                by_category = {
                    category.value: count
                    for category, count in session.execute(
                        select(DangerReportRecord.danger_type, func.count())
                        .group_by(DangerReportRecord.danger_type)
                    )
                }
                with_photo = session.scalar(
                    select(func.count()).select_from(DangerReportRecord).where(
                        DangerReportRecord.image_url.isnot(None)
                    )
                )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to compute statistics: {e}")

        return {
            "total_reports": sum(by_status.values()),
            "pending_count": by_status.get(ReportStatus.PENDING.value, 0),
            "by_status": by_status,
            "by_category": by_category,
            "with_photo": with_photo or 0,
        }


class SqlPointsLedger:
    """Points ledger persisted in the user_points table."""

    def __init__(self, db: DatabaseConnection):
        self.db = db

    def award(self, user_id: str, delta: int) -> int:
        if not user_id:
            raise ValueError("user_id is required")

        try:
            with self.db.get_session() as session:
                row = session.get(UserPoints, user_id)
                if row is None:
                    row = UserPoints(user_id=user_id, points=0)
                    session.add(row)
                row.points = (row.points or 0) + delta
                total = row.points
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to award points to {user_id}: {e}")

        logger.info(f"Awarded {delta} points to {user_id} (total {total})")
        return total

    def get_points(self, user_id: str) -> int:
        try:
            with self.db.get_session() as session:
                row = session.get(UserPoints, user_id)
                return row.points if row else 0
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to read points of {user_id}: {e}")
