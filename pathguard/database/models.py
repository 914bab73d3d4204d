"""
SQLAlchemy models for PathGuardian
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, Float, String, Text,
    DateTime, Index, JSON, Enum as SQLEnum
)
from sqlalchemy.orm import declarative_base

from pathguard.crowdsource.report_handler import HazardCategory, HazardReport, ReportStatus

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DangerReportRecord(Base):
    """
    Hazard report submitted by a user.

    Processed image references are appended after creation by the analysis step.
    """
    __tablename__ = "danger_reports"

    id = Column(String(36), primary_key=True)

    title = Column(String(200), nullable=False)
    description = Column(Text)
    danger_type = Column(SQLEnum(HazardCategory, values_callable=lambda e: [m.value for m in e]),
                         nullable=False)
    danger_level = Column(Integer, nullable=False)

    # Location
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)

    # Moderation
    status = Column(SQLEnum(ReportStatus, values_callable=lambda e: [m.value for m in e]),
                    nullable=False, default=ReportStatus.PENDING)

    # Media
    image_url = Column(String(500))
    processed_image_urls = Column(JSON, nullable=False, default=list)

    # Ownership
    user_id = Column(String(64), index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        Index("idx_report_status", status),
        Index("idx_report_created_at", created_at),
        Index("idx_report_status_type_level", status, danger_type, danger_level),
    )

    def __repr__(self):
        return f"<DangerReportRecord({self.id}, status={self.status.value}, level={self.danger_level})>"

    def to_report(self) -> HazardReport:
        """Convert to the HazardReport domain object."""
        created_at = self.created_at
        if created_at is not None and created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)

        return HazardReport(
            id=self.id,
            title=self.title,
            description=self.description,
            category=self.danger_type,
            severity=self.danger_level,
            longitude=self.longitude,
            latitude=self.latitude,
            status=self.status,
            image_url=self.image_url,
            processed_image_urls=list(self.processed_image_urls or []),
            user_id=self.user_id,
            created_at=created_at,
        )


class UserPoints(Base):
    """Running gamification point total per user."""
    __tablename__ = "user_points"

    user_id = Column(String(64), primary_key=True)
    points = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<UserPoints({self.user_id}, points={self.points})>"
