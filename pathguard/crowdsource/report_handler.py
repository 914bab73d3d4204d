"""
Hazard report handler for crowdsourced data
Report data model and the in-memory report store used by the API
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any
from dataclasses import dataclass, field, replace
from enum import Enum

from pathguard.core.constants import MAX_SEVERITY, MIN_SEVERITY
from pathguard.core.exceptions import InvalidStatusTransition
from pathguard.core.geo_utils import BoundingBox, LngLat

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReportStatus(str, Enum):
    """Lifecycle status of a hazard report."""
    PENDING = "pending"
    APPROVED = "approved"
    DELETED = "deleted"

    def can_transition_to(self, new_status: "ReportStatus") -> bool:
        """Only pending -> approved and anything -> deleted are allowed; deleted is terminal."""
        if self is ReportStatus.DELETED:
            return False
        if new_status is ReportStatus.DELETED:
            return True
        return self is ReportStatus.PENDING and new_status is ReportStatus.APPROVED


class HazardCategory(str, Enum):
    """Kind of hazard being reported."""
    TRAFFIC = "traffic"
    CRIME = "crime"
    DISASTER = "disaster"
    OTHER = "other"


class ImageKind(str, Enum):
    """Logical category of an uploaded image."""
    ORIGINAL = "original"
    PROCESSED = "processed"


@dataclass
class ImageUpload:
    """Image binary selected by the reporter."""
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class HazardReport:
    """
    Hazard report submitted by a user.

    Contains position, category, severity and media references.
    """
    id: str
    title: str
    category: HazardCategory
    severity: int
    longitude: float
    latitude: float

    description: Optional[str] = None
    status: ReportStatus = ReportStatus.PENDING

    # Media
    image_url: Optional[str] = None
    processed_image_urls: List[str] = field(default_factory=list)

    # Ownership
    user_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    @property
    def position(self) -> LngLat:
        return LngLat(self.longitude, self.latitude)

    @property
    def is_pending(self) -> bool:
        return self.status is ReportStatus.PENDING

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category.value,
            "severity": self.severity,
            "longitude": self.longitude,
            "latitude": self.latitude,
            "status": self.status.value,
            "image_url": self.image_url,
            "processed_image_urls": list(self.processed_image_urls),
            "user_id": self.user_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HazardReport":
        """Create a report from its dictionary (API payload) form."""
        created_at = data.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        if created_at is None:
            created_at = utcnow()
        elif created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)

        return cls(
            id=str(data["id"]),
            title=data["title"],
            description=data.get("description"),
            category=HazardCategory(data["category"]),
            severity=int(data["severity"]),
            longitude=float(data["longitude"]),
            latitude=float(data["latitude"]),
            status=ReportStatus(data.get("status", ReportStatus.PENDING.value)),
            image_url=data.get("image_url"),
            processed_image_urls=list(data.get("processed_image_urls") or []),
            user_id=data.get("user_id"),
            created_at=created_at,
        )


@dataclass
class ReportQuery:
    """Predicates for a report query, combined with logical AND."""
    status: Optional[ReportStatus] = None
    category: Optional[HazardCategory] = None
    severity: Optional[int] = None
    created_after: Optional[datetime] = None
    user_id: Optional[str] = None
    bbox: Optional[BoundingBox] = None

    def matches(self, report: HazardReport) -> bool:
        if self.status is not None and report.status is not self.status:
            return False
        if self.category is not None and report.category is not self.category:
            return False
        if self.severity is not None and report.severity != self.severity:
            return False
        if self.created_after is not None and report.created_at < self.created_after:
            return False
        if self.user_id is not None and report.user_id != self.user_id:
            return False
        if self.bbox is not None and not self.bbox.contains(report.longitude, report.latitude):
            return False
        return True

    def to_params(self) -> Dict[str, Any]:
        """Query-string parameters for the reports endpoint."""
        params: Dict[str, Any] = {}
        if self.status is not None:
            params["status"] = self.status.value
        if self.category is not None:
            params["category"] = self.category.value
        if self.severity is not None:
            params["severity"] = self.severity
        if self.created_after is not None:
            params["created_after"] = self.created_after.isoformat()
        if self.user_id is not None:
            params["user_id"] = self.user_id
        if self.bbox is not None:
            params.update(zip(("west", "south", "east", "north"), self.bbox.to_tuple()))
        return params


def check_severity(severity: int) -> int:
    if not MIN_SEVERITY <= severity <= MAX_SEVERITY:
        raise ValueError(f"Severity must be between {MIN_SEVERITY} and {MAX_SEVERITY}: {severity}")
    return severity


class ReportHandler:
    """
    In-memory report store.

    Serves the reports API when no database is configured. The SQL store in
    pathguard.database.repository exposes the same methods.
    """

    def __init__(self):
        self._reports: Dict[str, HazardReport] = {}
        logger.info("ReportHandler initialized")

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
        """
        Create a new hazard report.

        The status is always pending regardless of what the caller sent.

        Returns:
            Created HazardReport
        """
        report = HazardReport(
            id=str(uuid.uuid4()),
            title=title,
            description=description,
            category=HazardCategory(category),
            severity=check_severity(severity),
            longitude=longitude,
            latitude=latitude,
            status=ReportStatus.PENDING,
            image_url=image_url,
            processed_image_urls=list(processed_image_urls or []),
            user_id=user_id,
        )

        self._reports[report.id] = report

        logger.info(f"New report created: {report.id} at ({longitude}, {latitude})")

        return report

    def get_report(self, report_id: str) -> Optional[HazardReport]:
        """Get report by ID."""
        return self._reports.get(report_id)

    def query(self, query: ReportQuery) -> List[HazardReport]:
        """Return matching reports, newest first."""
        # Newest insertions first so equal timestamps keep that order after the stable sort
        candidates = [r for r in reversed(list(self._reports.values())) if query.matches(r)]
        return sorted(candidates, key=lambda r: r.created_at, reverse=True)

    def update_status(self, report_id: str, new_status: ReportStatus) -> Optional[HazardReport]:
        """
        Change a report's status.

        Returns:
            Updated report, or None if it does not exist

        Raises:
            InvalidStatusTransition: if the lifecycle forbids the change
        """
        report = self._reports.get(report_id)
        if not report:
            return None

        if not report.status.can_transition_to(new_status):
            raise InvalidStatusTransition(
                f"Report {report_id} cannot go from {report.status.value} to {new_status.value}"
            )

        old_status = report.status
        report.status = new_status

        logger.info(f"Report {report_id} status: {old_status.value} -> {new_status.value}")

        return report

    def append_processed_images(self, report_id: str, urls: List[str]) -> Optional[HazardReport]:
        """Append processed-image references produced after creation."""
        report = self._reports.get(report_id)
        if not report:
            return None

        report.processed_image_urls.extend(urls)
        return report

    def delete_report(self, report_id: str) -> Optional[HazardReport]:
        """
        Remove a report. Deleting an unknown id is a no-op.

        Returns:
            The removed report (status deleted), or None if nothing was removed
        """
        report = self._reports.pop(report_id, None)
        if report is None:
            logger.debug(f"Delete ignored, report {report_id} not found")
            return None

        logger.info(f"Report {report_id} deleted")
        return replace(report, status=ReportStatus.DELETED)

    def get_statistics(self) -> Dict[str, Any]:
        """Get report statistics; with_photo counts reports carrying an original photo."""
        by_status: Dict[str, int] = {}
        by_category: Dict[str, int] = {}
        with_photo = 0

        for report in self._reports.values():
            by_status[report.status.value] = by_status.get(report.status.value, 0) + 1
            by_category[report.category.value] = by_category.get(report.category.value, 0) + 1
            if report.image_url:
                with_photo += 1

        return {
            "total_reports": len(self._reports),
            "pending_count": by_status.get(ReportStatus.PENDING.value, 0),
            "by_status": by_status,
            "by_category": by_category,
            "with_photo": with_photo,
        }


@dataclass
class ReportDraft:
    """Form input collected before a report is submitted."""
    title: str
    category: HazardCategory
    severity: int
    position: Optional[LngLat] = None
    description: Optional[str] = None
    original_image: Optional[ImageUpload] = None
    processed_images: List[ImageUpload] = field(default_factory=list)

    @property
    def images(self) -> List[ImageUpload]:
        images = list(self.processed_images)
        if self.original_image is not None:
            images.insert(0, self.original_image)
        return images
