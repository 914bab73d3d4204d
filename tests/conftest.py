"""
Pytest configuration and fixtures
"""
import pytest
import sys
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path

import cv2
import numpy as np

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from pathguard.clients.analysis_client import ProcessedImage
from pathguard.clients.base import SessionContext
from pathguard.core.exceptions import AnalysisError, PersistenceError, UploadError
from pathguard.crowdsource.report_handler import (
    HazardCategory,
    HazardReport,
    ImageUpload,
    ReportStatus,
)


# ============================================================================
# Fake API clients
# ============================================================================

class FakeReportsClient:
    """Serves reports from a list and records every call."""

    def __init__(self, reports=None):
        self.reports = list(reports or [])
        self.calls = []
        self.fail_query = False
        self.fail_pending_query = False
        self.fail_create = False
        self.fail_delete = False
        self.gates = []

    async def query(self, query):
        self.calls.append(("query", query))
        if self.gates:
            gate = self.gates.pop(0)
            if gate is not None:
                await gate.wait()
        if self.fail_query:
            raise PersistenceError("query failed")
        if self.fail_pending_query and query.status is ReportStatus.PENDING:
            raise PersistenceError("pending query failed")
        return [r for r in self.reports if query.matches(r)]

    async def create(self, draft, image_url=None, processed_image_urls=None):
        self.calls.append(("create", draft, image_url, list(processed_image_urls or [])))
        if self.fail_create:
            raise PersistenceError("insert rejected")
        report = HazardReport(
            id=str(uuid.uuid4()),
            title=draft.title,
            description=draft.description,
            category=draft.category,
            severity=draft.severity,
            longitude=draft.position.longitude,
            latitude=draft.position.latitude,
            status=ReportStatus.PENDING,
            image_url=image_url,
            processed_image_urls=list(processed_image_urls or []),
            user_id="user-1",
        )
        self.reports.append(report)
        return report

    async def delete(self, report_id):
        self.calls.append(("delete", report_id))
        if self.fail_delete:
            raise PersistenceError("delete failed")
        self.reports = [r for r in self.reports if r.id != report_id]


class FakeStorageClient:
    """Returns a URL per upload; filenames in ``fail_names`` fail."""

    def __init__(self):
        self.calls = []
        self.fail_names = set()

    async def upload(self, image, kind):
        self.calls.append((image.filename, kind))
        if image.filename in self.fail_names:
            raise UploadError("storage unavailable", filename=image.filename)
        return f"https://cdn.test/{kind.value}/{image.filename}?t=1"


class FakeAnalysisClient:

    def __init__(self, updated_urls=None):
        self.calls = []
        self.fail = False
        self.updated_urls = list(updated_urls or [])

    async def process(self, report_id, image):
        self.calls.append((report_id, image.filename))
        if self.fail:
            raise AnalysisError("analysis service returned 500")
        return ProcessedImage(report_id=report_id, findings=[], updated_urls=list(self.updated_urls))


class FakePointsClient:

    def __init__(self):
        self.calls = []
        self.fail = False

    async def award(self, user_id, delta):
        self.calls.append((user_id, delta))
        if self.fail:
            raise PersistenceError("points table locked")
        return delta


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def reports_client():
    return FakeReportsClient()


@pytest.fixture
def storage_client():
    return FakeStorageClient()


@pytest.fixture
def analysis_client():
    return FakeAnalysisClient()


@pytest.fixture
def points_client():
    return FakePointsClient()


@pytest.fixture
def user_context():
    return SessionContext(user_id="user-1")


@pytest.fixture
def admin_context():
    return SessionContext(user_id="admin-1", is_admin=True)


@pytest.fixture
def make_report():
    """Factory for hazard reports with sensible defaults."""
    def _make(**overrides):
        values = {
            "id": str(uuid.uuid4()),
            "title": "見通しの悪い交差点",
            "category": HazardCategory.TRAFFIC,
            "severity": 3,
            "longitude": 139.70,
            "latitude": 35.69,
            "status": ReportStatus.APPROVED,
            "user_id": "owner-1",
            "created_at": datetime.now(timezone.utc) - timedelta(days=1),
        }
        values.update(overrides)
        return HazardReport(**values)
    return _make


def encode_png(image):
    ok, encoded = cv2.imencode(".png", image)
    assert ok
    return encoded.tobytes()


@pytest.fixture
def dark_png():
    """Unlit 300x300 scene."""
    return encode_png(np.zeros((300, 300, 3), np.uint8))


@pytest.fixture
def cone_png():
    """Gray scene with an orange 100x100 block (BGR)."""
    image = np.full((300, 300, 3), 128, np.uint8)
    image[100:200, 100:200] = (0, 140, 255)
    return encode_png(image)


@pytest.fixture
def cracked_png():
    """Checkerboard with dense edges."""
    tiles = (np.indices((320, 320)) // 8).sum(axis=0) % 2
    gray = (tiles * 255).astype(np.uint8)
    return encode_png(cv2.cvtColor(gray, cv2.COLOR_GRAY2BGR))


@pytest.fixture
def photo(dark_png):
    return ImageUpload(filename="photo.png", content_type="image/png", data=dark_png)
