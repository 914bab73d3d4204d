"""
Tests for the API clients (httpx MockTransport)
"""
import asyncio
import json
import pytest
import sys
sys.path.insert(0, '.')

import httpx

from pathguard.clients import (
    AnalysisClient,
    PathGuardClient,
    PointsClient,
    ReportsClient,
    SessionContext,
    StorageClient,
)
from pathguard.core.exceptions import (
    AnalysisError,
    PermissionDeniedError,
    PersistenceError,
    UploadError,
)
from pathguard.core.geo_utils import LngLat
from pathguard.map.session import MapSession
from pathguard.crowdsource.report_handler import (
    HazardCategory,
    ImageKind,
    ImageUpload,
    ReportDraft,
    ReportQuery,
    ReportStatus,
)

BASE_URL = "http://api.test"


def report_payload(**overrides):
    payload = {
        "id": "r-1",
        "title": "崩れかけた塀",
        "description": None,
        "category": "disaster",
        "severity": 4,
        "longitude": 139.70,
        "latitude": 35.69,
        "status": "pending",
        "image_url": None,
        "processed_image_urls": [],
        "user_id": "user-1",
        "created_at": "2026-10-19T09:00:00+00:00",
    }
    payload.update(overrides)
    return payload


class Recorder:
    """MockTransport handler that records requests and replays one response."""

    def __init__(self, status_code=200, body=None, error=None):
        self.status_code = status_code
        self.body = body if body is not None else {}
        self.error = error
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, json=self.body)


def html_page(request):
    return httpx.Response(200, text="<html>Bad gateway</html>", headers={"content-type": "text/html"})


def run(client, call):
    async def scenario():
        async with client:
            return await call(client)
    return asyncio.run(scenario())


def make(cls, handler, context=None):
    return cls(
        context or SessionContext(user_id="user-1"),
        base_url=BASE_URL,
        transport=httpx.MockTransport(handler),
    )


class TestSessionContext:

    def test_headers(self):
        assert SessionContext().to_headers() == {}
        assert SessionContext(user_id="u1", is_admin=True).to_headers() == {
            "X-User-Id": "u1",
            "X-User-Role": "admin",
        }


class TestReportsClient:
    """Tests for ReportsClient."""

    def test_query_sends_filters_and_identity(self):
        handler = Recorder(body={"count": 1, "pending_count": 1, "reports": [report_payload()]})
        query = ReportQuery(status=ReportStatus.PENDING, category=HazardCategory.DISASTER, user_id="user-1")

        reports = run(make(ReportsClient, handler), lambda c: c.query(query))

        request = handler.requests[0]
        assert request.url.path == "/api/v1/reports"
        assert request.url.params["status"] == "pending"
        assert request.url.params["category"] == "disaster"
        assert request.url.params["user_id"] == "user-1"
        assert request.headers["X-User-Id"] == "user-1"
        assert reports[0].id == "r-1"
        assert reports[0].created_at.tzinfo is not None

    def test_malformed_response(self):
        handler = Recorder(body={"unexpected": True})
        with pytest.raises(PersistenceError):
            run(make(ReportsClient, handler), lambda c: c.query(ReportQuery()))

    def test_create_posts_draft(self):
        handler = Recorder(status_code=201, body=report_payload(image_url="https://cdn.test/o.jpg"))
        draft = ReportDraft("崩れかけた塀", HazardCategory.DISASTER, 4, LngLat(139.70, 35.69))

        report = run(
            make(ReportsClient, handler),
            lambda c: c.create(draft, "https://cdn.test/o.jpg", ["https://cdn.test/p.jpg"]),
        )

        body = json.loads(handler.requests[0].content)
        assert body["category"] == "disaster"
        assert body["longitude"] == 139.70
        assert body["processed_image_urls"] == ["https://cdn.test/p.jpg"]
        assert "status" not in body
        assert report.status is ReportStatus.PENDING

    def test_server_error_is_persistence_error(self):
        handler = Recorder(status_code=500, body={"detail": "db down"})
        with pytest.raises(PersistenceError, match="db down"):
            run(make(ReportsClient, handler), lambda c: c.get("r-1"))

    def test_transport_error_is_persistence_error(self):
        handler = Recorder(error=httpx.ConnectError("refused"))
        with pytest.raises(PersistenceError):
            run(make(ReportsClient, handler), lambda c: c.query(ReportQuery()))

    def test_forbidden_delete(self):
        handler = Recorder(status_code=403, body={"detail": "Administrator privilege required"})
        with pytest.raises(PermissionDeniedError):
            run(make(ReportsClient, handler), lambda c: c.delete("r-1"))

    def test_admin_delete_sends_role(self):
        handler = Recorder(status_code=204)
        admin = SessionContext(user_id="admin-1", is_admin=True)
        run(make(ReportsClient, handler, admin), lambda c: c.delete("r-1"))

        request = handler.requests[0]
        assert request.method == "DELETE"
        assert request.url.path == "/api/v1/reports/r-1"
        assert request.headers["X-User-Role"] == "admin"

    def test_update_status(self):
        handler = Recorder(body=report_payload(status="approved"))
        report = run(
            make(ReportsClient, handler),
            lambda c: c.update_status("r-1", ReportStatus.APPROVED),
        )
        assert handler.requests[0].url.params["status"] == "approved"
        assert report.status is ReportStatus.APPROVED

    def test_create_non_json_response(self):
        draft = ReportDraft("崩れかけた塀", HazardCategory.DISASTER, 4, LngLat(139.70, 35.69))
        with pytest.raises(PersistenceError, match="Malformed"):
            run(make(ReportsClient, html_page), lambda c: c.create(draft))

    def test_get_incomplete_report(self):
        handler = Recorder(body={"id": "r-1", "title": "x"})
        with pytest.raises(PersistenceError):
            run(make(ReportsClient, handler), lambda c: c.get("r-1"))

    def test_update_status_non_object_body(self):
        handler = Recorder(body=["approved"])
        with pytest.raises(PersistenceError):
            run(make(ReportsClient, handler), lambda c: c.update_status("r-1", ReportStatus.APPROVED))


class TestStorageClient:
    """Tests for StorageClient."""

    def setup_method(self):
        self.image = ImageUpload("photo.jpg", "image/jpeg", b"\xff\xd8data")

    def test_upload_returns_url(self):
        url = "http://api.test/media/danger-reports/1-abc-original.jpg?t=1"
        handler = Recorder(status_code=201, body={"url": url, "key": "k", "kind": "original", "size": 6})

        result = run(make(StorageClient, handler), lambda c: c.upload(self.image, ImageKind.ORIGINAL))

        assert result == url
        content = handler.requests[0].content
        assert b'name="kind"' in content
        assert b"photo.jpg" in content

    def test_failed_upload_names_file(self):
        handler = Recorder(status_code=500, body={"detail": "disk full"})
        with pytest.raises(UploadError) as exc:
            run(make(StorageClient, handler), lambda c: c.upload(self.image, ImageKind.PROCESSED))
        assert exc.value.filename == "photo.jpg"

    def test_missing_url(self):
        handler = Recorder(status_code=201, body={})
        with pytest.raises(UploadError):
            run(make(StorageClient, handler), lambda c: c.upload(self.image, ImageKind.ORIGINAL))

    def test_non_json_response_names_file(self):
        with pytest.raises(UploadError) as exc:
            run(make(StorageClient, html_page), lambda c: c.upload(self.image, ImageKind.PROCESSED))
        assert exc.value.filename == "photo.jpg"


class TestAnalysisClient:
    """Tests for AnalysisClient."""

    def setup_method(self):
        self.image = ImageUpload("photo.jpg", "image/jpeg", b"\xff\xd8data")

    def test_process(self):
        handler = Recorder(body={
            "report_id": "r-1",
            "findings": [{
                "category": "crime",
                "risk": "暗い",
                "mitigation": "街灯",
                "confidence": 0.9,
                "regions": [],
            }],
            "updated_urls": ["https://cdn.test/processed/a.jpg"],
        })

        result = run(make(AnalysisClient, handler), lambda c: c.process("r-1", self.image))

        assert result.updated_urls == ["https://cdn.test/processed/a.jpg"]
        assert result.findings[0].category is HazardCategory.CRIME
        assert b'name="report_id"' in handler.requests[0].content

    def test_service_failure(self):
        handler = Recorder(status_code=400, body={"detail": "Failed to decode image"})
        with pytest.raises(AnalysisError):
            run(make(AnalysisClient, handler), lambda c: c.process("r-1", self.image))


class TestPointsClient:

    def test_award(self):
        handler = Recorder(body={"user_id": "owner-1", "points": 25})
        total = run(make(PointsClient, handler), lambda c: c.award("owner-1", 5))

        assert total == 25
        assert json.loads(handler.requests[0].content) == {"user_id": "owner-1", "delta": 5}

    def test_malformed_total(self):
        handler = Recorder(body={"user_id": "owner-1", "points": "many"})
        with pytest.raises(PersistenceError):
            run(make(PointsClient, handler), lambda c: c.get_points("owner-1"))


class TestPathGuardClient:

    def test_clients_share_context_and_transport(self):
        handler = Recorder(body={"user_id": "user-1", "points": 3})
        api = PathGuardClient(
            SessionContext(user_id="user-1"),
            base_url=BASE_URL,
            transport=httpx.MockTransport(handler),
        )

        async def scenario():
            async with api:
                return await api.points.get_points("user-1")

        assert asyncio.run(scenario()) == 3
        assert api.reports.context is api.context
        assert handler.requests[0].url.host == "api.test"


class Backend:
    """MockTransport handler routing by path like the PathGuardian API."""

    def __init__(self, broken_upload=None, broken_create=False):
        self.broken_upload = broken_upload
        self.broken_create = broken_create
        self.created = []

    def __call__(self, request):
        path = request.url.path
        if path == "/api/v1/images":
            if self.broken_upload and f'filename="{self.broken_upload}"'.encode() in request.content:
                return html_page(request)
            name = "first.jpg" if b'filename="first.jpg"' in request.content else "second.jpg"
            return httpx.Response(201, json={"url": f"https://cdn.test/processed/{name}"})
        if path == "/api/v1/reports":
            if self.broken_create:
                return html_page(request)
            body = json.loads(request.content)
            self.created.append(body)
            return httpx.Response(201, json=report_payload(
                image_url=body["image_url"],
                processed_image_urls=body["processed_image_urls"],
            ))
        if path == "/api/v1/points":
            return httpx.Response(200, json={"user_id": "user-1", "points": 20})
        return httpx.Response(404, json={"detail": "Not found"})


class TestSubmissionOverHttp:
    """Submission through MapSession with every client on one MockTransport."""

    def setup_method(self):
        self.draft = ReportDraft(
            "崩れかけた塀",
            HazardCategory.DISASTER,
            4,
            LngLat(139.70, 35.69),
            processed_images=[
                ImageUpload("first.jpg", "image/jpeg", b"\xff\xd8" + b"\0" * 64),
                ImageUpload("second.jpg", "image/jpeg", b"\xff\xd8" + b"\0" * 64),
            ],
        )

    def submit(self, backend):
        api = PathGuardClient(
            SessionContext(user_id="user-1"),
            base_url=BASE_URL,
            transport=httpx.MockTransport(backend),
        )
        session = MapSession.from_client(api)

        async def scenario():
            async with api:
                try:
                    return await session.submit_report(self.draft)
                finally:
                    await session.tasks.drain()

        return session, scenario

    def test_html_upload_response_drops_only_that_image(self):
        backend = Backend(broken_upload="second.jpg")
        session, scenario = self.submit(backend)

        outcome = asyncio.run(scenario())

        assert len(backend.created) == 1
        assert backend.created[0]["processed_image_urls"] == ["https://cdn.test/processed/first.jpg"]
        assert outcome.report.processed_image_urls == ["https://cdn.test/processed/first.jpg"]
        assert outcome.failed_uploads == ["second.jpg"]
        assert session.collections.pending == [outcome.report]
        assert "画像アップロードエラー" in [n.title for n in session.notices]

    def test_html_create_response_is_reported(self):
        backend = Backend(broken_create=True)
        session, scenario = self.submit(backend)

        with pytest.raises(PersistenceError):
            asyncio.run(scenario())

        assert session.collections.pending == []
        assert session.notices.latest.title == "送信エラー"
