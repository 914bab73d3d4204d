"""
Tests for the PathGuardian REST API
"""
import pytest
import sys
sys.path.insert(0, '.')

from fastapi.testclient import TestClient

from pathguard.api.main import app, get_image_store, get_points_ledger, get_report_store
from pathguard.crowdsource.report_handler import ReportHandler
from pathguard.gamification.points import PointsLedger
from pathguard.storage.image_store import ImageStore

client = TestClient(app)

USER = {"X-User-Id": "user-1"}
OTHER = {"X-User-Id": "user-2"}
ADMIN = {"X-User-Id": "admin-1", "X-User-Role": "admin"}


@pytest.fixture(autouse=True)
def stores(tmp_path):
    """Fresh in-memory stores and a temporary image bucket per test."""
    report_store = ReportHandler()
    ledger = PointsLedger()
    image_store = ImageStore(str(tmp_path), "http://testserver", "danger-reports")

    app.dependency_overrides[get_report_store] = lambda: report_store
    app.dependency_overrides[get_points_ledger] = lambda: ledger
    app.dependency_overrides[get_image_store] = lambda: image_store
    yield image_store
    app.dependency_overrides.clear()


def report_body(**overrides):
    body = {
        "title": "崩れかけた塀",
        "category": "disaster",
        "severity": 4,
        "longitude": 139.70,
        "latitude": 35.69,
    }
    body.update(overrides)
    return body


def create_report(headers=USER, **overrides):
    response = client.post("/api/v1/reports", json=report_body(**overrides), headers=headers)
    assert response.status_code == 201
    return response.json()


class TestSystemEndpoints:
    """Tests for system endpoints."""

    def test_root(self):
        response = client.get("/")
        assert response.status_code == 200
        assert "PathGuardian" in response.text

    def test_health(self):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["modules"]["reports"] is True


class TestReportEndpoints:
    """Tests for report endpoints."""

    def test_create_requires_user(self):
        response = client.post("/api/v1/reports", json=report_body())
        assert response.status_code == 403

    def test_create_is_always_pending(self):
        report = create_report(status="approved")
        assert report["status"] == "pending"
        assert report["user_id"] == "user-1"
        assert report["processed_image_urls"] == []

    def test_create_blank_title(self):
        response = client.post("/api/v1/reports", json=report_body(title="   "), headers=USER)
        assert response.status_code == 400

    @pytest.mark.parametrize("changes", [
        {"severity": 6},
        {"category": "flood"},
        {"latitude": 91},
    ])
    def test_create_invalid_fields(self, changes):
        response = client.post("/api/v1/reports", json=report_body(**changes), headers=USER)
        assert response.status_code == 422

    def test_pending_visible_to_owner_and_admin_only(self):
        report = create_report()

        def visible_ids(headers):
            return [r["id"] for r in client.get("/api/v1/reports", headers=headers).json()["reports"]]

        assert visible_ids(USER) == [report["id"]]
        assert visible_ids(ADMIN) == [report["id"]]
        assert visible_ids(OTHER) == []
        assert visible_ids({}) == []

        assert client.get(f"/api/v1/reports/{report['id']}", headers=OTHER).status_code == 404
        assert client.get(f"/api/v1/reports/{report['id']}", headers=USER).status_code == 200

    def test_list_filters(self):
        create_report(category="crime", severity=2)
        create_report(category="traffic", severity=2)

        data = client.get(
            "/api/v1/reports", params={"category": "crime", "severity": 2}, headers=USER
        ).json()
        assert data["count"] == 1
        assert data["pending_count"] == 1
        assert data["reports"][0]["category"] == "crime"

    def test_list_bbox(self):
        create_report(longitude=139.70, latitude=35.69)
        create_report(longitude=135.50, latitude=34.69)

        bbox = {"west": 139.0, "south": 35.0, "east": 140.0, "north": 36.0}
        data = client.get("/api/v1/reports", params=bbox, headers=USER).json()
        assert data["count"] == 1

    def test_partial_bbox_rejected(self):
        response = client.get("/api/v1/reports", params={"west": 139.0})
        assert response.status_code == 400

    def test_approve_requires_admin(self):
        report = create_report()
        response = client.put(
            f"/api/v1/reports/{report['id']}/status", params={"status": "approved"}, headers=USER
        )
        assert response.status_code == 403

    def test_approve_makes_report_public(self):
        report = create_report()
        response = client.put(
            f"/api/v1/reports/{report['id']}/status", params={"status": "approved"}, headers=ADMIN
        )
        assert response.status_code == 200
        assert response.json()["status"] == "approved"

        public = client.get("/api/v1/reports", params={"status": "approved"}).json()
        assert [r["id"] for r in public["reports"]] == [report["id"]]

    def test_approve_twice_conflicts(self):
        report = create_report()
        url = f"/api/v1/reports/{report['id']}/status"
        client.put(url, params={"status": "approved"}, headers=ADMIN)
        assert client.put(url, params={"status": "approved"}, headers=ADMIN).status_code == 409

    def test_status_deleted_must_use_delete(self):
        report = create_report()
        response = client.put(
            f"/api/v1/reports/{report['id']}/status", params={"status": "deleted"}, headers=ADMIN
        )
        assert response.status_code == 400

    def test_approve_missing_report(self):
        response = client.put(
            "/api/v1/reports/missing/status", params={"status": "approved"}, headers=ADMIN
        )
        assert response.status_code == 404

    def test_delete_requires_admin(self):
        report = create_report()
        assert client.delete(f"/api/v1/reports/{report['id']}", headers=USER).status_code == 403
        assert client.get(f"/api/v1/reports/{report['id']}", headers=USER).status_code == 200

    def test_delete_is_idempotent(self):
        report = create_report()
        assert client.delete(f"/api/v1/reports/{report['id']}", headers=ADMIN).status_code == 204
        assert client.get(f"/api/v1/reports/{report['id']}", headers=ADMIN).status_code == 404
        assert client.delete(f"/api/v1/reports/{report['id']}", headers=ADMIN).status_code == 204

    def test_stats(self):
        create_report(category="crime")
        create_report(category="crime", image_url="http://testserver/media/x.jpg")

        data = client.get("/api/v1/reports/stats/summary").json()
        assert data["total_reports"] == 2
        assert data["by_category"] == {"crime": 2}
        assert data["with_photo"] == 1


class TestImageEndpoints:
    """Tests for image upload and processing."""

    def test_upload(self, stores, dark_png):
        response = client.post(
            "/api/v1/images",
            files={"file": ("photo.png", dark_png, "image/png")},
            data={"kind": "original"},
            headers=USER,
        )
        assert response.status_code == 201

        data = response.json()
        assert data["url"].startswith("http://testserver/media/danger-reports/")
        assert "?t=" in data["url"]
        assert data["kind"] == "original"
        assert (stores.bucket_dir / data["key"]).read_bytes() == dark_png

    def test_upload_requires_user(self, dark_png):
        response = client.post(
            "/api/v1/images",
            files={"file": ("photo.png", dark_png, "image/png")},
            data={"kind": "original"},
        )
        assert response.status_code == 403

    def test_upload_non_image(self):
        response = client.post(
            "/api/v1/images",
            files={"file": ("notes.txt", b"hello", "text/plain")},
            data={"kind": "original"},
            headers=USER,
        )
        assert response.status_code == 400

    def test_upload_too_large(self):
        big = b"\0" * (10 * 1024 * 1024 + 1)
        response = client.post(
            "/api/v1/images",
            files={"file": ("big.jpg", big, "image/jpeg")},
            data={"kind": "processed"},
            headers=USER,
        )
        assert response.status_code == 413

    def test_process_appends_annotated_image(self, dark_png):
        report = create_report(processed_image_urls=["http://testserver/media/first.jpg"])

        response = client.post(
            "/api/v1/image/process",
            files={"file": ("photo.png", dark_png, "image/png")},
            data={"report_id": report["id"]},
            headers=USER,
        )
        assert response.status_code == 200

        data = response.json()
        assert "crime" in [f["category"] for f in data["findings"]]
        assert data["severity_estimate"] == 5
        assert len(data["updated_urls"]) == 2
        assert data["updated_urls"][0] == "http://testserver/media/first.jpg"
        assert data["updated_urls"][1] == data["processed_url"]

        stored = client.get(f"/api/v1/reports/{report['id']}", headers=USER).json()
        assert stored["processed_image_urls"] == data["updated_urls"]

    def test_process_other_users_report(self, dark_png):
        report = create_report()
        client.put(f"/api/v1/reports/{report['id']}/status", params={"status": "approved"}, headers=ADMIN)

        response = client.post(
            "/api/v1/image/process",
            files={"file": ("photo.png", dark_png, "image/png")},
            data={"report_id": report["id"]},
            headers=OTHER,
        )
        assert response.status_code == 403

    def test_process_unknown_report(self, dark_png):
        response = client.post(
            "/api/v1/image/process",
            files={"file": ("photo.png", dark_png, "image/png")},
            data={"report_id": "missing"},
            headers=USER,
        )
        assert response.status_code == 404

    def test_process_undecodable_image(self):
        report = create_report()
        response = client.post(
            "/api/v1/image/process",
            files={"file": ("photo.jpg", b"not really a jpeg", "image/jpeg")},
            data={"report_id": report["id"]},
            headers=USER,
        )
        assert response.status_code == 400


class TestPointsEndpoints:
    """Tests for gamification points."""

    def test_award_and_read(self):
        client.post("/api/v1/points", json={"user_id": "user-1", "delta": 20})
        response = client.post("/api/v1/points", json={"user_id": "user-1", "delta": 5})
        assert response.json()["points"] == 25
        assert client.get("/api/v1/points/user-1").json() == {"user_id": "user-1", "points": 25}

    def test_award_requires_user_id(self):
        assert client.post("/api/v1/points", json={"user_id": "", "delta": 5}).status_code == 422


class TestMapEndpoint:

    def test_map_html(self):
        create_report()
        response = client.get("/api/v1/map/reports", headers=USER)
        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
