"""
PathGuardian - REST API

FastAPI application providing endpoints for hazard reports, report images,
photo analysis, gamification points and map visualization.

Run with: uvicorn pathguard.api.main:app --reload
"""

from datetime import datetime, timezone
from typing import Optional, List

from fastapi import FastAPI, HTTPException, Query, File, UploadFile, Form, Depends, Header, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field

from pathguard import __version__
from pathguard.clients.base import ADMIN_ROLE, SessionContext
from pathguard.core.config import settings
from pathguard.core.exceptions import (
    AnalysisError,
    InvalidStatusTransition,
    PersistenceError,
    UploadError,
    ValidationError,
)
from pathguard.core.geo_utils import BoundingBox
from pathguard.core.logging import setup_logging
from pathguard.crowdsource.photo_analyzer import HazardPhotoAnalyzer
from pathguard.crowdsource.report_handler import (
    HazardCategory,
    HazardReport,
    ImageKind,
    ImageUpload,
    ReportHandler,
    ReportQuery,
    ReportStatus,
)
from pathguard.crowdsource.validation import ReportValidator
from pathguard.gamification.points import PointsLedger
from pathguard.storage.image_store import MEDIA_ROUTE, ImageStore
from pathguard.visualization.map_generator import create_report_map, markers_for_reports

VERSION = __version__

logger = setup_logging()

# FastAPI app
app = FastAPI(
    title="PathGuardian",
    description="Community hazard map for school and commute routes",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Uploaded images
app.mount(MEDIA_ROUTE, StaticFiles(directory=settings.storage_dir, check_dir=False), name="media")


# ============================================================================
# Pydantic Models
# ============================================================================

class HealthResponse(BaseModel):
    """API health status."""
    status: str
    version: str
    timestamp: str
    modules: dict


class ReportCreateRequest(BaseModel):
    """Request to create a hazard report. The status is always set to pending."""
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    category: HazardCategory
    severity: int = Field(..., ge=1, le=5)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    image_url: Optional[str] = None
    processed_image_urls: List[str] = Field(default_factory=list)


class ReportResponse(BaseModel):
    """Hazard report response."""
    id: str
    title: str
    description: Optional[str]
    category: str
    severity: int
    latitude: float
    longitude: float
    status: str
    image_url: Optional[str]
    processed_image_urls: List[str]
    user_id: Optional[str]
    created_at: str


class ReportListResponse(BaseModel):
    """List of hazard reports."""
    count: int
    pending_count: int
    reports: List[ReportResponse]


class ReportStatsResponse(BaseModel):
    """Report statistics."""
    total_reports: int
    pending_count: int
    by_status: dict
    by_category: dict
    with_photo: int


class ImageUploadResponse(BaseModel):
    url: str
    key: str
    kind: str
    size: int


class FindingResponse(BaseModel):
    category: str
    risk: str
    mitigation: str
    confidence: float
    regions: List[dict]


class ImageProcessResponse(BaseModel):
    """Photo analysis result for a report."""
    report_id: str
    findings: List[FindingResponse]
    severity_estimate: int
    image_quality: str
    processed_url: Optional[str]
    updated_urls: List[str]
    warnings: List[str]


class PointsAwardRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    delta: int


class PointsResponse(BaseModel):
    user_id: str
    points: int


# ============================================================================
# Dependencies
# ============================================================================

# Global instances for stateful services
_report_store = None
_points_ledger = None
_image_store = None
_photo_analyzer = HazardPhotoAnalyzer()


def _init_stores() -> None:
    global _report_store, _points_ledger

    if settings.uses_database:
        from pathguard.database import SqlPointsLedger, SqlReportStore, init_db

        db = init_db(settings.database_url)
        _report_store = SqlReportStore(db)
        _points_ledger = SqlPointsLedger(db)
    else:
        _report_store = ReportHandler()
        _points_ledger = PointsLedger()


def get_report_store():
    if _report_store is None:
        _init_stores()
    return _report_store


def get_points_ledger():
    if _points_ledger is None:
        _init_stores()
    return _points_ledger


def get_image_store() -> ImageStore:
    global _image_store
    if _image_store is None:
        _image_store = ImageStore()
    return _image_store


def get_photo_analyzer() -> HazardPhotoAnalyzer:
    return _photo_analyzer


def get_session_context(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> SessionContext:
    """Caller identity from the X-User-Id / X-User-Role headers."""
    return SessionContext(user_id=x_user_id or None, is_admin=(x_user_role == ADMIN_ROLE))


def require_user(context: SessionContext = Depends(get_session_context)) -> SessionContext:
    if not context.is_signed_in:
        raise HTTPException(status_code=403, detail="Sign-in required")
    return context


def require_admin(context: SessionContext = Depends(get_session_context)) -> SessionContext:
    if not context.is_admin:
        raise HTTPException(status_code=403, detail="Administrator privilege required")
    return context


# ============================================================================
# Helper Functions
# ============================================================================

def can_view(report: HazardReport, context: SessionContext) -> bool:
    """Pending reports are visible only to their owner and administrators."""
    if not report.is_pending:
        return True
    return context.is_admin or (context.is_signed_in and report.user_id == context.user_id)


def to_response(report: HazardReport) -> ReportResponse:
    return ReportResponse(**report.to_dict())


# ============================================================================
# System Routes
# ============================================================================

@app.get("/", response_class=HTMLResponse)
async def root():
    """Welcome page."""
    return """
    <!DOCTYPE html>
    <html>
    <head>
        <title>PathGuardian</title>
        <style>
            body { font-family: Arial; max-width: 900px; margin: 50px auto; padding: 20px; background: #f8fafc; color: #0f172a; }
            h1 { color: #2563eb; }
            h3 { color: #1e40af; margin-top: 30px; }
            a { color: #2563eb; }
            code { background: #e2e8f0; padding: 2px 8px; border-radius: 4px; }
            .endpoint { background: #fff; padding: 10px; margin: 5px 0; border-radius: 4px; border-left: 3px solid #2563eb; }
            .tag { display: inline-block; background: #2563eb; color: white; padding: 2px 8px; border-radius: 3px; font-size: 12px; margin-right: 5px; }
        </style>
    </head>
    <body>
        <h1>PathGuardian</h1>
        <p>通学路・通勤路の危険箇所をみんなで共有する安全マップ</p>

        <h3>Documentation</h3>
        <ul>
            <li><a href="/docs">Swagger UI</a></li>
            <li><a href="/redoc">ReDoc</a></li>
            <li><a href="/health">Health Check</a></li>
        </ul>

        <h3>Reports</h3>
        <div class="endpoint"><span class="tag">GET</span> <code>/api/v1/reports</code> - Query reports</div>
        <div class="endpoint"><span class="tag">POST</span> <code>/api/v1/reports</code> - Submit a hazard report</div>
        <div class="endpoint"><span class="tag">GET</span> <code>/api/v1/reports/{id}</code> - Report details</div>
        <div class="endpoint"><span class="tag">PUT</span> <code>/api/v1/reports/{id}/status</code> - Approve a report (admin)</div>
        <div class="endpoint"><span class="tag">DELETE</span> <code>/api/v1/reports/{id}</code> - Delete a report (admin)</div>

        <h3>Images</h3>
        <div class="endpoint"><span class="tag">POST</span> <code>/api/v1/images</code> - Upload an image</div>
        <div class="endpoint"><span class="tag">POST</span> <code>/api/v1/image/process</code> - Analyze a report photo</div>

        <h3>Points &amp; Map</h3>
        <div class="endpoint"><span class="tag">POST</span> <code>/api/v1/points</code> - Award points</div>
        <div class="endpoint"><span class="tag">GET</span> <code>/api/v1/points/{user_id}</code> - Point total</div>
        <div class="endpoint"><span class="tag">GET</span> <code>/api/v1/map/reports</code> - Report map</div>
    </body>
    </html>
    """


@app.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check():
    """Check API health status and module availability."""
    modules = {
        "reports": True,
        "database": settings.uses_database,
        "image_storage": True,
        "photo_analysis": True,
        "points": True,
    }

    return HealthResponse(
        status="healthy",
        version=VERSION,
        timestamp=datetime.now(timezone.utc).isoformat(),
        modules=modules,
    )


# ============================================================================
# Report Routes
# ============================================================================

@app.get("/api/v1/reports", response_model=ReportListResponse, tags=["Reports"])
async def list_reports(
    status: Optional[ReportStatus] = Query(None, description="Filter by status"),
    category: Optional[HazardCategory] = Query(None, description="Filter by hazard category"),
    severity: Optional[int] = Query(None, ge=1, le=5),
    created_after: Optional[datetime] = Query(None, description="Only reports created at or after"),
    user_id: Optional[str] = Query(None, description="Filter by owner"),
    west: Optional[float] = Query(None, ge=-180, le=180),
    south: Optional[float] = Query(None, ge=-90, le=90),
    east: Optional[float] = Query(None, ge=-180, le=180),
    north: Optional[float] = Query(None, ge=-90, le=90),
    context: SessionContext = Depends(get_session_context),
    store=Depends(get_report_store),
):
    """
    Query hazard reports, newest first.

    All filters are combined with AND. Pending reports of other users are
    left out unless the caller is an administrator.
    """
    bounds = (west, south, east, north)
    bbox = None
    if any(v is not None for v in bounds):
        if any(v is None for v in bounds):
            raise HTTPException(status_code=400, detail="west, south, east and north are required together")
        try:
            bbox = BoundingBox(west, south, east, north)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    if created_after is not None and created_after.tzinfo is None:
        created_after = created_after.replace(tzinfo=timezone.utc)

    query = ReportQuery(
        status=status,
        category=category,
        severity=severity,
        created_after=created_after,
        user_id=user_id,
        bbox=bbox,
    )

    try:
        reports = [r for r in store.query(query) if can_view(r, context)]
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return ReportListResponse(
        count=len(reports),
        pending_count=sum(1 for r in reports if r.is_pending),
        reports=[to_response(r) for r in reports],
    )


@app.post("/api/v1/reports", response_model=ReportResponse, status_code=201, tags=["Reports"])
async def create_report(
    request: ReportCreateRequest,
    context: SessionContext = Depends(require_user),
    store=Depends(get_report_store),
):
    """
    Create a new hazard report.

    The report is attributed to the calling user and always starts pending.
    """
    title = request.title.strip()
    if not title:
        raise HTTPException(status_code=400, detail="Title must not be blank")

    try:
        report = store.create_report(
            title=title,
            description=request.description,
            category=request.category,
            severity=request.severity,
            longitude=request.longitude,
            latitude=request.latitude,
            image_url=request.image_url,
            processed_image_urls=request.processed_image_urls,
            user_id=context.user_id,
        )
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return to_response(report)


@app.get("/api/v1/reports/stats/summary", response_model=ReportStatsResponse, tags=["Reports"])
async def get_report_stats(store=Depends(get_report_store)):
    """Get statistics for all hazard reports."""
    try:
        stats = store.get_statistics()
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return ReportStatsResponse(**stats)


@app.get("/api/v1/reports/{report_id}", response_model=ReportResponse, tags=["Reports"])
async def get_report(
    report_id: str,
    context: SessionContext = Depends(get_session_context),
    store=Depends(get_report_store),
):
    """Get a specific hazard report by ID."""
    try:
        report = store.get_report(report_id)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

    if not report or not can_view(report, context):
        raise HTTPException(status_code=404, detail="Report not found")

    return to_response(report)


@app.put("/api/v1/reports/{report_id}/status", response_model=ReportResponse, tags=["Reports"])
async def update_report_status(
    report_id: str,
    status: ReportStatus = Query(..., description="New status: approved"),
    context: SessionContext = Depends(require_admin),
    store=Depends(get_report_store),
):
    """Moderate a report. Only pending -> approved is allowed; use DELETE to remove."""
    if status is ReportStatus.DELETED:
        raise HTTPException(status_code=400, detail="Use DELETE to remove a report")

    try:
        report = store.update_status(report_id, status)
    except InvalidStatusTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

    if not report:
        raise HTTPException(status_code=404, detail="Report not found")

    logger.info(f"Report {report_id} set to {status.value} by {context.user_id}")
    return to_response(report)


@app.delete("/api/v1/reports/{report_id}", status_code=204, tags=["Reports"])
async def delete_report(
    report_id: str,
    context: SessionContext = Depends(require_admin),
    store=Depends(get_report_store),
):
    """Delete a report (administrators only). Deleting a missing report succeeds."""
    try:
        store.delete_report(report_id)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return Response(status_code=204)


# ============================================================================
# Image Routes
# ============================================================================

async def _read_image(file: UploadFile) -> ImageUpload:
    image = ImageUpload(
        filename=file.filename or "upload",
        content_type=file.content_type or "",
        data=await file.read(),
    )

    if image.size > settings.max_image_bytes:
        raise HTTPException(status_code=413, detail="Image exceeds the 10 MB limit")

    try:
        ReportValidator().validate_image(image)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return image


@app.post("/api/v1/images", response_model=ImageUploadResponse, status_code=201, tags=["Images"])
async def upload_image(
    file: UploadFile = File(...),
    kind: ImageKind = Form(...),
    context: SessionContext = Depends(require_user),
    image_store: ImageStore = Depends(get_image_store),
):
    """
    Upload a report image.

    Returns a public URL carrying a ``?t=<timestamp>`` cache buster.
    """
    image = await _read_image(file)

    try:
        stored = image_store.save(image.data, image.content_type, kind, filename=image.filename)
    except UploadError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return ImageUploadResponse(url=stored.url, key=stored.key, kind=kind.value, size=stored.size)


@app.post("/api/v1/image/process", response_model=ImageProcessResponse, tags=["Images"])
async def process_image(
    file: UploadFile = File(...),
    report_id: str = Form(...),
    context: SessionContext = Depends(require_user),
    store=Depends(get_report_store),
    image_store: ImageStore = Depends(get_image_store),
    analyzer: HazardPhotoAnalyzer = Depends(get_photo_analyzer),
):
    """
    Analyze a report photo for hazards.

    The annotated image is stored as a processed image of the report.
    """
    try:
        report = store.get_report(report_id)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

    if not report or not can_view(report, context):
        raise HTTPException(status_code=404, detail="Report not found")
    if not context.is_admin and report.user_id != context.user_id:
        raise HTTPException(status_code=403, detail="Only the report owner can process its images")

    image = await _read_image(file)

    try:
        analysis = analyzer.analyze(image.data)
    except AnalysisError as e:
        raise HTTPException(status_code=400, detail=str(e))

    processed_url = None
    updated_urls = list(report.processed_image_urls)

    try:
        if analysis.annotated_image:
            stored = image_store.save(analysis.annotated_image, "image/jpeg", ImageKind.PROCESSED)
            processed_url = stored.url
            updated = store.append_processed_images(report_id, [stored.url])
            if updated is not None:
                updated_urls = updated.processed_image_urls
    except (UploadError, PersistenceError) as e:
        raise HTTPException(status_code=500, detail=str(e))

    return ImageProcessResponse(
        report_id=report_id,
        findings=[FindingResponse(**f.to_dict()) for f in analysis.findings],
        severity_estimate=analysis.severity_estimate,
        image_quality=analysis.image_quality,
        processed_url=processed_url,
        updated_urls=updated_urls,
        warnings=analysis.warnings,
    )


# ============================================================================
# Points Routes
# ============================================================================

@app.post("/api/v1/points", response_model=PointsResponse, tags=["Points"])
async def award_points(request: PointsAwardRequest, ledger=Depends(get_points_ledger)):
    """Add points to a user's total."""
    try:
        total = ledger.award(request.user_id, request.delta)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return PointsResponse(user_id=request.user_id, points=total)


@app.get("/api/v1/points/{user_id}", response_model=PointsResponse, tags=["Points"])
async def get_points(user_id: str, ledger=Depends(get_points_ledger)):
    try:
        return PointsResponse(user_id=user_id, points=ledger.get_points(user_id))
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))


# ============================================================================
# Map Routes
# ============================================================================

@app.get("/api/v1/map/reports", response_class=HTMLResponse, tags=["Map"])
async def get_reports_map(
    show_pending: bool = Query(True, description="Include the caller's own pending reports"),
    context: SessionContext = Depends(get_session_context),
    store=Depends(get_report_store),
):
    """
    Generate a map of approved reports and the caller's pending reports.

    Markers are colored by category; pending markers are translucent.
    """
    try:
        reports = store.query(ReportQuery(status=ReportStatus.APPROVED))
        if show_pending and context.is_signed_in:
            reports += store.query(ReportQuery(status=ReportStatus.PENDING, user_id=context.user_id))
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

    report_map = create_report_map(markers_for_reports(reports))
    return report_map._repr_html_()


# ============================================================================
# Main
# ============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
