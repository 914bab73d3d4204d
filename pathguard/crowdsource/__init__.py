"""
PathGuardian - Crowdsource Module
Hazard reports, draft validation and photo analysis.
"""

from pathguard.crowdsource.report_handler import (
    ReportHandler,
    HazardReport,
    HazardCategory,
    ReportStatus,
    ReportQuery,
    ReportDraft,
    ImageUpload,
    ImageKind,
)
from pathguard.crowdsource.photo_analyzer import (
    HazardPhotoAnalyzer,
    AnalysisResult,
    RiskFinding,
    analyze_hazard_photo,
)
from pathguard.crowdsource.validation import (
    ReportValidator,
    validate_report,
)

__all__ = [
    # Report Handler
    "ReportHandler",
    "HazardReport",
    "HazardCategory",
    "ReportStatus",
    "ReportQuery",
    "ReportDraft",
    "ImageUpload",
    "ImageKind",
    # Photo Analyzer
    "HazardPhotoAnalyzer",
    "AnalysisResult",
    "RiskFinding",
    "analyze_hazard_photo",
    # Validation
    "ReportValidator",
    "validate_report",
]
