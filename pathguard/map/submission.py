"""
Report submission flow

validate -> upload images concurrently -> create (pending) -> preview,
then image analysis and the point award run in the background. Nothing
after creation can undo the created report.
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from functools import partial
from typing import List, Optional

from pathguard.clients.analysis_client import ProcessedImage
from pathguard.clients.base import SessionContext
from pathguard.core.config import settings
from pathguard.core.exceptions import (
    PathGuardError,
    PermissionDeniedError,
    PersistenceError,
    ValidationError,
)
from pathguard.core.tasks import BackgroundTasks
from pathguard.crowdsource.report_handler import (
    HazardReport,
    ImageKind,
    ImageUpload,
    ReportDraft,
)
from pathguard.crowdsource.photo_analyzer import RiskFinding
from pathguard.crowdsource.validation import ReportValidator
from .notices import NoticeLevel, NoticeQueue
from .report_collections import ReportCollections
from .surface import MapSurface

logger = logging.getLogger(__name__)


@dataclass
class SubmissionOutcome:
    """Result of a submission; updated in place when background analysis finishes."""
    report: HazardReport
    warnings: List[str] = field(default_factory=list)
    failed_uploads: List[str] = field(default_factory=list)
    findings: List[RiskFinding] = field(default_factory=list)


def merge_urls(existing: List[str], new: List[str]) -> List[str]:
    """Append new references, keeping order and dropping duplicates."""
    merged = list(existing)
    for url in new:
        if url not in merged:
            merged.append(url)
    return merged


class ReportSubmissionFlow:
    """Turns a draft into a created report and reconciles local state."""

    def __init__(
        self,
        context: SessionContext,
        surface: MapSurface,
        collections: ReportCollections,
        reports_client,
        storage_client,
        analysis_client,
        points_client,
        tasks: BackgroundTasks,
        notices: Optional[NoticeQueue] = None,
        validator: Optional[ReportValidator] = None,
        report_points: Optional[int] = None
    ):
        self.context = context
        self.surface = surface
        self.collections = collections
        self.reports_client = reports_client
        self.storage_client = storage_client
        self.analysis_client = analysis_client
        self.points_client = points_client
        self.tasks = tasks
        self.notices = notices or NoticeQueue()
        self.validator = validator or ReportValidator()
        self.report_points = (
            report_points if report_points is not None else settings.points_report_submitted
        )

    async def submit(self, draft: ReportDraft) -> SubmissionOutcome:
        """
        Submit a draft report.

        Returns:
            SubmissionOutcome with the created (pending) report

        Raises:
            ValidationError: draft rejected locally, nothing was sent
            PermissionDeniedError: no signed-in user
            PersistenceError: the report could not be created
        """
        try:
            draft = self.validator.validate(draft)
        except ValidationError as e:
            self.notices.push("エラー", str(e), NoticeLevel.ERROR)
            raise

        if not self.context.is_signed_in:
            self.notices.push("認証エラー", "ユーザー情報が取得できませんでした。", NoticeLevel.ERROR)
            raise PermissionDeniedError("A signed-in user is required to submit reports")

        image_url, processed_urls, failed = await self._upload_images(draft)

        try:
            report = await self.reports_client.create(draft, image_url, processed_urls)
        except PersistenceError as e:
            logger.error(f"Error submitting report: {e}")
            self.notices.push("送信エラー", f"報告の送信エラー: {e}", NoticeLevel.ERROR)
            raise

        outcome = SubmissionOutcome(report=report, failed_uploads=failed)
        outcome.warnings.extend(f"画像のアップロードに失敗しました: {name}" for name in failed)

        self.collections.prepend_pending(report)
        self.surface.complete_submission(report.position)
        self.notices.push("報告完了", "危険箇所報告が送信されました。", NoticeLevel.SUCCESS)

        if draft.original_image is not None:
            self.tasks.spawn(
                self._analyze(outcome, draft.original_image),
                name=f"analyze-{report.id}",
                on_error=partial(self._analysis_failed, outcome),
            )

        self.tasks.spawn(
            self._award_points(self.context.user_id),
            name=f"award-report-{report.id}",
            on_error=self._award_failed,
        )

        logger.info(f"Report {report.id} submitted ({len(processed_urls)} processed images)")
        return outcome

    async def _upload_images(self, draft: ReportDraft):
        uploads: List[ImageUpload] = list(draft.processed_images)
        kinds = [ImageKind.PROCESSED] * len(uploads)
        if draft.original_image is not None:
            uploads.append(draft.original_image)
            kinds.append(ImageKind.ORIGINAL)

        results = await asyncio.gather(
            *(self.storage_client.upload(image, kind) for image, kind in zip(uploads, kinds)),
            return_exceptions=True,
        )

        image_url: Optional[str] = None
        processed_urls: List[str] = []
        failed: List[str] = []

        for image, kind, result in zip(uploads, kinds, results):
            if isinstance(result, PathGuardError):
                logger.warning(f"Upload of {image.filename} failed: {result}")
                self.notices.push("画像アップロードエラー", str(result), NoticeLevel.WARNING)
                failed.append(image.filename)
            elif isinstance(result, BaseException):
                raise result
            elif kind is ImageKind.ORIGINAL:
                image_url = result
            else:
                processed_urls.append(result)

        return image_url, processed_urls, failed

    async def _analyze(self, outcome: SubmissionOutcome, image: ImageUpload) -> None:
        result: ProcessedImage = await self.analysis_client.process(outcome.report.id, image)

        enriched = replace(
            outcome.report,
            processed_image_urls=merge_urls(outcome.report.processed_image_urls, result.updated_urls),
        )
        outcome.report = enriched
        outcome.findings = list(result.findings)
        self.collections.update(enriched)
        self.notices.push("画像処理完了", "画像がアップロード・処理されました。", NoticeLevel.SUCCESS)

    def _analysis_failed(self, outcome: SubmissionOutcome, exc: BaseException) -> None:
        message = f"レポートは保存されましたが、画像の処理に失敗しました: {exc}"
        outcome.warnings.append(message)
        self.notices.push("画像処理エラー", message, NoticeLevel.WARNING)

    async def _award_points(self, user_id: str) -> None:
        await self.points_client.award(user_id, self.report_points)
        self.notices.push(
            "ポイント獲得", f"報告送信で +{self.report_points}pt 獲得しました。", NoticeLevel.SUCCESS
        )

    def _award_failed(self, exc: BaseException) -> None:
        logger.warning(f"Gamification error: {exc}")
