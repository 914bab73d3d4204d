"""
Local validation for hazard report drafts
Runs before any upload or API call so rejected drafts never reach the network
"""

import logging
from typing import Optional

from pathguard.core.config import settings
from pathguard.core.constants import MAX_SEVERITY, MIN_SEVERITY
from pathguard.core.exceptions import ValidationError, ValidationReason
from pathguard.crowdsource.report_handler import HazardCategory, ImageUpload, ReportDraft

logger = logging.getLogger(__name__)


class ReportValidator:
    """
    Validates report drafts and image attachments.

    Checks, in order: position, title, category, severity, images.
    """

    def __init__(self, max_image_bytes: Optional[int] = None):
        """
        Initialize validator.

        Args:
            max_image_bytes: Largest accepted image (default from settings, 10 MB)
        """
        self.max_image_bytes = max_image_bytes or settings.max_image_bytes

    def validate(self, draft: ReportDraft) -> ReportDraft:
        """
        Validate a draft report.

        Args:
            draft: Draft collected from the report form

        Returns:
            The same draft with the title trimmed

        Raises:
            ValidationError: with the reason for the first failed check
        """
        if draft.position is None:
            raise ValidationError(
                ValidationReason.MISSING_LOCATION,
                "地図上で位置を選択してください。",
            )

        title = (draft.title or "").strip()
        if not title:
            raise ValidationError(
                ValidationReason.MISSING_TITLE,
                "タイトルを入力してください。",
            )
        draft.title = title

        try:
            draft.category = HazardCategory(draft.category)
        except ValueError:
            raise ValidationError(
                ValidationReason.INVALID_CATEGORY,
                f"Unknown hazard category: {draft.category}",
            )

        if isinstance(draft.severity, bool) or not isinstance(draft.severity, int) \
                or not MIN_SEVERITY <= draft.severity <= MAX_SEVERITY:
            raise ValidationError(
                ValidationReason.INVALID_SEVERITY,
                f"Severity must be between {MIN_SEVERITY} and {MAX_SEVERITY}",
            )

        for image in draft.images:
            self.validate_image(image)

        return draft

    def validate_image(self, image: ImageUpload) -> ImageUpload:
        """
        Check that an attachment is an image of acceptable size.

        Raises:
            ValidationError: INVALID_IMAGE for non-image types or oversized files
        """
        if not (image.content_type or "").startswith("image/"):
            logger.info(f"Rejected {image.filename}: content type {image.content_type}")
            raise ValidationError(
                ValidationReason.INVALID_IMAGE,
                "画像ファイルを選択してください。",
            )

        if image.size > self.max_image_bytes:
            logger.info(f"Rejected {image.filename}: {image.size} bytes")
            raise ValidationError(
                ValidationReason.INVALID_IMAGE,
                "画像サイズは10MB以下にしてください。",
            )

        return image


def validate_report(draft: ReportDraft) -> ReportDraft:
    """
    Convenience function to validate a draft with default limits.

    Raises:
        ValidationError
    """
    return ReportValidator().validate(draft)
