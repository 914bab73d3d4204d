"""
Client for the image analysis endpoint
"""

import logging
from dataclasses import dataclass, field
from typing import List

from pathguard.core.exceptions import AnalysisError
from pathguard.crowdsource.photo_analyzer import RiskFinding
from pathguard.crowdsource.report_handler import ImageUpload
from .base import ApiClient

logger = logging.getLogger(__name__)

PROCESS_PATH = "/api/v1/image/process"


@dataclass
class ProcessedImage:
    """Analysis outcome for one report photo."""
    report_id: str
    findings: List[RiskFinding] = field(default_factory=list)
    updated_urls: List[str] = field(default_factory=list)


class AnalysisClient(ApiClient):
    """Sends report photos to the hazard analyzer."""

    async def process(self, report_id: str, image: ImageUpload) -> ProcessedImage:
        """
        Analyze a report's original photo.

        Returns:
            Findings and the report's full processed-image URL list

        Raises:
            AnalysisError: if the service fails or returns an unusable body
        """
        response = await self._request(
            "POST",
            PROCESS_PATH,
            AnalysisError,
            files={"file": (image.filename, image.data, image.content_type)},
            data={"report_id": report_id},
        )

        try:
            body = response.json()
            result = ProcessedImage(
                report_id=report_id,
                findings=[RiskFinding.from_dict(f) for f in body.get("findings", [])],
                updated_urls=list(body.get("updated_urls") or []),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise AnalysisError(f"Malformed analysis response: {e}")

        logger.info(f"Analysis for {report_id}: {len(result.findings)} findings")
        return result
