"""
Client for the reports endpoints
"""

import logging
from typing import List, Optional

import httpx

from pathguard.core.exceptions import PersistenceError
from pathguard.crowdsource.report_handler import (
    HazardReport,
    ReportDraft,
    ReportQuery,
    ReportStatus,
)
from .base import ApiClient

logger = logging.getLogger(__name__)

REPORTS_PATH = "/api/v1/reports"


def _parse_report(response: httpx.Response) -> HazardReport:
    try:
        return HazardReport.from_dict(response.json())
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise PersistenceError(f"Malformed report response: {e}")


class ReportsClient(ApiClient):
    """Query, create, moderate and delete hazard reports."""

    async def query(self, query: ReportQuery) -> List[HazardReport]:
        """
        Fetch reports matching the query, newest first.

        Raises:
            PersistenceError: if the request fails
        """
        response = await self._request(
            "GET", REPORTS_PATH, PersistenceError, params=query.to_params()
        )
        try:
            reports = [HazardReport.from_dict(item) for item in response.json()["reports"]]
        except (KeyError, TypeError, ValueError) as e:
            raise PersistenceError(f"Malformed reports response: {e}")

        logger.info(f"Fetched {len(reports)} reports")
        return reports

    async def get(self, report_id: str) -> HazardReport:
        response = await self._request("GET", f"{REPORTS_PATH}/{report_id}", PersistenceError)
        return _parse_report(response)

    async def create(
        self,
        draft: ReportDraft,
        image_url: Optional[str] = None,
        processed_image_urls: Optional[List[str]] = None,
    ) -> HazardReport:
        """
        Create a report from a validated draft.

        The server assigns the id and the pending status.

        Raises:
            PersistenceError: if the record could not be created
        """
        payload = {
            "title": draft.title,
            "description": draft.description,
            "category": draft.category.value,
            "severity": draft.severity,
            "longitude": draft.position.longitude,
            "latitude": draft.position.latitude,
            "image_url": image_url,
            "processed_image_urls": list(processed_image_urls or []),
        }

        response = await self._request("POST", REPORTS_PATH, PersistenceError, json=payload)
        report = _parse_report(response)

        logger.info(f"Report created: {report.id}")
        return report

    async def update_status(self, report_id: str, status: ReportStatus) -> HazardReport:
        response = await self._request(
            "PUT",
            f"{REPORTS_PATH}/{report_id}/status",
            PersistenceError,
            params={"status": status.value},
        )
        return _parse_report(response)

    async def delete(self, report_id: str) -> None:
        """
        Delete a report (admin only).

        Raises:
            PermissionDeniedError: if the caller is not an admin
            PersistenceError: for any other failure
        """
        await self._request("DELETE", f"{REPORTS_PATH}/{report_id}", PersistenceError)
        logger.info(f"Report deleted: {report_id}")
