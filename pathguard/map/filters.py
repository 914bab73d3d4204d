"""
Filter controller for the report map

Holds the four filter predicates and refetches the report collections
whenever one of them changes. Responses are sequenced: a response whose
request has been superseded by a newer refresh is discarded.
"""

import calendar
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from pathguard.clients.base import SessionContext
from pathguard.core.constants import DATE_RANGES, FILTER_ALL, MAX_SEVERITY, MIN_SEVERITY
from pathguard.core.exceptions import PathGuardError
from pathguard.crowdsource.report_handler import HazardCategory, ReportQuery, ReportStatus
from .markers import MarkerLayer
from .notices import NoticeLevel, NoticeQueue
from .report_collections import ReportCollections

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilterOptions:
    """Filter predicates, combined with logical AND."""
    category: str = FILTER_ALL
    severity: Union[str, int] = FILTER_ALL
    date_range: str = FILTER_ALL
    show_pending: bool = True

    def __post_init__(self):
        if self.category != FILTER_ALL:
            HazardCategory(self.category)
        if self.severity != FILTER_ALL and not (
            isinstance(self.severity, int) and MIN_SEVERITY <= self.severity <= MAX_SEVERITY
        ):
            raise ValueError(f"Invalid severity filter: {self.severity}")
        if self.date_range not in DATE_RANGES:
            raise ValueError(f"Invalid date range: {self.date_range}")


def _months_ago(now: datetime, months: int) -> datetime:
    year, month = divmod(now.year * 12 + now.month - 1 - months, 12)
    month += 1
    day = min(now.day, calendar.monthrange(year, month)[1])
    return now.replace(year=year, month=month, day=day)


def date_lower_bound(date_range: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Earliest creation time admitted by a date range.

    Args:
        date_range: all, week, month or year
        now: Reference time (default: current UTC time)

    Returns:
        Lower bound, or None for "all"
    """
    now = now or datetime.now(timezone.utc)

    if date_range == "week":
        return now - timedelta(days=7)
    if date_range == "month":
        return _months_ago(now, 1)
    if date_range == "year":
        return _months_ago(now, 12)
    if date_range == FILTER_ALL:
        return None
    raise ValueError(f"Invalid date range: {date_range}")


class FilterController:
    """
    Keeps the report collections in line with the current filters.

    Usage:
        controller = FilterController(collections, reports_client, context, markers)
        await controller.update(category="crime", date_range="week")
    """

    def __init__(
        self,
        collections: ReportCollections,
        reports_client,
        context: SessionContext,
        markers: Optional[MarkerLayer] = None,
        notices: Optional[NoticeQueue] = None,
        options: Optional[FilterOptions] = None
    ):
        self.collections = collections
        self.reports_client = reports_client
        self.context = context
        self.markers = markers
        self.notices = notices or NoticeQueue()
        self.options = options or FilterOptions()
        self._generation = 0

    def approved_query(self, options: FilterOptions, now: Optional[datetime] = None) -> ReportQuery:
        return ReportQuery(
            status=ReportStatus.APPROVED,
            category=None if options.category == FILTER_ALL else HazardCategory(options.category),
            severity=None if options.severity == FILTER_ALL else int(options.severity),
            created_after=date_lower_bound(options.date_range, now),
        )

    def pending_query(self) -> ReportQuery:
        return ReportQuery(status=ReportStatus.PENDING, user_id=self.context.user_id)

    async def update(self, **changes) -> bool:
        """
        Change one or more predicates and refetch.

        Raises:
            ValueError: for an unknown filter value (nothing is fetched)
        """
        self.options = replace(self.options, **changes)
        if self.markers is not None:
            self.markers.set_show_pending(self.options.show_pending)
        return await self.refresh()

    async def refresh(self) -> bool:
        """
        Refetch approved and (optionally) own pending reports.

        Returns:
            False if the result was discarded because a newer refresh started
        """
        self._generation += 1
        generation = self._generation
        options = self.options

        try:
            approved = await self.reports_client.query(self.approved_query(options))
        except PathGuardError as e:
            if generation != self._generation:
                return False
            logger.error(f"Error fetching reports: {e}")
            self.notices.push("データ取得エラー", f"危険箇所データの取得エラー: {e}", NoticeLevel.ERROR)
            self.collections.clear()
            return True

        pending = []
        if options.show_pending and self.context.is_signed_in:
            try:
                pending = await self.reports_client.query(self.pending_query())
            except PathGuardError as e:
                logger.error(f"Error fetching pending reports: {e}")

        if generation != self._generation:
            logger.debug(f"Discarding stale fetch #{generation} (latest #{self._generation})")
            return False

        self.collections.replace(approved=approved, pending=pending)
        logger.info(f"Loaded {len(approved)} approved and {len(pending)} pending reports")
        return True
