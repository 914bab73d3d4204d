"""
Tests for the filter controller
"""
import asyncio
import pytest
import sys
sys.path.insert(0, '.')

from datetime import datetime, timedelta, timezone

from pathguard.clients.base import SessionContext
from pathguard.core.tasks import BackgroundTasks
from pathguard.crowdsource.report_handler import HazardCategory, ReportStatus
from pathguard.map.filters import FilterController, FilterOptions, date_lower_bound
from pathguard.map.markers import MarkerLayer
from pathguard.map.notices import NoticeLevel, NoticeQueue
from pathguard.map.report_collections import ReportCollections


class TestDateLowerBound:
    """Tests for date range bounds."""

    def setup_method(self):
        self.now = datetime(2026, 3, 31, 12, 0, tzinfo=timezone.utc)

    def test_all_has_no_bound(self):
        assert date_lower_bound("all", self.now) is None

    def test_week(self):
        assert date_lower_bound("week", self.now) == self.now - timedelta(days=7)

    def test_month_clamps_day(self):
        """March 31 minus one month is the last day of February."""
        assert date_lower_bound("month", self.now) == datetime(2026, 2, 28, 12, 0, tzinfo=timezone.utc)

    def test_year(self):
        assert date_lower_bound("year", self.now) == datetime(2025, 3, 31, 12, 0, tzinfo=timezone.utc)

    def test_month_across_year_boundary(self):
        now = datetime(2026, 1, 15, tzinfo=timezone.utc)
        assert date_lower_bound("month", now) == datetime(2025, 12, 15, tzinfo=timezone.utc)

    def test_unknown_range(self):
        with pytest.raises(ValueError):
            date_lower_bound("decade", self.now)


class TestFilterOptions:
    """Tests for FilterOptions validation."""

    def test_defaults(self):
        options = FilterOptions()
        assert options.category == "all"
        assert options.show_pending

    @pytest.mark.parametrize("changes", [
        {"category": "flood"},
        {"severity": 7},
        {"severity": "high"},
        {"date_range": "decade"},
    ])
    def test_invalid_values(self, changes):
        with pytest.raises(ValueError):
            FilterOptions(**changes)


class TestFilterController:
    """Tests for FilterController."""

    def setup_method(self):
        self.collections = ReportCollections()
        self.notices = NoticeQueue()

    def controller(self, reports_client, context, markers=None):
        return FilterController(self.collections, reports_client, context, markers, self.notices)

    def test_approved_query_from_options(self, reports_client, user_context):
        now = datetime(2026, 10, 19, tzinfo=timezone.utc)
        controller = self.controller(reports_client, user_context)
        query = controller.approved_query(
            FilterOptions(category="crime", severity=4, date_range="week"), now
        )
        assert query.status is ReportStatus.APPROVED
        assert query.category is HazardCategory.CRIME
        assert query.severity == 4
        assert query.created_after == now - timedelta(days=7)

    def test_pending_query_is_own_reports(self, reports_client, user_context):
        query = self.controller(reports_client, user_context).pending_query()
        assert query.status is ReportStatus.PENDING
        assert query.user_id == "user-1"

    def test_refresh_loads_approved_and_own_pending(self, reports_client, user_context, make_report):
        approved = make_report()
        mine = make_report(status=ReportStatus.PENDING, user_id="user-1")
        theirs = make_report(status=ReportStatus.PENDING, user_id="user-2")
        reports_client.reports = [approved, mine, theirs]

        assert asyncio.run(self.controller(reports_client, user_context).refresh())
        assert self.collections.approved == [approved]
        assert self.collections.pending == [mine]

    def test_signed_out_skips_pending_fetch(self, reports_client, make_report):
        reports_client.reports = [make_report(), make_report(status=ReportStatus.PENDING)]
        asyncio.run(self.controller(reports_client, SessionContext()).refresh())

        assert len(reports_client.calls) == 1
        assert self.collections.pending == []

    def test_update_filters_and_hides_pending(self, reports_client, user_context, make_report):
        crime = make_report(category=HazardCategory.CRIME)
        traffic = make_report(category=HazardCategory.TRAFFIC)
        reports_client.reports = [crime, traffic, make_report(status=ReportStatus.PENDING, user_id="user-1")]
        markers = MarkerLayer(self.collections, BackgroundTasks())
        controller = self.controller(reports_client, user_context, markers)

        asyncio.run(controller.update(category="crime", show_pending=False))

        assert self.collections.approved == [crime]
        assert self.collections.pending == []
        assert not markers.show_pending
        assert len(reports_client.calls) == 1

    def test_old_reports_outside_date_range(self, reports_client, user_context, make_report):
        fresh = make_report(created_at=datetime.now(timezone.utc) - timedelta(days=2))
        stale = make_report(created_at=datetime.now(timezone.utc) - timedelta(days=40))
        reports_client.reports = [fresh, stale]

        asyncio.run(self.controller(reports_client, user_context).update(date_range="month"))
        assert self.collections.approved == [fresh]

    def test_invalid_update_fetches_nothing(self, reports_client, user_context):
        controller = self.controller(reports_client, user_context)
        with pytest.raises(ValueError):
            asyncio.run(controller.update(severity=0))
        assert reports_client.calls == []
        assert controller.options == FilterOptions()

    def test_approved_failure_clears_collections(self, reports_client, user_context, make_report):
        self.collections.replace(approved=[make_report()])
        reports_client.fail_query = True

        assert asyncio.run(self.controller(reports_client, user_context).refresh())
        assert self.collections.approved == []
        assert self.collections.pending == []
        assert self.notices.latest.title == "データ取得エラー"
        assert self.notices.latest.level is NoticeLevel.ERROR

    def test_pending_failure_keeps_approved(self, reports_client, user_context, make_report):
        approved = make_report()
        reports_client.reports = [approved]
        reports_client.fail_pending_query = True

        assert asyncio.run(self.controller(reports_client, user_context).refresh())
        assert self.collections.approved == [approved]
        assert self.collections.pending == []

    def test_stale_response_is_discarded(self, reports_client, make_report):
        """The last-issued request wins even if an older one answers later."""
        crime = make_report(category=HazardCategory.CRIME)
        traffic = make_report(category=HazardCategory.TRAFFIC)
        reports_client.reports = [crime, traffic]
        controller = self.controller(reports_client, SessionContext())

        async def scenario():
            gate = asyncio.Event()
            reports_client.gates = [gate]
            first = asyncio.ensure_future(controller.update(category="traffic"))
            await asyncio.sleep(0)
            second = await controller.update(category="crime")
            gate.set()
            return await first, second

        first, second = asyncio.run(scenario())
        assert first is False
        assert second is True
        assert self.collections.approved == [crime]
        assert controller.options.category == "crime"
