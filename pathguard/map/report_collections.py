"""
Locally loaded approved and pending report collections

The only shared mutable client state. Every mutation notifies the
registered listeners (the marker layer redraws on each one).
"""

import logging
from typing import Callable, List, Optional

from pathguard.crowdsource.report_handler import HazardReport

logger = logging.getLogger(__name__)

ChangeListener = Callable[[], None]


class ReportCollections:
    """Approved reports and the current user's own pending reports."""

    def __init__(self):
        self.approved: List[HazardReport] = []
        self.pending: List[HazardReport] = []
        self._listeners: List[ChangeListener] = []

    def subscribe(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def _changed(self) -> None:
        for listener in self._listeners:
            listener()

    def replace(
        self,
        approved: Optional[List[HazardReport]] = None,
        pending: Optional[List[HazardReport]] = None
    ) -> None:
        """Swap in freshly fetched collections. None leaves a collection untouched."""
        if approved is not None:
            self.approved = list(approved)
        if pending is not None:
            self.pending = list(pending)
        self._changed()

    def clear(self) -> None:
        self.approved = []
        self.pending = []
        self._changed()

    def prepend_pending(self, report: HazardReport) -> None:
        self.pending = [report] + [r for r in self.pending if r.id != report.id]
        self._changed()

    def update(self, report: HazardReport) -> bool:
        """Replace the stored copy of ``report`` wherever it is held."""
        found = False
        for collection in (self.approved, self.pending):
            for index, existing in enumerate(collection):
                if existing.id == report.id:
                    collection[index] = report
                    found = True

        if found:
            self._changed()
        return found

    def find(self, report_id: str) -> Optional[HazardReport]:
        for report in self.approved + self.pending:
            if report.id == report_id:
                return report
        return None

    def contains(self, report_id: str) -> bool:
        return self.find(report_id) is not None

    def remove(self, report_id: str) -> bool:
        """Remove a report from both collections. Returns False if it was not held."""
        approved = [r for r in self.approved if r.id != report_id]
        pending = [r for r in self.pending if r.id != report_id]

        if len(approved) == len(self.approved) and len(pending) == len(self.pending):
            return False

        self.approved = approved
        self.pending = pending
        logger.debug(f"Removed report {report_id} from local collections")
        self._changed()
        return True
