"""
In-memory points ledger

Used by the API when no database is configured. The SQL ledger in
pathguard.database.repository exposes the same methods.
"""

import logging
from typing import Dict

logger = logging.getLogger(__name__)


class PointsLedger:
    """Running point totals per user."""

    def __init__(self):
        self._points: Dict[str, int] = {}

    def award(self, user_id: str, delta: int) -> int:
        """
        Add points to a user's total.

        Returns:
            The new total
        """
        if not user_id:
            raise ValueError("user_id is required")

        total = self._points.get(user_id, 0) + delta
        self._points[user_id] = total

        logger.info(f"Awarded {delta} points to {user_id} (total {total})")
        return total

    def get_points(self, user_id: str) -> int:
        return self._points.get(user_id, 0)
