"""
Client for the gamification points endpoints
"""

import logging

import httpx

from pathguard.core.exceptions import PersistenceError
from .base import ApiClient

logger = logging.getLogger(__name__)

POINTS_PATH = "/api/v1/points"


def _parse_points(response: httpx.Response) -> int:
    try:
        return int(response.json()["points"])
    except (KeyError, TypeError, ValueError) as e:
        raise PersistenceError(f"Malformed points response: {e}")


class PointsClient(ApiClient):

    async def award(self, user_id: str, delta: int) -> int:
        """Add points to a user; returns the new total."""
        response = await self._request(
            "POST", POINTS_PATH, PersistenceError, json={"user_id": user_id, "delta": delta}
        )
        total = _parse_points(response)
        logger.debug(f"{user_id} now has {total} points")
        return total

    async def get_points(self, user_id: str) -> int:
        response = await self._request("GET", f"{POINTS_PATH}/{user_id}", PersistenceError)
        return _parse_points(response)
