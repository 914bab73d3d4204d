"""
Shared plumbing for the PathGuardian API clients

Every client carries the caller's SessionContext as request headers and
translates httpx failures into the project's exception types.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Type

import httpx

from pathguard.core.config import settings
from pathguard.core.exceptions import PathGuardError, PermissionDeniedError

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"
USER_ROLE_HEADER = "X-User-Role"
ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class SessionContext:
    """Identity of the person using the map."""
    user_id: Optional[str] = None
    is_admin: bool = False

    @property
    def is_signed_in(self) -> bool:
        return bool(self.user_id)

    def to_headers(self) -> dict:
        headers = {}
        if self.user_id:
            headers[USER_ID_HEADER] = self.user_id
        if self.is_admin:
            headers[USER_ROLE_HEADER] = ADMIN_ROLE
        return headers


class ApiClient:
    """
    Base class for clients of the PathGuardian REST API.

    Usage:
        async with ReportsClient(SessionContext(user_id="u1")) as client:
            reports = await client.query(ReportQuery())
    """

    def __init__(
        self,
        context: Optional[SessionContext] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        http: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize client.

        Args:
            context: Caller identity sent with every request
            base_url: API base URL (default from settings)
            timeout: HTTP request timeout in seconds
            transport: Custom httpx transport (e.g. MockTransport in tests)
            http: Shared AsyncClient; when given, this client does not own it
        """
        self.context = context or SessionContext()
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or settings.request_timeout,
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        error_cls: Type[PathGuardError],
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Send a request and map failures onto project exceptions.

        403 responses raise PermissionDeniedError; any other error status or
        transport failure raises ``error_cls``.
        """
        try:
            response = await self._http.request(
                method, path, headers=self.context.to_headers(), **kwargs
            )
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise error_cls(f"{method} {path} failed: {e}")

        if response.status_code == 403:
            raise PermissionDeniedError(_error_detail(response))

        if response.is_error:
            detail = _error_detail(response)
            logger.error(f"{method} {path} returned {response.status_code}: {detail}")
            raise error_cls(f"{method} {path} returned {response.status_code}: {detail}")

        return response


def _error_detail(response: httpx.Response) -> str:
    try:
        return str(response.json().get("detail", response.text))
    except ValueError:
        return response.text
