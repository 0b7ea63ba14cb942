"""HTTP client for the Backend API"""

import logging
from typing import Any, List, Optional

import httpx

from ..errors import NetworkFailure, ValidationFailure
from ..models import Issue, IssueDraft, IssuePatch, decode_issue, decode_issues

logger = logging.getLogger(__name__)


class BackendClient:
    """Request/response access to the authoritative Backend

    Transport problems and 5xx answers raise NetworkFailure; 4xx answers and
    payloads that do not decode into issues raise ValidationFailure.
    """

    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise NetworkFailure(f"{method} {path} failed: {e}") from e

        if response.status_code >= 500:
            raise NetworkFailure(
                f"{method} {path} failed ({response.status_code}): {_error_detail(response)}",
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            raise ValidationFailure(
                f"{method} {path} rejected ({response.status_code}): {_error_detail(response)}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ValidationFailure(f"{method} {path} returned invalid JSON") from e

    async def list_issues(self, include_deps: bool = False) -> List[Issue]:
        params = {"includeDeps": "true"} if include_deps else None
        return decode_issues(await self._request("GET", "/issues", params=params))

    async def get_issue(self, issue_id: str) -> Issue:
        return decode_issue(await self._request("GET", f"/issues/{issue_id}"))

    async def create_issue(self, draft: IssueDraft) -> Issue:
        return decode_issue(await self._request("POST", "/issues", json=draft.to_dict()))

    async def update_issue(self, issue_id: str, patch: IssuePatch) -> Issue:
        return decode_issue(await self._request("PATCH", f"/issues/{issue_id}", json=patch.to_dict()))

    async def close_issue(self, issue_id: str) -> Issue:
        """Close (not delete) an issue; the Backend keeps the record"""
        payload = await self._request("DELETE", f"/issues/{issue_id}")
        # Some Backends answer with a one-element list
        if isinstance(payload, list) and payload:
            payload = payload[0]
        return decode_issue(payload)

    async def get_ready(self) -> List[Issue]:
        return decode_issues(await self._request("GET", "/ready"))

    async def get_blocked(self) -> List[Issue]:
        return decode_issues(await self._request("GET", "/blocked"))

    async def health(self) -> bool:
        try:
            payload = await self._request("GET", "/health")
        except (NetworkFailure, ValidationFailure) as e:
            logger.debug("Health check failed: %s", e)
            return False
        return isinstance(payload, dict) and payload.get("status") == "ok"


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(payload, dict):
        return str(payload.get("detail") or payload.get("error") or payload)
    return str(payload)
