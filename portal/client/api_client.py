"""Async HTTP wrapper around the portal REST API.

Error responses are decoded back into the moderation exception hierarchy so
callers handle a 409 from the server exactly like a conflict detected
locally. Transition calls carry no timeout and are never retried.
"""

from __future__ import annotations

from typing import Any

import httpx

from portal.logging_config import get_logger
from portal.moderation.exceptions import (
    ModerationAuthorizationError,
    ModerationError,
    ModerationValidationError,
    StateConflictError,
    SubmissionNotFoundError,
    TransientError,
)

logger = get_logger(__name__)


def _problem(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {"detail": response.text or response.reason_phrase}

    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, dict):
        return detail
    if isinstance(detail, list):
        # FastAPI request validation errors
        messages = [str(item.get("msg", item)) for item in detail if isinstance(item, dict)]
        field = None
        if detail and isinstance(detail[0], dict) and detail[0].get("loc"):
            field = str(detail[0]["loc"][-1])
        return {"detail": "; ".join(messages) or "Invalid request", "field": field}
    return {"detail": str(detail) if detail is not None else response.reason_phrase}


def raise_for_problem(response: httpx.Response, identifier: str | int | None = None) -> None:
    """Raise the ModerationError matching a non-2xx response."""
    if response.is_success:
        return

    problem = _problem(response)
    message = problem.get("detail") or f"HTTP {response.status_code}"
    code = response.status_code

    if code == 409:
        raise StateConflictError(
            problem.get("current_status", ""),
            problem.get("action", ""),
            message,
        )
    if code in (400, 422):
        raise ModerationValidationError(message, problem.get("field"))
    if code in (401, 403):
        raise ModerationAuthorizationError(message)
    if code == 404:
        raise SubmissionNotFoundError(identifier if identifier is not None else message)
    raise ModerationError(message, problem.get("type", "moderation_error"))


class PortalClient:
    """Thin client for the owner, moderator and public endpoints."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> PortalClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def set_token(self, token: str) -> None:
        self._http.headers["Authorization"] = f"Bearer {token}"

    async def _request(
        self,
        method: str,
        path: str,
        identifier: str | int | None = None,
        **kwargs: Any,
    ) -> Any:
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.TransportError as e:
            logger.warning("portal_request_failed", method=method, path=path, error=str(e))
            raise TransientError(f"{method} {path} failed: {e}") from e

        raise_for_problem(response, identifier)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    @staticmethod
    def _params(filters: dict[str, Any] | None) -> dict[str, Any]:
        return {k: v for k, v in (filters or {}).items() if v not in (None, "")}

    # ------------------------------------------------------------------
    # Owner
    # ------------------------------------------------------------------

    async def create(self, kind: str, data: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", f"/api/user/{kind}", json=data)

    async def list_mine(self, kind: str) -> dict[str, Any]:
        return await self._request("GET", f"/api/user/{kind}/me")

    async def update(self, kind: str, submission_id: int, data: dict[str, Any]) -> dict[str, Any]:
        return await self._request("PATCH", f"/api/user/{kind}/{submission_id}", submission_id, json=data)

    async def submit(self, kind: str, submission_id: int) -> dict[str, Any]:
        return await self._request("POST", f"/api/user/{kind}/{submission_id}/submit", submission_id)

    async def add_media(self, kind: str, submission_id: int, url: str, media_type: str = "IMAGE") -> dict[str, Any]:
        return await self._request(
            "POST",
            f"/api/user/{kind}/{submission_id}/media",
            submission_id,
            json={"url": url, "type": media_type},
        )

    async def remove_media(self, kind: str, submission_id: int, media_id: int) -> dict[str, Any]:
        return await self._request(
            "DELETE", f"/api/user/{kind}/{submission_id}/media/{media_id}", submission_id
        )

    async def set_cover(self, kind: str, submission_id: int, media_id: int) -> dict[str, Any]:
        return await self._request(
            "PATCH",
            f"/api/user/{kind}/{submission_id}/cover",
            submission_id,
            json={"media_id": media_id},
        )

    # ------------------------------------------------------------------
    # Moderator
    # ------------------------------------------------------------------

    async def list_admin(self, kind: str, filters: dict[str, Any] | None = None) -> dict[str, Any]:
        return await self._request("GET", f"/api/admin/{kind}", params=self._params(filters))

    async def get_admin(self, kind: str, submission_id: int) -> dict[str, Any]:
        return await self._request("GET", f"/api/admin/{kind}/{submission_id}", submission_id)

    async def approve(
        self,
        kind: str,
        submission_id: int,
        featured: bool = False,
        expected_status: str | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"featured": featured}
        if expected_status is not None:
            body["expected_status"] = expected_status
        return await self._request(
            "POST",
            f"/api/admin/{kind}/{submission_id}/approve",
            submission_id,
            json=body,
        )

    async def reject(self, kind: str, submission_id: int, reason: str) -> dict[str, Any]:
        return await self._request(
            "POST",
            f"/api/admin/{kind}/{submission_id}/reject",
            submission_id,
            json={"reason": reason},
        )

    async def request_changes(self, kind: str, submission_id: int, message: str) -> dict[str, Any]:
        return await self._request(
            "POST",
            f"/api/admin/{kind}/{submission_id}/request-changes",
            submission_id,
            json={"message": message},
        )

    async def history(self, kind: str, submission_id: int) -> list[dict[str, Any]]:
        return await self._request("GET", f"/api/admin/{kind}/{submission_id}/history", submission_id)

    async def delete(self, kind: str, submission_id: int, as_moderator: bool = False) -> None:
        scope = "admin" if as_moderator else "user"
        await self._request("DELETE", f"/api/{scope}/{kind}/{submission_id}", submission_id)

    # ------------------------------------------------------------------
    # Public
    # ------------------------------------------------------------------

    async def list_public(self, kind: str, filters: dict[str, Any] | None = None) -> dict[str, Any]:
        return await self._request("GET", f"/api/public/{kind}", params=self._params(filters))

    async def get_public_project(self, slug: str) -> dict[str, Any]:
        return await self._request("GET", f"/api/public/projects/{slug}", slug)
