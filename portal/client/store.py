"""Client-side submission store.

Holds the collection a viewer is looking at and reconciles it with the
server after each moderation action. Eligibility is re-derived from an
entity's current status on every call and is only a hint: the server
re-validates everything.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from portal.client.api_client import PortalClient
from portal.client.media import normalize_submission_media, static_base
from portal.config import get_settings
from portal.logging_config import get_logger
from portal.moderation.exceptions import (
    ActionInProgressError,
    ModerationError,
    SubmissionNotFoundError,
)
from portal.moderation.state_machine import (
    Action,
    Role,
    SubmissionStatus,
    eligible_actions,
    plan_transition,
)

logger = get_logger(__name__)

FILTER_KEYS = frozenset({"status", "tag", "stack", "country", "search", "page", "limit"})
DEFAULT_FILTERS: dict[str, Any] = {"page": 1, "limit": 10}

# Fields copied from the server's record after a successful transition.
_PATCHED_FIELDS = ("mod_notes", "featured_at", "submitted_at", "updated_at")


class SubmissionStore:
    """
    Injectable state container for one viewer and one submission kind.

    Args:
        client: API client used for every request
        roles: Workflow role(s) the viewer holds on the held submissions
        kind: URL kind segment, ``projects`` or ``startups``
        media_base: Static-file origin; defaults to the ``media_base_url`` setting,
            then to the client's base URL
    """

    def __init__(
        self,
        client: PortalClient,
        roles: Role | Iterable[Role],
        kind: str = "projects",
        media_base: str | None = None,
    ):
        self.client = client
        if isinstance(roles, str):
            roles = [roles]
        self.roles = frozenset(Role(r) for r in roles)
        self.kind = kind
        if media_base is None:
            media_base = get_settings().media_base_url.rstrip("/") or static_base(client.base_url)
        self.media_base = media_base

        self.items: list[dict[str, Any]] = []
        self.meta: dict[str, Any] | None = None
        self.filters: dict[str, Any] = dict(DEFAULT_FILTERS)
        self.loading = False
        self.action_loading = False
        self.error: ModerationError | None = None
        self.errors: dict[int, ModerationError] = {}
        self._in_flight: set[int] = set()

    @property
    def is_moderator(self) -> bool:
        return Role.MODERATOR in self.roles

    # ------------------------------------------------------------------
    # Collection
    # ------------------------------------------------------------------

    async def load(self, filters: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """Replace the held collection with a fresh fetch."""
        if filters is not None:
            self.set_filters(**filters)

        self.loading = True
        self.error = None
        try:
            if self.is_moderator:
                result = await self.client.list_admin(self.kind, self.filters)
            else:
                result = await self.client.list_mine(self.kind)
        except ModerationError as e:
            self.error = e
            logger.warning("store_load_failed", kind=self.kind, error=e.message)
            raise
        finally:
            self.loading = False

        self.items = [normalize_submission_media(r, self.media_base) for r in result.get("data") or []]
        self.meta = result.get("meta")
        return self.items

    def get(self, submission_id: int) -> dict[str, Any] | None:
        return next((item for item in self.items if item["id"] == submission_id), None)

    def apply_transition(
        self,
        submission_id: int,
        new_status: SubmissionStatus | str,
        **extra_fields: Any,
    ) -> dict[str, Any] | None:
        """Patch one held entity in place. Order and membership are unchanged."""
        entity = self.get(submission_id)
        if entity is None:
            return None
        entity["status"] = SubmissionStatus(new_status).value
        entity.update(extra_fields)
        return entity

    def offered_actions(self, submission_id: int) -> frozenset[Action]:
        entity = self.get(submission_id)
        if entity is None:
            return frozenset()
        return eligible_actions(entity["status"], self.roles)

    def local_search(self, query: str | None = None) -> list[dict[str, Any]]:
        """Case-insensitive match on title, summary and team name."""
        query = query if query is not None else self.filters.get("search")
        if not query:
            return list(self.items)
        q = query.lower()
        return [
            item
            for item in self.items
            if q in (item.get("title") or "").lower()
            or q in (item.get("summary") or "").lower()
            or q in (item.get("team_name") or "").lower()
        ]

    def set_filters(self, **changes: Any) -> dict[str, Any]:
        unknown = set(changes) - FILTER_KEYS
        if unknown:
            raise ValueError(f"Unknown filter(s): {', '.join(sorted(unknown))}")
        self.filters.update(changes)
        return self.filters

    def reset_filters(self) -> dict[str, Any]:
        self.filters = dict(DEFAULT_FILTERS)
        return self.filters

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def submit(self, submission_id: int) -> dict[str, Any]:
        return await self._perform(
            submission_id, Action.SUBMIT, lambda: self.client.submit(self.kind, submission_id)
        )

    async def approve(self, submission_id: int) -> dict[str, Any]:
        return await self._perform(submission_id, Action.APPROVE, self._approve_request(submission_id, False))

    async def approve_featured(self, submission_id: int) -> dict[str, Any]:
        return await self._perform(
            submission_id, Action.APPROVE_FEATURED, self._approve_request(submission_id, True)
        )

    async def feature(self, submission_id: int) -> dict[str, Any]:
        return await self._perform(submission_id, Action.FEATURE, self._approve_request(submission_id, True))

    async def unfeature(self, submission_id: int) -> dict[str, Any]:
        return await self._perform(submission_id, Action.UNFEATURE, self._approve_request(submission_id, False))

    async def reject(self, submission_id: int, reason: str) -> dict[str, Any]:
        return await self._perform(
            submission_id,
            Action.REJECT,
            lambda: self.client.reject(self.kind, submission_id, reason),
            note=reason,
        )

    async def request_changes(self, submission_id: int, message: str) -> dict[str, Any]:
        return await self._perform(
            submission_id,
            Action.REQUEST_CHANGES,
            lambda: self.client.request_changes(self.kind, submission_id, message),
            note=message,
        )

    async def delete(self, submission_id: int) -> None:
        await self.remove(submission_id)

    async def remove(self, submission_id: int) -> None:
        """
        Optimistic delete.

        The entity leaves the collection before the request is sent. If the
        server refuses, the collection is reloaded with the current filters,
        so the entity reappears if it still exists.
        """
        entity = self._begin(submission_id, Action.DELETE)
        self.items = [item for item in self.items if item["id"] != submission_id]
        try:
            await self.client.delete(self.kind, submission_id, as_moderator=self.is_moderator)
        except ModerationError as e:
            self.errors[submission_id] = e
            logger.warning(
                "store_remove_compensated",
                kind=self.kind,
                submission_id=submission_id,
                status=entity["status"],
                error=e.message,
            )
            try:
                await self.load()
            except ModerationError as reload_error:
                logger.error(
                    "store_reload_failed",
                    kind=self.kind,
                    submission_id=submission_id,
                    error=reload_error.message,
                )
            raise
        finally:
            self._finish(submission_id)

        logger.info("store_removed", kind=self.kind, submission_id=submission_id)

    def _begin(self, submission_id: int, action: Action, note: str | None = None) -> dict[str, Any]:
        """Local checks shared by every action; nothing is sent if one fails."""
        entity = self.get(submission_id)
        try:
            if entity is None:
                raise SubmissionNotFoundError(submission_id)
            if submission_id in self._in_flight:
                raise ActionInProgressError(submission_id)
            plan_transition(entity["status"], action, self.roles, note)
        except ModerationError as e:
            self.errors[submission_id] = e
            raise

        self.errors.pop(submission_id, None)
        self._in_flight.add(submission_id)
        self.action_loading = True
        return entity

    def _approve_request(
        self, submission_id: int, featured: bool
    ) -> Callable[[], Awaitable[dict[str, Any]]]:
        # The approve endpoint serves four actions; the held status tells the
        # server which one was meant.
        def request() -> Awaitable[dict[str, Any]]:
            return self.client.approve(
                self.kind,
                submission_id,
                featured=featured,
                expected_status=self.get(submission_id)["status"],
            )

        return request

    def _finish(self, submission_id: int) -> None:
        self._in_flight.discard(submission_id)
        self.action_loading = bool(self._in_flight)

    async def _perform(
        self,
        submission_id: int,
        action: Action,
        request: Callable[[], Awaitable[dict[str, Any]]],
        note: str | None = None,
    ) -> dict[str, Any]:
        self._begin(submission_id, action, note)
        try:
            updated = await request()
        except ModerationError as e:
            self.errors[submission_id] = e
            logger.warning(
                "store_action_failed",
                kind=self.kind,
                submission_id=submission_id,
                action=action.value,
                error_type=e.error_type,
                error=e.message,
            )
            raise
        finally:
            self._finish(submission_id)

        patched = self.apply_transition(
            submission_id,
            updated["status"],
            **{field: updated.get(field) for field in _PATCHED_FIELDS if field in updated},
        )
        logger.info(
            "store_action_applied",
            kind=self.kind,
            submission_id=submission_id,
            action=action.value,
            status=updated["status"],
        )
        return patched
