"""Service layer for submissions: content management and moderation transitions."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from portal.config import PortalSettings, get_settings
from portal.logging_config import get_logger
from portal.models import MODERATOR_ROLES, Submission, SubmissionKindEnum, SubmissionMedia, User
from portal.moderation.events import record_transition
from portal.moderation.exceptions import (
    ModerationAuthorizationError,
    ModerationValidationError,
    SubmissionNotFoundError,
)
from portal.moderation.repository import ModerationEventRepository, SubmissionRepository
from portal.moderation.schemas import MediaInput, SubmissionCreate, SubmissionUpdate
from portal.moderation.state_machine import (
    Action,
    Role,
    SubmissionStatus,
    TransitionPlan,
    approval_action,
    plan_transition,
)

logger = get_logger(__name__)

PUBLISHED_STATUSES = (SubmissionStatus.APPROVED.value, SubmissionStatus.FEATURED.value)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def slugify(text: str) -> str:
    """Lowercase, hyphen-separated ASCII slug."""
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug or "project"


def roles_for(user: User | None, submission: Submission) -> frozenset[Role]:
    """Workflow roles ``user`` holds on ``submission``."""
    if user is None:
        return frozenset()
    roles = set()
    if submission.owner_id == user.id:
        roles.add(Role.OWNER)
    if user.role in MODERATOR_ROLES:
        roles.add(Role.MODERATOR)
    return frozenset(roles)


class SubmissionService:
    """Owner content operations and the authoritative moderation transitions."""

    def __init__(
        self,
        session: AsyncSession,
        redis=None,
        settings: PortalSettings | None = None,
    ):
        self.session = session
        self.redis = redis
        self.settings = settings or get_settings()
        self.repo = SubmissionRepository(session)
        self.events = ModerationEventRepository(session)

    # ==========================================
    # OWNER CONTENT
    # ==========================================

    async def create_submission(
        self,
        kind: str,
        owner: User,
        data: SubmissionCreate,
    ) -> dict[str, Any]:
        """Create a draft. Every submission starts in PENDING."""
        kind = SubmissionKindEnum(kind).value
        self._check_media_count(len(data.media))
        if data.cover_index is not None and data.cover_index >= max(len(data.media), 1):
            raise ModerationValidationError("cover_index does not refer to an uploaded media item", "cover_index")

        slug = None
        if kind == SubmissionKindEnum.project.value:
            slug = await self._unique_slug(kind, data.title)

        now = _utc_now()
        submission = Submission(
            kind=kind,
            slug=slug,
            owner_id=owner.id,
            title=data.title,
            summary=data.summary,
            description=data.description,
            team_name=data.team_name,
            team_members=data.team_members,
            demo_link=data.demo_link,
            repo_link=data.repo_link,
            website=data.website,
            country=data.country,
            tags=list(data.tags),
            stack=list(data.stack),
            status=SubmissionStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        submission.media = [
            SubmissionMedia(url=m.url, media_type=m.type.value, position=i)
            for i, m in enumerate(data.media)
        ]
        submission = await self.repo.create(submission)

        if submission.media:
            cover = submission.media[data.cover_index or 0]
            submission.cover_media_id = cover.id
            await self.repo.save(submission)

        logger.info(
            "submission_created",
            kind=kind,
            submission_id=submission.id,
            owner_id=owner.id,
            media_count=len(submission.media),
        )
        return self._submission_to_dict(submission)

    async def list_mine(self, kind: str, owner: User) -> list[dict[str, Any]]:
        submissions = await self.repo.list_for_owner(SubmissionKindEnum(kind).value, owner.id)
        return [self._submission_to_dict(s) for s in submissions]

    async def get_submission(self, kind: str, submission_id: int, viewer: User) -> dict[str, Any]:
        """Owners see their own submissions; moderators see everything."""
        submission = await self._get_or_raise(kind, submission_id)
        if not roles_for(viewer, submission):
            raise ModerationAuthorizationError("Only the owner or a moderator may view this submission")
        return self._submission_to_dict(submission)

    async def update_content(
        self,
        kind: str,
        submission_id: int,
        viewer: User,
        data: SubmissionUpdate,
    ) -> dict[str, Any]:
        submission = await self._get_owned_or_raise(kind, submission_id, viewer)
        updates = data.model_dump(exclude_unset=True, exclude_none=True)
        for field, value in updates.items():
            setattr(submission, field, value)
        if updates:
            submission.updated_at = _utc_now()
            await self.repo.save(submission)
            logger.info(
                "submission_updated",
                kind=submission.kind,
                submission_id=submission.id,
                fields=sorted(updates),
            )
        return self._submission_to_dict(submission)

    async def add_media(
        self,
        kind: str,
        submission_id: int,
        viewer: User,
        media: MediaInput,
    ) -> dict[str, Any]:
        submission = await self._get_owned_or_raise(kind, submission_id, viewer)
        self._check_media_count(len(submission.media) + 1)

        position = max((m.position for m in submission.media), default=-1) + 1
        item = await self.repo.add_media(
            submission,
            SubmissionMedia(url=media.url, media_type=media.type.value, position=position),
        )
        if submission.cover_media_id is None:
            submission.cover_media_id = item.id
        submission.updated_at = _utc_now()
        await self.repo.save(submission)
        return self._submission_to_dict(submission)

    async def remove_media(
        self,
        kind: str,
        submission_id: int,
        viewer: User,
        media_id: int,
    ) -> dict[str, Any]:
        submission = await self._get_owned_or_raise(kind, submission_id, viewer)
        item = self._find_media(submission, media_id)
        await self.repo.remove_media(submission, item)
        if submission.cover_media_id == media_id:
            submission.cover_media_id = submission.media[0].id if submission.media else None
        submission.updated_at = _utc_now()
        await self.repo.save(submission)
        return self._submission_to_dict(submission)

    async def set_cover(
        self,
        kind: str,
        submission_id: int,
        viewer: User,
        media_id: int,
    ) -> dict[str, Any]:
        submission = await self._get_owned_or_raise(kind, submission_id, viewer)
        self._find_media(submission, media_id)
        submission.cover_media_id = media_id
        submission.updated_at = _utc_now()
        await self.repo.save(submission)
        return self._submission_to_dict(submission)

    # ==========================================
    # LISTINGS
    # ==========================================

    async def list_for_moderation(
        self,
        kind: str,
        viewer: User,
        status: str | None = None,
        tag: str | None = None,
        stack: str | None = None,
        country: str | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> dict[str, Any]:
        if viewer.role not in MODERATOR_ROLES:
            raise ModerationAuthorizationError("Moderator role required")
        statuses = None
        if status:
            try:
                statuses = [SubmissionStatus(status.upper()).value]
            except ValueError:
                raise ModerationValidationError(f"Unknown status '{status}'", "status")
        return await self._page(
            kind, page, limit, statuses=statuses, tag=tag, stack=stack, country=country, search=search
        )

    async def list_published(
        self,
        kind: str,
        tag: str | None = None,
        stack: str | None = None,
        country: str | None = None,
        team: str | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> dict[str, Any]:
        return await self._page(
            kind,
            page,
            limit,
            statuses=PUBLISHED_STATUSES,
            tag=tag,
            stack=stack,
            country=country,
            team=team,
            featured_first=True,
        )

    async def get_published_by_slug(self, kind: str, slug: str) -> dict[str, Any]:
        submission = await self.repo.get_by_slug(SubmissionKindEnum(kind).value, slug)
        if submission is None or submission.status not in PUBLISHED_STATUSES:
            raise SubmissionNotFoundError(slug)
        return self._submission_to_dict(submission)

    async def history(self, kind: str, submission_id: int, viewer: User) -> list[dict[str, Any]]:
        if viewer.role not in MODERATOR_ROLES:
            raise ModerationAuthorizationError("Moderator role required")
        events = await self.events.list_for_submission(SubmissionKindEnum(kind).value, submission_id)
        return [self._event_to_dict(e) for e in events]

    # ==========================================
    # TRANSITIONS
    # ==========================================

    async def submit(self, kind: str, submission_id: int, viewer: User) -> dict[str, Any]:
        return await self.transition(kind, submission_id, viewer, Action.SUBMIT)

    async def approve(
        self,
        kind: str,
        submission_id: int,
        viewer: User,
        featured: bool = False,
        expected_status: SubmissionStatus | str | None = None,
    ) -> dict[str, Any]:
        """Approve, approve-and-feature, feature or unfeature depending on ``featured``.

        With ``expected_status`` the action is derived from the status the
        caller saw, so a stale request conflicts instead of turning into a
        different transition.
        """
        submission = await self._get_or_raise(kind, submission_id)
        seen = expected_status if expected_status is not None else submission.status
        action = approval_action(seen, featured)
        return await self._apply(submission, viewer, action)

    async def unfeature(self, kind: str, submission_id: int, viewer: User) -> dict[str, Any]:
        return await self.transition(kind, submission_id, viewer, Action.UNFEATURE)

    async def reject(self, kind: str, submission_id: int, viewer: User, reason: str) -> dict[str, Any]:
        return await self.transition(kind, submission_id, viewer, Action.REJECT, note=reason)

    async def request_changes(
        self,
        kind: str,
        submission_id: int,
        viewer: User,
        message: str,
    ) -> dict[str, Any]:
        return await self.transition(kind, submission_id, viewer, Action.REQUEST_CHANGES, note=message)

    async def delete(self, kind: str, submission_id: int, viewer: User) -> None:
        await self.transition(kind, submission_id, viewer, Action.DELETE)

    async def transition(
        self,
        kind: str,
        submission_id: int,
        viewer: User,
        action: Action,
        note: str | None = None,
    ) -> dict[str, Any] | None:
        submission = await self._get_or_raise(kind, submission_id)
        return await self._apply(submission, viewer, action, note)

    async def _apply(
        self,
        submission: Submission,
        viewer: User,
        action: Action,
        note: str | None = None,
    ) -> dict[str, Any] | None:
        """Re-validate against the stored status and persist the transition."""
        plan = plan_transition(submission.status, action, roles_for(viewer, submission), note)

        if plan.removes:
            await self.repo.delete(submission)
            await self._record(submission, viewer, plan)
            logger.info(
                "submission_deleted",
                kind=submission.kind,
                submission_id=submission.id,
                from_status=plan.from_status.value,
                acting_role=plan.acting_role.value,
            )
            return None

        self._apply_plan(submission, plan, _utc_now())
        await self.repo.save(submission)
        await self._record(submission, viewer, plan)
        logger.info(
            "submission_transitioned",
            kind=submission.kind,
            submission_id=submission.id,
            action=plan.action.value,
            from_status=plan.from_status.value,
            to_status=submission.status,
        )
        return self._submission_to_dict(submission)

    @staticmethod
    def _apply_plan(submission: Submission, plan: TransitionPlan, now: datetime) -> None:
        submission.status = plan.to_status.value
        if plan.mod_notes is not None:
            submission.mod_notes = plan.mod_notes
        if plan.sets_submitted_at:
            submission.submitted_at = now
        if plan.sets_featured_at:
            submission.featured_at = now
        submission.updated_at = now

    async def _record(self, submission: Submission, viewer: User, plan: TransitionPlan) -> None:
        await record_transition(
            self.events, self.redis, submission.kind, submission.id, viewer.id, plan
        )

    # ==========================================
    # HELPERS
    # ==========================================

    async def _get_or_raise(self, kind: str, submission_id: int) -> Submission:
        submission = await self.repo.get_by_id(SubmissionKindEnum(kind).value, submission_id)
        if submission is None:
            raise SubmissionNotFoundError(submission_id)
        return submission

    async def _get_owned_or_raise(self, kind: str, submission_id: int, viewer: User) -> Submission:
        submission = await self._get_or_raise(kind, submission_id)
        if submission.owner_id != viewer.id:
            raise ModerationAuthorizationError("Only the owner may change a submission's content")
        return submission

    async def _unique_slug(self, kind: str, title: str) -> str:
        base = slugify(title)
        slug, n = base, 1
        while await self.repo.slug_exists(kind, slug):
            n += 1
            slug = f"{base}-{n}"
        return slug

    async def _page(
        self,
        kind: str,
        page: int,
        limit: int | None,
        **filters: Any,
    ) -> dict[str, Any]:
        limit = min(limit or self.settings.default_page_size, self.settings.max_page_size)
        page = max(page, 1)
        items, total = await self.repo.list_filtered(
            SubmissionKindEnum(kind).value,
            offset=(page - 1) * limit,
            limit=limit,
            **filters,
        )
        return {
            "data": [self._submission_to_dict(s) for s in items],
            "meta": {
                "total": total,
                "page": page,
                "limit": limit,
                "pages": (total + limit - 1) // limit,
            },
        }

    def _check_media_count(self, count: int) -> None:
        if count > self.settings.max_media_items:
            raise ModerationValidationError(
                f"At most {self.settings.max_media_items} media items are allowed", "media"
            )

    @staticmethod
    def _find_media(submission: Submission, media_id: int) -> SubmissionMedia:
        for item in submission.media:
            if item.id == media_id:
                return item
        raise ModerationValidationError(f"Media {media_id} does not belong to this submission", "media_id")

    def _submission_to_dict(self, submission: Submission) -> dict[str, Any]:
        media = [
            {"id": m.id, "url": m.url, "type": m.media_type, "position": m.position}
            for m in submission.media
        ]
        cover = next((m["url"] for m in media if m["id"] == submission.cover_media_id), None)
        if cover is None and media:
            cover = media[0]["url"]
        return {
            "id": submission.id,
            "kind": submission.kind,
            "slug": submission.slug,
            "owner_id": submission.owner_id,
            "title": submission.title,
            "summary": submission.summary,
            "description": submission.description,
            "team_name": submission.team_name,
            "team_members": submission.team_members,
            "demo_link": submission.demo_link,
            "repo_link": submission.repo_link,
            "website": submission.website,
            "country": submission.country,
            "tags": list(submission.tags or []),
            "stack": list(submission.stack or []),
            "media": media,
            "cover_media_id": submission.cover_media_id,
            "cover_image": cover,
            "status": submission.status,
            "mod_notes": submission.mod_notes,
            "featured_at": submission.featured_at,
            "submitted_at": submission.submitted_at,
            "created_at": submission.created_at,
            "updated_at": submission.updated_at,
        }

    @staticmethod
    def _event_to_dict(event) -> dict[str, Any]:
        return {
            "id": event.id,
            "submission_id": event.submission_id,
            "kind": event.kind,
            "actor_id": event.actor_id,
            "action": event.action,
            "from_status": event.from_status,
            "to_status": event.to_status,
            "note": event.note,
            "created_at": event.created_at,
        }
