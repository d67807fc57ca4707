"""API endpoints for submission owners, moderators and the public listing."""

from __future__ import annotations

import enum
from typing import Any

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.auth import get_current_user
from portal.database import get_db
from portal.logging_config import get_logger
from portal.models import SubmissionKindEnum, User
from portal.moderation.exceptions import ModerationError, raise_http_exception
from portal.moderation.schemas import (
    ApproveRequest,
    MediaInput,
    ModerationEventResponse,
    RejectRequest,
    RequestChangesRequest,
    SetCoverRequest,
    SubmissionCreate,
    SubmissionListResponse,
    SubmissionResponse,
    SubmissionUpdate,
)
from portal.moderation.service import SubmissionService
from portal.redis import get_redis_optional

logger = get_logger(__name__)

user_router = APIRouter(prefix="/api/user", tags=["submissions"])
admin_router = APIRouter(prefix="/api/admin", tags=["moderation"])
public_router = APIRouter(prefix="/api/public", tags=["public"])


class KindPath(str, enum.Enum):
    """URL segment naming a submission kind."""

    projects = "projects"
    startups = "startups"

    @property
    def kind(self) -> str:
        return {
            KindPath.projects: SubmissionKindEnum.project.value,
            KindPath.startups: SubmissionKindEnum.startup.value,
        }[self]


def get_submission_service(db: AsyncSession = Depends(get_db)) -> SubmissionService:
    return SubmissionService(db, redis=get_redis_optional())


# ===========================================
# OWNER
# ===========================================


@user_router.post("/{kind}", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED)
async def create_submission(
    kind: KindPath,
    body: SubmissionCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: SubmissionService = Depends(get_submission_service),
) -> dict[str, Any]:
    """Create a draft project or startup."""
    try:
        result = await service.create_submission(kind.kind, user, body)
        await db.commit()
        return result
    except ModerationError as e:
        raise_http_exception(e)


@user_router.get("/{kind}/me", response_model=SubmissionListResponse)
async def list_my_submissions(
    kind: KindPath,
    user: User = Depends(get_current_user),
    service: SubmissionService = Depends(get_submission_service),
) -> dict[str, Any]:
    """List the current user's submissions of this kind."""
    return {"data": await service.list_mine(kind.kind, user)}


@user_router.get("/{kind}/{submission_id}", response_model=SubmissionResponse)
async def get_my_submission(
    kind: KindPath,
    submission_id: int,
    user: User = Depends(get_current_user),
    service: SubmissionService = Depends(get_submission_service),
) -> dict[str, Any]:
    try:
        return await service.get_submission(kind.kind, submission_id, user)
    except ModerationError as e:
        raise_http_exception(e)


@user_router.patch("/{kind}/{submission_id}", response_model=SubmissionResponse)
async def update_submission(
    kind: KindPath,
    submission_id: int,
    body: SubmissionUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: SubmissionService = Depends(get_submission_service),
) -> dict[str, Any]:
    """Edit content fields. Status never changes here."""
    try:
        result = await service.update_content(kind.kind, submission_id, user, body)
        await db.commit()
        return result
    except ModerationError as e:
        raise_http_exception(e)


@user_router.post("/{kind}/{submission_id}/submit", response_model=SubmissionResponse)
async def submit_submission(
    kind: KindPath,
    submission_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: SubmissionService = Depends(get_submission_service),
) -> dict[str, Any]:
    """Send a draft (or a submission sent back for changes) to review."""
    try:
        result = await service.submit(kind.kind, submission_id, user)
        await db.commit()
        return result
    except ModerationError as e:
        raise_http_exception(e)


@user_router.post("/{kind}/{submission_id}/media", response_model=SubmissionResponse)
async def add_media(
    kind: KindPath,
    submission_id: int,
    body: MediaInput,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: SubmissionService = Depends(get_submission_service),
) -> dict[str, Any]:
    try:
        result = await service.add_media(kind.kind, submission_id, user, body)
        await db.commit()
        return result
    except ModerationError as e:
        raise_http_exception(e)


@user_router.delete("/{kind}/{submission_id}/media/{media_id}", response_model=SubmissionResponse)
async def remove_media(
    kind: KindPath,
    submission_id: int,
    media_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: SubmissionService = Depends(get_submission_service),
) -> dict[str, Any]:
    try:
        result = await service.remove_media(kind.kind, submission_id, user, media_id)
        await db.commit()
        return result
    except ModerationError as e:
        raise_http_exception(e)


@user_router.patch("/{kind}/{submission_id}/cover", response_model=SubmissionResponse)
async def set_cover(
    kind: KindPath,
    submission_id: int,
    body: SetCoverRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: SubmissionService = Depends(get_submission_service),
) -> dict[str, Any]:
    try:
        result = await service.set_cover(kind.kind, submission_id, user, body.media_id)
        await db.commit()
        return result
    except ModerationError as e:
        raise_http_exception(e)


@user_router.delete("/{kind}/{submission_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_own_submission(
    kind: KindPath,
    submission_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: SubmissionService = Depends(get_submission_service),
) -> Response:
    """Delete a submission. Owners cannot delete published ones."""
    try:
        await service.delete(kind.kind, submission_id, user)
        await db.commit()
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except ModerationError as e:
        raise_http_exception(e)


# ===========================================
# MODERATOR
# ===========================================


@admin_router.get("/{kind}", response_model=SubmissionListResponse)
async def list_for_moderation(
    kind: KindPath,
    status_filter: str | None = Query(default=None, alias="status"),
    tag: str | None = Query(default=None),
    stack: str | None = Query(default=None),
    country: str | None = Query(default=None),
    search: str | None = Query(default=None, max_length=200),
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1, le=100),
    user: User = Depends(get_current_user),
    service: SubmissionService = Depends(get_submission_service),
) -> dict[str, Any]:
    """Filtered, paginated moderation queue."""
    try:
        return await service.list_for_moderation(
            kind.kind,
            user,
            status=status_filter,
            tag=tag,
            stack=stack,
            country=country,
            search=search,
            page=page,
            limit=limit,
        )
    except ModerationError as e:
        raise_http_exception(e)


@admin_router.get("/{kind}/{submission_id}", response_model=SubmissionResponse)
async def get_for_moderation(
    kind: KindPath,
    submission_id: int,
    user: User = Depends(get_current_user),
    service: SubmissionService = Depends(get_submission_service),
) -> dict[str, Any]:
    try:
        return await service.get_submission(kind.kind, submission_id, user)
    except ModerationError as e:
        raise_http_exception(e)


@admin_router.post("/{kind}/{submission_id}/approve", response_model=SubmissionResponse)
async def approve_submission(
    kind: KindPath,
    submission_id: int,
    body: ApproveRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: SubmissionService = Depends(get_submission_service),
) -> dict[str, Any]:
    """Approve, optionally featured. ``featured=false`` on a featured submission unfeatures it.

    When ``expected_status`` is sent the transition is chosen from it, so a stale
    view gets a 409 instead of a different transition.
    """
    try:
        result = await service.approve(
            kind.kind,
            submission_id,
            user,
            featured=body.featured,
            expected_status=body.expected_status,
        )
        await db.commit()
        return result
    except ModerationError as e:
        raise_http_exception(e)


@admin_router.post("/{kind}/{submission_id}/reject", response_model=SubmissionResponse)
async def reject_submission(
    kind: KindPath,
    submission_id: int,
    body: RejectRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: SubmissionService = Depends(get_submission_service),
) -> dict[str, Any]:
    try:
        result = await service.reject(kind.kind, submission_id, user, body.reason)
        await db.commit()
        return result
    except ModerationError as e:
        raise_http_exception(e)


@admin_router.post("/{kind}/{submission_id}/request-changes", response_model=SubmissionResponse)
async def request_changes(
    kind: KindPath,
    submission_id: int,
    body: RequestChangesRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: SubmissionService = Depends(get_submission_service),
) -> dict[str, Any]:
    try:
        result = await service.request_changes(kind.kind, submission_id, user, body.message)
        await db.commit()
        return result
    except ModerationError as e:
        raise_http_exception(e)


@admin_router.delete("/{kind}/{submission_id}", status_code=status.HTTP_204_NO_CONTENT)
async def hard_delete_submission(
    kind: KindPath,
    submission_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: SubmissionService = Depends(get_submission_service),
) -> Response:
    try:
        await service.delete(kind.kind, submission_id, user)
        await db.commit()
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except ModerationError as e:
        raise_http_exception(e)


@admin_router.get("/{kind}/{submission_id}/history", response_model=list[ModerationEventResponse])
async def moderation_history(
    kind: KindPath,
    submission_id: int,
    user: User = Depends(get_current_user),
    service: SubmissionService = Depends(get_submission_service),
) -> list[dict[str, Any]]:
    """Audit trail of moderation actions, oldest first."""
    try:
        return await service.history(kind.kind, submission_id, user)
    except ModerationError as e:
        raise_http_exception(e)


# ===========================================
# PUBLIC
# ===========================================


@public_router.get("/projects/{slug}", response_model=SubmissionResponse)
async def get_published_project(
    slug: str,
    service: SubmissionService = Depends(get_submission_service),
) -> dict[str, Any]:
    try:
        return await service.get_published_by_slug(SubmissionKindEnum.project.value, slug)
    except ModerationError as e:
        raise_http_exception(e)


@public_router.get("/{kind}", response_model=SubmissionListResponse)
async def list_published(
    kind: KindPath,
    tag: str | None = Query(default=None),
    stack: str | None = Query(default=None),
    country: str | None = Query(default=None),
    team: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1, le=100),
    service: SubmissionService = Depends(get_submission_service),
) -> dict[str, Any]:
    """Approved and featured submissions, featured first."""
    return await service.list_published(
        kind.kind, tag=tag, stack=stack, country=country, team=team, page=page, limit=limit
    )
