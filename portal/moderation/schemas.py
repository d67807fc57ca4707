"""Pydantic schemas for submission and moderation requests/responses."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field

from portal.models import MediaTypeEnum
from portal.moderation.state_machine import SubmissionStatus


def _split_terms(v: object) -> object:
    # Forms post stack/tags as "a, b, c"; JSON clients post lists.
    if isinstance(v, str):
        v = v.split(",")
    if isinstance(v, list):
        seen: list[str] = []
        for term in v:
            term = str(term).strip()
            if term and term not in seen:
                seen.append(term)
        return seen
    return v


Terms = Annotated[list[str], BeforeValidator(_split_terms)]


# ===========================================
# REQUESTS
# ===========================================


class MediaInput(BaseModel):
    url: str = Field(..., min_length=1, max_length=2000)
    type: MediaTypeEnum = MediaTypeEnum.IMAGE


class SubmissionCreate(BaseModel):
    """Owner request to create a draft project or startup."""

    title: str = Field(..., min_length=1, max_length=300)
    summary: str | None = Field(default=None, max_length=1000)
    description: str | None = Field(default=None, max_length=20000)
    team_name: str | None = Field(default=None, max_length=200)
    team_members: str | None = Field(default=None, max_length=2000)
    demo_link: str | None = Field(default=None, max_length=2000)
    repo_link: str | None = Field(default=None, max_length=2000)
    website: str | None = Field(default=None, max_length=2000)
    country: str | None = Field(default=None, max_length=100)
    tags: Terms = Field(default_factory=list)
    stack: Terms = Field(default_factory=list)
    media: list[MediaInput] = Field(default_factory=list)
    cover_index: int | None = Field(default=None, ge=0)


class SubmissionUpdate(BaseModel):
    """Owner request to edit content fields. Status is never editable here."""

    title: str | None = Field(default=None, min_length=1, max_length=300)
    summary: str | None = Field(default=None, max_length=1000)
    description: str | None = Field(default=None, max_length=20000)
    team_name: str | None = Field(default=None, max_length=200)
    team_members: str | None = Field(default=None, max_length=2000)
    demo_link: str | None = Field(default=None, max_length=2000)
    repo_link: str | None = Field(default=None, max_length=2000)
    website: str | None = Field(default=None, max_length=2000)
    country: str | None = Field(default=None, max_length=100)
    tags: Terms | None = None
    stack: Terms | None = None


class ApproveRequest(BaseModel):
    featured: bool = False
    # Status the caller acted on. When given, the transition is chosen from it
    # and must still be valid from the stored status.
    expected_status: SubmissionStatus | None = None


# Blank text is accepted here so the service can answer with its own
# validation error instead of a schema error.
class RejectRequest(BaseModel):
    reason: str = Field(default="", max_length=5000)


class RequestChangesRequest(BaseModel):
    message: str = Field(default="", max_length=5000)


class SetCoverRequest(BaseModel):
    media_id: int


# ===========================================
# RESPONSES
# ===========================================


class MediaResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    url: str
    type: str = Field(validation_alias=AliasChoices("type", "media_type"))
    position: int = 0


class SubmissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: str
    slug: str | None = None
    owner_id: int
    title: str
    summary: str | None = None
    description: str | None = None
    team_name: str | None = None
    team_members: str | None = None
    demo_link: str | None = None
    repo_link: str | None = None
    website: str | None = None
    country: str | None = None
    tags: list[str] = Field(default_factory=list)
    stack: list[str] = Field(default_factory=list)
    media: list[MediaResponse] = Field(default_factory=list)
    cover_media_id: int | None = None
    cover_image: str | None = None
    status: str
    mod_notes: str | None = None
    featured_at: datetime | None = None
    submitted_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PageMeta(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


class SubmissionListResponse(BaseModel):
    data: list[SubmissionResponse] = Field(default_factory=list)
    meta: PageMeta | None = None


class ModerationEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    submission_id: int
    kind: str
    actor_id: int | None
    action: str
    from_status: str
    to_status: str | None
    note: str | None
    created_at: datetime | None = None
