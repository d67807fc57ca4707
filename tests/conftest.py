"""Global pytest fixtures for the Submission Portal.

Provides:
- In-memory stand-ins for the submission and event repositories
- A SubmissionService wired to them
- Mock Redis and database sessions
- Users with each role
"""

import itertools
from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from portal.config import PortalSettings
from portal.models import ModerationEvent, Submission, SubmissionMedia
from tests.factories import UserFactory


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ===========================================
# IN-MEMORY REPOSITORIES
# ===========================================


class InMemorySubmissionRepository:
    """Dictionary-backed replacement for SubmissionRepository."""

    def __init__(self):
        self.rows: dict[int, Submission] = {}
        self._ids = itertools.count(1)
        self._media_ids = itertools.count(1)

    def add(self, submission: Submission) -> Submission:
        """Seed a row directly, assigning ids like a flush would."""
        submission.id = next(self._ids)
        for item in submission.media:
            item.id = next(self._media_ids)
        self.rows[submission.id] = submission
        return submission

    async def create(self, submission: Submission) -> Submission:
        return self.add(submission)

    async def get_by_id(self, kind: str, submission_id: int) -> Submission | None:
        submission = self.rows.get(submission_id)
        if submission is None or submission.kind != kind:
            return None
        return submission

    async def get_by_slug(self, kind: str, slug: str) -> Submission | None:
        return next((s for s in self.rows.values() if s.kind == kind and s.slug == slug), None)

    async def slug_exists(self, kind: str, slug: str) -> bool:
        return await self.get_by_slug(kind, slug) is not None

    async def list_for_owner(self, kind: str, owner_id: int) -> list[Submission]:
        rows = [s for s in self.rows.values() if s.kind == kind and s.owner_id == owner_id]
        return sorted(rows, key=lambda s: s.created_at, reverse=True)

    async def list_filtered(
        self,
        kind: str,
        statuses=None,
        tag: str | None = None,
        stack: str | None = None,
        country: str | None = None,
        team: str | None = None,
        search: str | None = None,
        featured_first: bool = False,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[Submission], int]:
        rows = [s for s in self.rows.values() if s.kind == kind]
        if statuses:
            rows = [s for s in rows if s.status in set(statuses)]
        if tag:
            rows = [s for s in rows if tag in (s.tags or [])]
        if stack:
            rows = [s for s in rows if stack in (s.stack or [])]
        if country:
            rows = [s for s in rows if (s.country or "").lower() == country.lower()]
        if team:
            rows = [s for s in rows if team.lower() in (s.team_name or "").lower()]
        if search:
            q = search.lower()
            rows = [
                s
                for s in rows
                if q in s.title.lower()
                or q in (s.summary or "").lower()
                or q in (s.team_name or "").lower()
            ]

        rows.sort(key=lambda s: s.created_at, reverse=True)
        if featured_first:
            rows.sort(key=lambda s: s.featured_at or datetime.min.replace(tzinfo=timezone.utc), reverse=True)
            rows.sort(key=lambda s: 0 if s.status == "FEATURED" else 1)
        return rows[offset : offset + limit], len(rows)

    async def save(self, submission: Submission) -> Submission:
        return submission

    async def delete(self, submission: Submission) -> None:
        self.rows.pop(submission.id, None)

    async def add_media(self, submission: Submission, media: SubmissionMedia) -> SubmissionMedia:
        media.id = next(self._media_ids)
        submission.media.append(media)
        return media

    async def remove_media(self, submission: Submission, media: SubmissionMedia) -> None:
        submission.media.remove(media)


class InMemoryEventRepository:
    """List-backed replacement for ModerationEventRepository."""

    def __init__(self):
        self.events: list[ModerationEvent] = []

    async def create(self, **kwargs: Any) -> ModerationEvent:
        event = ModerationEvent(id=len(self.events) + 1, created_at=utcnow(), **kwargs)
        self.events.append(event)
        return event

    async def list_for_submission(self, kind: str, submission_id: int) -> list[ModerationEvent]:
        return [e for e in self.events if e.kind == kind and e.submission_id == submission_id]


# ===========================================
# INFRASTRUCTURE MOCKS
# ===========================================


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncMock, None]:
    """Mock async session; repositories are replaced, so only commit is used."""
    session = AsyncMock()
    session.commit = AsyncMock()
    session.flush = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    yield session


@pytest.fixture
def mock_redis_client() -> MagicMock:
    redis = MagicMock()
    redis.publish = AsyncMock(return_value=1)
    redis.ping = AsyncMock(return_value=True)
    return redis


@pytest.fixture
def settings() -> PortalSettings:
    return PortalSettings(jwt_secret_key="test-secret-key-with-enough-length-for-hs256")


# ===========================================
# REPOSITORIES AND SERVICE
# ===========================================


@pytest.fixture
def submission_repo() -> InMemorySubmissionRepository:
    return InMemorySubmissionRepository()


@pytest.fixture
def event_repo() -> InMemoryEventRepository:
    return InMemoryEventRepository()


@pytest.fixture
def service(db_session, mock_redis_client, settings, submission_repo, event_repo):
    """SubmissionService over the in-memory repositories."""
    from portal.moderation.service import SubmissionService

    svc = SubmissionService(db_session, redis=mock_redis_client, settings=settings)
    svc.repo = submission_repo
    svc.events = event_repo
    return svc


# ===========================================
# USERS
# ===========================================


@pytest.fixture
def owner():
    return UserFactory.create(id=1, name="Owner")


@pytest.fixture
def other_user():
    return UserFactory.create(id=2, name="Someone Else")


@pytest.fixture
def moderator():
    return UserFactory.create_moderator(id=3, name="Moderator")


@pytest.fixture
def admin():
    return UserFactory.create_admin(id=4, name="Admin")
