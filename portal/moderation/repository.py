"""Repository layer for submission and moderation event persistence."""

from collections.abc import Iterable

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from portal.logging_config import get_logger
from portal.models import ModerationEvent, Submission, SubmissionMedia

logger = get_logger(__name__)


class SubmissionRepository:
    """Repository for submission database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, submission: Submission) -> Submission:
        self.session.add(submission)
        await self.session.flush()
        return await self.get_by_id(submission.kind, submission.id)

    async def get_by_id(self, kind: str, submission_id: int) -> Submission | None:
        query = (
            select(Submission)
            .where(Submission.id == submission_id, Submission.kind == kind)
            .options(selectinload(Submission.media))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_by_slug(self, kind: str, slug: str) -> Submission | None:
        query = (
            select(Submission)
            .where(Submission.slug == slug, Submission.kind == kind)
            .options(selectinload(Submission.media))
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def slug_exists(self, kind: str, slug: str) -> bool:
        query = select(Submission.id).where(Submission.kind == kind, Submission.slug == slug)
        result = await self.session.execute(query)
        return result.scalar_one_or_none() is not None

    async def list_for_owner(self, kind: str, owner_id: int) -> list[Submission]:
        query = (
            select(Submission)
            .where(Submission.kind == kind, Submission.owner_id == owner_id)
            .options(selectinload(Submission.media))
            .order_by(Submission.created_at.desc())
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_filtered(
        self,
        kind: str,
        statuses: Iterable[str] | None = None,
        tag: str | None = None,
        stack: str | None = None,
        country: str | None = None,
        team: str | None = None,
        search: str | None = None,
        featured_first: bool = False,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[Submission], int]:
        conditions = [Submission.kind == kind]
        if statuses:
            conditions.append(Submission.status.in_(list(statuses)))
        if tag:
            conditions.append(Submission.tags.any(tag))
        if stack:
            conditions.append(Submission.stack.any(stack))
        if country:
            conditions.append(Submission.country.ilike(country))
        if team:
            conditions.append(Submission.team_name.ilike(f"%{team}%"))
        if search:
            pattern = f"%{search}%"
            conditions.append(
                or_(
                    Submission.title.ilike(pattern),
                    Submission.summary.ilike(pattern),
                    Submission.team_name.ilike(pattern),
                )
            )

        base_query = select(Submission).where(and_(*conditions))
        count_query = select(func.count()).select_from(base_query.subquery())
        total = (await self.session.execute(count_query)).scalar() or 0

        ordering = []
        if featured_first:
            ordering.append(case((Submission.status == "FEATURED", 0), else_=1))
            ordering.append(Submission.featured_at.desc().nulls_last())
        ordering.append(Submission.created_at.desc())

        query = (
            base_query.options(selectinload(Submission.media))
            .order_by(*ordering)
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all()), total

    async def save(self, submission: Submission) -> Submission:
        await self.session.flush()
        return submission

    async def delete(self, submission: Submission) -> None:
        await self.session.delete(submission)
        await self.session.flush()

    async def add_media(self, submission: Submission, media: SubmissionMedia) -> SubmissionMedia:
        submission.media.append(media)
        await self.session.flush()
        return media

    async def remove_media(self, submission: Submission, media: SubmissionMedia) -> None:
        submission.media.remove(media)
        await self.session.flush()


class ModerationEventRepository:
    """Repository for the moderation audit trail."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **kwargs) -> ModerationEvent:
        event = ModerationEvent(**kwargs)
        self.session.add(event)
        await self.session.flush()
        return event

    async def list_for_submission(self, kind: str, submission_id: int) -> list[ModerationEvent]:
        query = (
            select(ModerationEvent)
            .where(ModerationEvent.kind == kind, ModerationEvent.submission_id == submission_id)
            .order_by(ModerationEvent.created_at.asc(), ModerationEvent.id.asc())
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())
