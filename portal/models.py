"""SQLAlchemy ORM models for users, submissions, media and moderation events."""

import enum
from datetime import datetime

from sqlalchemy import (
    ARRAY,
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import DateTime, Integer


class Base(DeclarativeBase):
    pass


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class UserRoleEnum(str, enum.Enum):
    user = "user"
    moderator = "moderator"
    admin = "admin"


class SubmissionKindEnum(str, enum.Enum):
    project = "project"
    startup = "startup"


class MediaTypeEnum(str, enum.Enum):
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"


MODERATOR_ROLES = frozenset({UserRoleEnum.moderator.value, UserRoleEnum.admin.value})


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        Index("idx_users_email", "email"),
        CheckConstraint("role IN ('user','moderator','admin')", name="ck_user_role"),
        CheckConstraint("status IN ('active','suspended')", name="ck_user_status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    avatar_url: Mapped[str | None] = mapped_column(Text)
    role: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("'user'"))
    status: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("'active'"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )

    submissions: Mapped[list["Submission"]] = relationship(back_populates="owner")

    @property
    def is_moderator(self) -> bool:
        return self.role in MODERATOR_ROLES


# ---------------------------------------------------------------------------
# Submissions (projects and startups share one lifecycle)
# ---------------------------------------------------------------------------


class Submission(Base):
    __tablename__ = "submissions"
    __table_args__ = (
        UniqueConstraint("kind", "slug", name="uq_submission_kind_slug"),
        Index("idx_submissions_owner", "owner_id"),
        Index("idx_submissions_kind_status", "kind", "status"),
        Index("idx_submissions_tags", "tags", postgresql_using="gin"),
        Index("idx_submissions_stack", "stack", postgresql_using="gin"),
        CheckConstraint("kind IN ('project','startup')", name="ck_submission_kind"),
        CheckConstraint(
            "status IN ('PENDING','SUBMITTED','APPROVED','FEATURED','CHANGES_REQUESTED','REJECTED')",
            name="ck_submission_status",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str | None] = mapped_column(Text)
    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    title: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[str | None] = mapped_column(Text)
    description: Mapped[str | None] = mapped_column(Text)
    team_name: Mapped[str | None] = mapped_column(Text)
    team_members: Mapped[str | None] = mapped_column(Text)
    demo_link: Mapped[str | None] = mapped_column(Text)
    repo_link: Mapped[str | None] = mapped_column(Text)
    website: Mapped[str | None] = mapped_column(Text)
    country: Mapped[str | None] = mapped_column(Text)
    tags: Mapped[list[str]] = mapped_column(
        ARRAY(String), nullable=False, server_default=text("'{}'")
    )
    stack: Mapped[list[str]] = mapped_column(
        ARRAY(String), nullable=False, server_default=text("'{}'")
    )
    cover_media_id: Mapped[int | None] = mapped_column(Integer)

    status: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("'PENDING'"))
    mod_notes: Mapped[str | None] = mapped_column(Text)
    featured_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )

    owner: Mapped["User"] = relationship(back_populates="submissions")
    media: Mapped[list["SubmissionMedia"]] = relationship(
        back_populates="submission",
        order_by="SubmissionMedia.position",
        cascade="all, delete-orphan",
    )


class SubmissionMedia(Base):
    __tablename__ = "submission_media"
    __table_args__ = (
        Index("idx_submission_media_submission", "submission_id"),
        CheckConstraint("media_type IN ('IMAGE','VIDEO')", name="ck_media_type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    submission_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False
    )
    url: Mapped[str] = mapped_column(Text, nullable=False)
    media_type: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("'IMAGE'"))
    position: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )

    submission: Mapped["Submission"] = relationship(back_populates="media")


# ---------------------------------------------------------------------------
# Moderation audit trail
# ---------------------------------------------------------------------------


class ModerationEvent(Base):
    __tablename__ = "moderation_events"
    __table_args__ = (
        Index("idx_moderation_events_submission", "submission_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Kept after the submission is deleted, so no foreign key.
    submission_id: Mapped[int] = mapped_column(Integer, nullable=False)
    kind: Mapped[str] = mapped_column(Text, nullable=False)
    actor_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL")
    )
    action: Mapped[str] = mapped_column(Text, nullable=False)
    from_status: Mapped[str] = mapped_column(Text, nullable=False)
    to_status: Mapped[str | None] = mapped_column(Text)
    note: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )
