"""Initial schema: users, submissions, media and moderation events.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ARRAY

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- Users ---
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.Text(), nullable=False, unique=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("avatar_url", sa.Text()),
        sa.Column("role", sa.Text(), nullable=False, server_default=sa.text("'user'")),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'active'")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("role IN ('user','moderator','admin')", name="ck_user_role"),
        sa.CheckConstraint("status IN ('active','suspended')", name="ck_user_status"),
    )
    op.create_index("idx_users_email", "users", ["email"])

    # --- Submissions (projects + startups) ---
    op.create_table(
        "submissions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("kind", sa.Text(), nullable=False),
        sa.Column("slug", sa.Text()),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("summary", sa.Text()),
        sa.Column("description", sa.Text()),
        sa.Column("team_name", sa.Text()),
        sa.Column("team_members", sa.Text()),
        sa.Column("demo_link", sa.Text()),
        sa.Column("repo_link", sa.Text()),
        sa.Column("website", sa.Text()),
        sa.Column("country", sa.Text()),
        sa.Column("tags", ARRAY(sa.String()), nullable=False, server_default=sa.text("'{}'")),
        sa.Column("stack", ARRAY(sa.String()), nullable=False, server_default=sa.text("'{}'")),
        sa.Column("cover_media_id", sa.Integer()),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'PENDING'")),
        sa.Column("mod_notes", sa.Text()),
        sa.Column("featured_at", sa.DateTime(timezone=True)),
        sa.Column("submitted_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("kind", "slug", name="uq_submission_kind_slug"),
        sa.CheckConstraint("kind IN ('project','startup')", name="ck_submission_kind"),
        sa.CheckConstraint(
            "status IN ('PENDING','SUBMITTED','APPROVED','FEATURED','CHANGES_REQUESTED','REJECTED')",
            name="ck_submission_status",
        ),
    )
    op.create_index("idx_submissions_owner", "submissions", ["owner_id"])
    op.create_index("idx_submissions_kind_status", "submissions", ["kind", "status"])
    op.create_index("idx_submissions_tags", "submissions", ["tags"], postgresql_using="gin")
    op.create_index("idx_submissions_stack", "submissions", ["stack"], postgresql_using="gin")

    # --- Submission Media ---
    op.create_table(
        "submission_media",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "submission_id", sa.Integer(), sa.ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("media_type", sa.Text(), nullable=False, server_default=sa.text("'IMAGE'")),
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("media_type IN ('IMAGE','VIDEO')", name="ck_media_type"),
    )
    op.create_index("idx_submission_media_submission", "submission_media", ["submission_id"])

    # --- Moderation Events ---
    op.create_table(
        "moderation_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("submission_id", sa.Integer(), nullable=False),
        sa.Column("kind", sa.Text(), nullable=False),
        sa.Column("actor_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("action", sa.Text(), nullable=False),
        sa.Column("from_status", sa.Text(), nullable=False),
        sa.Column("to_status", sa.Text()),
        sa.Column("note", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("idx_moderation_events_submission", "moderation_events", ["submission_id", "created_at"])


def downgrade() -> None:
    op.drop_table("moderation_events")
    op.drop_table("submission_media")
    op.drop_table("submissions")
    op.drop_table("users")
