"""Create social tables

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  Creates users, posts and the three relationship tables
       (friend_requests, friendships, follow_edges).
How:   Portable column types (sa.Uuid, timezone-aware DateTime) so the same
       revision runs on PostgreSQL and SQLite.

Rollback: downgrade() drops every table (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "username",
            sa.String(64),
            nullable=False,
            comment="Human-readable handle, unique across users",
        ),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "posts",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("author_id", sa.Uuid(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("options", sa.JSON(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id", name="pk_posts"),
        sa.ForeignKeyConstraint(
            ["author_id"], ["users.id"], name="fk_posts_author", ondelete="CASCADE"
        ),
    )
    op.create_index("idx_posts_author_created", "posts", ["author_id", "created_at"])

    # Only pending requests are stored, so pair_key UNIQUE means
    # "at most one live request per unordered pair"
    op.create_table(
        "friend_requests",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("from_id", sa.Uuid(), nullable=False),
        sa.Column("to_id", sa.Uuid(), nullable=False),
        sa.Column(
            "status", sa.String(16), nullable=False, server_default=sa.text("'pending'")
        ),
        sa.Column("pair_key", sa.String(80), nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id", name="pk_friend_requests"),
        sa.UniqueConstraint("pair_key", name="uq_friend_requests_pair_key"),
        sa.CheckConstraint("from_id <> to_id", name="ck_friend_requests_not_self"),
    )
    op.create_index("ix_friend_requests_from_id", "friend_requests", ["from_id"])
    op.create_index("ix_friend_requests_to_id", "friend_requests", ["to_id"])

    op.create_table(
        "friendships",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("friend_id", sa.Uuid(), nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("user_id", "friend_id", name="pk_friendships"),
        sa.CheckConstraint("user_id <> friend_id", name="ck_friendships_not_self"),
    )

    op.create_table(
        "follow_edges",
        sa.Column("follower_id", sa.Uuid(), nullable=False),
        sa.Column("followee_id", sa.Uuid(), nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("follower_id", "followee_id", name="pk_follow_edges"),
        sa.CheckConstraint("follower_id <> followee_id", name="ck_follow_edges_not_self"),
    )
    op.create_index("idx_follow_edges_followee", "follow_edges", ["followee_id"])


def downgrade() -> None:
    op.drop_index("idx_follow_edges_followee", table_name="follow_edges")
    op.drop_table("follow_edges")
    op.drop_table("friendships")
    op.drop_index("ix_friend_requests_to_id", table_name="friend_requests")
    op.drop_index("ix_friend_requests_from_id", table_name="friend_requests")
    op.drop_table("friend_requests")
    op.drop_index("idx_posts_author_created", table_name="posts")
    op.drop_table("posts")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
