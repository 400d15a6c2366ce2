"""Initial schema: users, games, re-release requests and votes

Revision ID: 001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("role", sa.String(20), nullable=False, server_default="user"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_username"), "users", ["username"], unique=True)
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)
    op.create_index(op.f("ix_users_role"), "users", ["role"])

    op.create_table(
        "games",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("release_date", sa.Date(), nullable=True),
        sa.Column(
            "availability_status", sa.String(20), nullable=False, server_default="abandonware"
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_games_title"), "games", ["title"])
    op.create_index(op.f("ix_games_slug"), "games", ["slug"], unique=True)
    op.create_index(op.f("ix_games_availability_status"), "games", ["availability_status"])

    # One request per game; counter may never go negative
    op.create_table(
        "rerelease_requests",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("game_id", sa.Integer(), nullable=False),
        sa.Column("total_votes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("fulfilled_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["game_id"], ["games.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("total_votes >= 0", name="ck_rerelease_total_votes_non_negative"),
    )
    op.create_index(
        op.f("ix_rerelease_requests_game_id"), "rerelease_requests", ["game_id"], unique=True
    )
    op.create_index(
        op.f("ix_rerelease_requests_total_votes"), "rerelease_requests", ["total_votes"]
    )
    op.create_index(op.f("ix_rerelease_requests_status"), "rerelease_requests", ["status"])

    # Composite primary key: one vote per (request, user)
    op.create_table(
        "rerelease_votes",
        sa.Column("request_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("vote_date", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["request_id"], ["rerelease_requests.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("request_id", "user_id"),
    )
    op.create_index(op.f("ix_rerelease_votes_request_id"), "rerelease_votes", ["request_id"])
    op.create_index(op.f("ix_rerelease_votes_user_id"), "rerelease_votes", ["user_id"])


def downgrade() -> None:
    op.drop_table("rerelease_votes")
    op.drop_table("rerelease_requests")
    op.drop_table("games")
    op.drop_table("users")
