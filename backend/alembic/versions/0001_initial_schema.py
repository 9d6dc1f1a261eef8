"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Creates all tables for Materix:
users, friends, free_times, free_time_viewers.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- users ---
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("uuid", sa.String(36), nullable=False, unique=True),
        sa.Column("name", sa.String(500), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("avatar_url", sa.String(1000), nullable=False, server_default=""),
        sa.Column("provider", sa.String(20), nullable=False, server_default="email"),
        sa.Column("activated", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.UniqueConstraint("email", name="users_email_key"),
    )

    # --- friends ---
    op.create_table(
        "friends",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("source_user_id", sa.Integer, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("destination_user_id", sa.Integer, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("pair_low_id", sa.Integer, nullable=False),
        sa.Column("pair_high_id", sa.Integer, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.UniqueConstraint("pair_low_id", "pair_high_id", name="unique_friendship_pair"),
        sa.CheckConstraint("source_user_id <> destination_user_id", name="no_self_friendship"),
        sa.CheckConstraint("status IN ('pending', 'accepted')", name="friend_status_valid"),
    )
    op.create_index("ix_friends_source_user_id", "friends", ["source_user_id"])
    op.create_index("ix_friends_destination_user_id", "friends", ["destination_user_id"])

    # --- free_times ---
    op.create_table(
        "free_times",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("tags", sa.JSON, nullable=False),
        sa.Column("visibility", sa.String(10), nullable=False, server_default="public"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.CheckConstraint("end_time > start_time", name="free_time_valid_range"),
        sa.CheckConstraint("visibility IN ('public', 'private')", name="free_time_visibility_valid"),
    )
    op.create_index("ix_free_times_user_id", "free_times", ["user_id"])
    op.create_index("ix_free_times_start_time", "free_times", ["start_time"])

    # --- free_time_viewers ---
    op.create_table(
        "free_time_viewers",
        sa.Column("free_time_id", sa.Integer, sa.ForeignKey("free_times.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    )


def downgrade() -> None:
    op.drop_table("free_time_viewers")
    op.drop_index("ix_free_times_start_time", table_name="free_times")
    op.drop_index("ix_free_times_user_id", table_name="free_times")
    op.drop_table("free_times")
    op.drop_index("ix_friends_destination_user_id", table_name="friends")
    op.drop_index("ix_friends_source_user_id", table_name="friends")
    op.drop_table("friends")
    op.drop_table("users")
