"""Initial schema — the four Tandem tables.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── 1. tags ─────────────────────────────────────────────────────
    op.create_table(
        "tags",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("description", sa.String(500), server_default="", nullable=False),
        sa.Column(
            "category",
            sa.String(32),
            nullable=False,
            comment="sports | gaming | learning | food | travel | music | "
            "technology | fashion | reading | other",
        ),
        sa.Column("usage_count", sa.Integer, server_default="0", nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean, server_default="true", nullable=False),
    )
    op.create_index("ix_tags_name", "tags", ["name"], unique=True)
    op.create_index("ix_tags_category", "tags", ["category"])
    op.create_index("ix_tags_popularity", "tags", ["usage_count", "last_used_at"])

    # ── 2. user_tags ────────────────────────────────────────────────
    op.create_table(
        "user_tags",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("user_id", sa.Uuid, nullable=False),
        sa.Column(
            "tag_id",
            sa.Uuid,
            sa.ForeignKey("tags.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "weight",
            sa.Float,
            nullable=False,
            comment="Interest strength in [0, 1]",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "last_updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("is_active", sa.Boolean, server_default="true", nullable=False),
        sa.UniqueConstraint("user_id", "tag_id", name="uq_user_tag_pair"),
    )
    op.create_index("ix_user_tags_user_id", "user_tags", ["user_id"])
    op.create_index("ix_user_tags_tag_active", "user_tags", ["tag_id", "is_active"])

    # ── 3. user_interactions ────────────────────────────────────────
    op.create_table(
        "user_interactions",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("user_id", sa.Uuid, nullable=False),
        sa.Column("target_user_id", sa.Uuid, nullable=False),
        sa.Column("interaction_type", sa.String(32), nullable=False),
        sa.Column(
            "rating",
            sa.Float,
            nullable=False,
            comment="Explicit or implicit rating in [0, 5]",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "context",
            sa.Text,
            nullable=True,
            comment="Free-text context supplied by the caller",
        ),
    )
    op.create_index(
        "ix_interactions_user_created", "user_interactions", ["user_id", "created_at"]
    )
    op.create_index(
        "ix_interactions_user_target", "user_interactions", ["user_id", "target_user_id"]
    )
    op.create_index(
        "ix_interactions_rated_users", "user_interactions", ["user_id", "rating"]
    )

    # ── 4. user_matches ─────────────────────────────────────────────
    op.create_table(
        "user_matches",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("user_id", sa.Uuid, nullable=False),
        sa.Column("matched_user_id", sa.Uuid, nullable=False),
        sa.Column("score", sa.Float, nullable=False, comment="Match score in [0, 1]"),
        sa.Column("match_type", sa.String(32), nullable=False),
        sa.Column("status", sa.String(32), server_default="pending", nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("last_interaction_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.UniqueConstraint("user_id", "matched_user_id", name="uq_match_pair"),
    )
    op.create_index("ix_matches_user_status", "user_matches", ["user_id", "status"])


def downgrade() -> None:
    # Drop in reverse order (children / dependents first).
    op.drop_index("ix_matches_user_status", table_name="user_matches")
    op.drop_table("user_matches")

    op.drop_index("ix_interactions_rated_users", table_name="user_interactions")
    op.drop_index("ix_interactions_user_target", table_name="user_interactions")
    op.drop_index("ix_interactions_user_created", table_name="user_interactions")
    op.drop_table("user_interactions")

    op.drop_index("ix_user_tags_tag_active", table_name="user_tags")
    op.drop_index("ix_user_tags_user_id", table_name="user_tags")
    op.drop_table("user_tags")

    op.drop_index("ix_tags_popularity", table_name="tags")
    op.drop_index("ix_tags_category", table_name="tags")
    op.drop_index("ix_tags_name", table_name="tags")
    op.drop_table("tags")
