"""Initial schema: 8 tables matching db.py models.

Revision ID: 001
Revises: (none)
Create Date: 2026-09-14
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _id() -> sa.Column:
    return sa.Column("id", sa.String(36), primary_key=True)


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=False,
    )


def _fk(name: str, target: str, *, nullable: bool = False, ondelete: str = "CASCADE") -> sa.Column:
    return sa.Column(
        name,
        sa.String(36),
        sa.ForeignKey(target, ondelete=ondelete),
        nullable=nullable,
    )


def upgrade() -> None:
    # --- architects ---
    op.create_table(
        "architects",
        _id(),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("company", sa.String(255), nullable=True),
        _timestamp("created_at"),
    )

    # --- room_types ---
    op.create_table(
        "room_types",
        _id(),
        _fk("architect_id", "architects.id"),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("display_order", sa.Integer(), server_default="0", nullable=False),
        _fk("parent_id", "room_types.id", nullable=True, ondelete="SET NULL"),
        sa.Column("active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index(
        "idx_room_types_architect", "room_types", ["architect_id", "active", "display_order"]
    )
    op.create_index("idx_room_types_parent", "room_types", ["parent_id"])

    # --- questions ---
    op.create_table(
        "questions",
        _id(),
        _fk("room_type_id", "room_types.id"),
        sa.Column("question_text", sa.Text(), nullable=False),
        sa.Column("question_type", sa.String(20), nullable=False),
        sa.Column("options", JSONB(), nullable=True),
        sa.Column("required", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("display_order", sa.Integer(), server_default="0", nullable=False),
        sa.Column("active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index(
        "idx_questions_room_type", "questions", ["room_type_id", "active", "display_order"]
    )

    # --- client_sessions ---
    op.create_table(
        "client_sessions",
        _id(),
        _fk("architect_id", "architects.id"),
        sa.Column("first_name", sa.String(255), nullable=False),
        sa.Column("last_name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), server_default="in_progress", nullable=False),
        _timestamp("created_at"),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("project_type", sa.String(100), nullable=True),
        sa.Column("housing_type", sa.String(100), nullable=True),
        sa.Column("housing_type_other", sa.String(255), nullable=True),
        sa.Column("property_usage", sa.String(100), nullable=True),
        sa.Column("household_adults", sa.Integer(), nullable=True),
        sa.Column("household_children", sa.Integer(), nullable=True),
        sa.Column("household_grandchildren", sa.Integer(), nullable=True),
        sa.Column("children_ages", sa.String(255), nullable=True),
        sa.Column("has_animals", sa.Boolean(), nullable=True),
        sa.Column("desired_organization", sa.String(100), nullable=True),
        sa.Column("organization_comments", sa.Text(), nullable=True),
        sa.Column("selected_room_types", JSONB(), nullable=True),
    )
    op.create_index(
        "idx_client_sessions_architect", "client_sessions", ["architect_id", "created_at"]
    )

    # --- inspiration_photos ---
    op.create_table(
        "inspiration_photos",
        _id(),
        _fk("architect_id", "architects.id"),
        _fk("session_id", "client_sessions.id", nullable=True),
        sa.Column("image_url", sa.Text(), nullable=False),
        sa.Column("title", sa.String(255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("tags", JSONB(), nullable=True),
        sa.Column("active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column(
            "is_client_upload", sa.Boolean(), server_default=sa.text("false"), nullable=False
        ),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index(
        "idx_inspiration_photos_architect",
        "inspiration_photos",
        ["architect_id", "active", "is_client_upload"],
    )
    op.create_index("idx_inspiration_photos_session", "inspiration_photos", ["session_id"])

    # --- photo_room_types ---
    op.create_table(
        "photo_room_types",
        sa.Column(
            "photo_id",
            sa.String(36),
            sa.ForeignKey("inspiration_photos.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "room_type_id",
            sa.String(36),
            sa.ForeignKey("room_types.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )
    op.create_index("idx_photo_room_types_room", "photo_room_types", ["room_type_id"])

    # --- client_answers ---
    op.create_table(
        "client_answers",
        _id(),
        _fk("session_id", "client_sessions.id"),
        _fk("question_id", "questions.id"),
        sa.Column("answer_value", sa.Text(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.UniqueConstraint(
            "session_id", "question_id", name="uq_client_answers_session_question"
        ),
    )

    # --- photo_interactions ---
    op.create_table(
        "photo_interactions",
        _id(),
        _fk("session_id", "client_sessions.id"),
        _fk("photo_id", "inspiration_photos.id"),
        sa.Column("action", sa.String(10), nullable=False),
        sa.Column("annotations", JSONB(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.UniqueConstraint("session_id", "photo_id", name="uq_photo_interactions_session_photo"),
    )


def downgrade() -> None:
    op.drop_table("photo_interactions")
    op.drop_table("client_answers")
    op.drop_table("photo_room_types")
    op.drop_table("inspiration_photos")
    op.drop_table("client_sessions")
    op.drop_table("questions")
    op.drop_table("room_types")
    op.drop_table("architects")
