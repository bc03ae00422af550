"""SQLAlchemy ORM models for ArchiMatch.

Architect is the tenant root. RoomType, InspirationPhoto and ClientSession
carry architect_id directly; Question is scoped through its RoomType.
Configuration rows are soft-deleted (active=False); sessions and their
answers/interactions are hard-deleted.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# JSONB on PostgreSQL, plain JSON (text) elsewhere.
JSONType = JSON().with_variant(JSONB(), "postgresql")

QUESTION_TYPES = (
    "text",
    "textarea",
    "number",
    "select",
    "multiselect",
    "radio",
    "checkbox",
    "range",
)
CHOICE_QUESTION_TYPES = frozenset({"select", "multiselect", "radio", "checkbox"})
SESSION_STATUSES = ("in_progress", "completed", "abandoned")
INTERACTION_ACTIONS = ("like", "dislike")


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


photo_room_types = Table(
    "photo_room_types",
    Base.metadata,
    Column(
        "photo_id",
        String(36),
        ForeignKey("inspiration_photos.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "room_type_id",
        String(36),
        ForeignKey("room_types.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Index("idx_photo_room_types_room", "room_type_id"),
)


class Architect(Base):
    __tablename__ = "architects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    company: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )


class RoomType(Base):
    __tablename__ = "room_types"
    __table_args__ = (
        Index("idx_room_types_architect", "architect_id", "active", "display_order"),
        Index("idx_room_types_parent", "parent_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    architect_id: Mapped[str] = mapped_column(
        ForeignKey("architects.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    parent_id: Mapped[str | None] = mapped_column(
        ForeignKey("room_types.id", ondelete="SET NULL"), nullable=True
    )
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
    )

    parent: Mapped["RoomType | None"] = relationship(
        back_populates="children", remote_side="RoomType.id"
    )
    children: Mapped[list["RoomType"]] = relationship(
        back_populates="parent", order_by="RoomType.display_order"
    )
    questions: Mapped[list["Question"]] = relationship(
        back_populates="room_type", order_by="Question.display_order"
    )


class Question(Base):
    __tablename__ = "questions"
    __table_args__ = (Index("idx_questions_room_type", "room_type_id", "active", "display_order"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    room_type_id: Mapped[str] = mapped_column(
        ForeignKey("room_types.id", ondelete="CASCADE"), nullable=False
    )
    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    question_type: Mapped[str] = mapped_column(String(20), nullable=False)
    options: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    required: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
    )

    room_type: Mapped["RoomType"] = relationship(back_populates="questions")


class InspirationPhoto(Base):
    __tablename__ = "inspiration_photos"
    __table_args__ = (
        Index("idx_inspiration_photos_architect", "architect_id", "active", "is_client_upload"),
        Index("idx_inspiration_photos_session", "session_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    architect_id: Mapped[str] = mapped_column(
        ForeignKey("architects.id", ondelete="CASCADE"), nullable=False
    )
    session_id: Mapped[str | None] = mapped_column(
        ForeignKey("client_sessions.id", ondelete="CASCADE"), nullable=True
    )
    image_url: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_client_upload: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
    )

    room_types: Mapped[list["RoomType"]] = relationship(
        secondary=photo_room_types, order_by="RoomType.display_order"
    )

    @property
    def room_type_ids(self) -> list[str]:
        return [room.id for room in self.room_types]


class ClientSession(Base):
    __tablename__ = "client_sessions"
    __table_args__ = (Index("idx_client_sessions_architect", "architect_id", "created_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    architect_id: Mapped[str] = mapped_column(
        ForeignKey("architects.id", ondelete="CASCADE"), nullable=False
    )
    first_name: Mapped[str] = mapped_column(String(255), nullable=False)
    last_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="in_progress", nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # General info step
    project_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    housing_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    housing_type_other: Mapped[str | None] = mapped_column(String(255), nullable=True)
    property_usage: Mapped[str | None] = mapped_column(String(100), nullable=True)
    household_adults: Mapped[int | None] = mapped_column(Integer, nullable=True)
    household_children: Mapped[int | None] = mapped_column(Integer, nullable=True)
    household_grandchildren: Mapped[int | None] = mapped_column(Integer, nullable=True)
    children_ages: Mapped[str | None] = mapped_column(String(255), nullable=True)
    has_animals: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    desired_organization: Mapped[str | None] = mapped_column(String(100), nullable=True)
    organization_comments: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Room selection step
    selected_room_types: Mapped[list | None] = mapped_column(JSONType, nullable=True)

    architect: Mapped["Architect"] = relationship()
    answers: Mapped[list["ClientAnswer"]] = relationship(
        back_populates="session",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ClientAnswer.created_at",
    )
    interactions: Mapped[list["PhotoInteraction"]] = relationship(
        back_populates="session",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PhotoInteraction.created_at",
    )


class ClientAnswer(Base):
    __tablename__ = "client_answers"
    __table_args__ = (
        UniqueConstraint("session_id", "question_id", name="uq_client_answers_session_question"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    session_id: Mapped[str] = mapped_column(
        ForeignKey("client_sessions.id", ondelete="CASCADE"), nullable=False
    )
    question_id: Mapped[str] = mapped_column(
        ForeignKey("questions.id", ondelete="CASCADE"), nullable=False
    )
    answer_value: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
    )

    session: Mapped["ClientSession"] = relationship(back_populates="answers")
    question: Mapped["Question"] = relationship()


class PhotoInteraction(Base):
    __tablename__ = "photo_interactions"
    __table_args__ = (
        UniqueConstraint("session_id", "photo_id", name="uq_photo_interactions_session_photo"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    session_id: Mapped[str] = mapped_column(
        ForeignKey("client_sessions.id", ondelete="CASCADE"), nullable=False
    )
    photo_id: Mapped[str] = mapped_column(
        ForeignKey("inspiration_photos.id", ondelete="CASCADE"), nullable=False
    )
    action: Mapped[str] = mapped_column(String(10), nullable=False)
    annotations: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
    )

    session: Mapped["ClientSession"] = relationship(back_populates="interactions")
    photo: Mapped["InspirationPhoto"] = relationship()
