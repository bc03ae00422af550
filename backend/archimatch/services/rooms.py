"""Room type hierarchy and per-room questions.

Room types form a two-level tree per architect: roots are categories
("Salon"), their children are the rooms a client can select ("Canapé
zone"). Both room types and questions are soft-deleted; every listing here
filters on ``active``.
"""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from archimatch.errors import ConflictError, InvalidArgumentError, NotFoundError
from archimatch.models.db import (
    CHOICE_QUESTION_TYPES,
    QUESTION_TYPES,
    Question,
    RoomType,
)

logger = structlog.get_logger()

_ROOM_NOT_FOUND = "Room type not found"
_QUESTION_NOT_FOUND = "Question not found"


async def _get_owned_room(
    db: AsyncSession,
    architect_id: str,
    room_type_id: str,
    *,
    active_only: bool = False,
) -> RoomType:
    room = await db.scalar(
        select(RoomType)
        .where(RoomType.id == room_type_id, RoomType.architect_id == architect_id)
        .options(selectinload(RoomType.questions))
    )
    if room is None or (active_only and not room.active):
        raise NotFoundError(_ROOM_NOT_FOUND)
    return room


async def _ensure_name_available(
    db: AsyncSession, architect_id: str, name: str, *, exclude_id: str | None = None
) -> None:
    stmt = select(RoomType.id).where(
        RoomType.architect_id == architect_id,
        RoomType.name == name,
        RoomType.active.is_(True),
    )
    if exclude_id is not None:
        stmt = stmt.where(RoomType.id != exclude_id)
    if await db.scalar(stmt.limit(1)) is not None:
        raise ConflictError(f"Room type '{name}' already exists")


def _clean_name(name: str | None) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise InvalidArgumentError("Room type name is required")
    return cleaned


async def create_room_type(
    db: AsyncSession,
    architect_id: str,
    *,
    name: str,
    display_order: int = 0,
    parent_id: str | None = None,
) -> RoomType:
    name = _clean_name(name)
    if parent_id is not None:
        parent = await _get_owned_room(db, architect_id, parent_id, active_only=True)
        if parent.parent_id is not None:
            raise InvalidArgumentError("A room can only be created under a top-level category")
    await _ensure_name_available(db, architect_id, name)

    room = RoomType(
        architect_id=architect_id,
        name=name,
        display_order=display_order,
        parent_id=parent_id,
        active=True,
        questions=[],
        children=[],
    )
    db.add(room)
    await db.commit()
    logger.info(
        "room_type_created",
        room_type_id=room.id,
        architect_id=architect_id,
        parent_id=parent_id,
    )
    return room


async def update_room_type(
    db: AsyncSession, architect_id: str, room_type_id: str, fields: dict[str, Any]
) -> RoomType:
    """Apply a partial update; only keys present in ``fields`` are written."""
    room = await _get_owned_room(db, architect_id, room_type_id)

    if "name" in fields:
        room.name = _clean_name(fields["name"])
    if fields.get("display_order") is not None:
        room.display_order = fields["display_order"]
    if fields.get("active") is not None:
        room.active = fields["active"]
    if room.active and ("name" in fields or fields.get("active")):
        await _ensure_name_available(db, architect_id, room.name, exclude_id=room.id)

    await db.commit()
    logger.info("room_type_updated", room_type_id=room.id, fields=sorted(fields))
    return room


async def soft_delete_room_type(db: AsyncSession, architect_id: str, room_type_id: str) -> RoomType:
    """Deactivate the row itself. Children and questions are left as they are."""
    room = await _get_owned_room(db, architect_id, room_type_id)
    room.active = False
    await db.commit()
    logger.info("room_type_deactivated", room_type_id=room.id)
    return room


async def list_room_types(
    db: AsyncSession, architect_id: str, *, include_children: bool = False
) -> list[RoomType]:
    """Active room types by display order.

    With ``include_children`` only the categories are returned; their active
    children hang off ``RoomType.children`` (filtered by the caller).
    """
    stmt = (
        select(RoomType)
        .where(RoomType.architect_id == architect_id, RoomType.active.is_(True))
        .order_by(RoomType.display_order, RoomType.created_at)
    )
    if include_children:
        stmt = stmt.where(RoomType.parent_id.is_(None)).options(
            selectinload(RoomType.questions),
            selectinload(RoomType.children).selectinload(RoomType.questions),
        )
    else:
        stmt = stmt.options(selectinload(RoomType.questions))
    return list((await db.scalars(stmt)).all())


# --- Questions ---


def _check_question_type(question_type: str) -> None:
    if question_type not in QUESTION_TYPES:
        raise InvalidArgumentError(
            f"Unknown question type '{question_type}'; expected one of {', '.join(QUESTION_TYPES)}"
        )


def _options_for(question_type: str, options: list[str] | None) -> list[str] | None:
    if question_type in CHOICE_QUESTION_TYPES:
        return list(options or [])
    return None


async def create_question(
    db: AsyncSession,
    architect_id: str,
    *,
    room_type_id: str,
    question_text: str | None,
    question_type: str | None,
    options: list[str] | None = None,
    required: bool = True,
    display_order: int = 0,
) -> Question:
    text = (question_text or "").strip()
    if not text or not question_type:
        raise InvalidArgumentError("Question text and type are required")
    _check_question_type(question_type)
    await _get_owned_room(db, architect_id, room_type_id, active_only=True)

    question = Question(
        room_type_id=room_type_id,
        question_text=text,
        question_type=question_type,
        options=_options_for(question_type, options),
        required=required,
        display_order=display_order,
        active=True,
    )
    db.add(question)
    await db.commit()
    logger.info(
        "question_created",
        question_id=question.id,
        room_type_id=room_type_id,
        question_type=question_type,
    )
    return question


async def _get_owned_question(db: AsyncSession, architect_id: str, question_id: str) -> Question:
    question = await db.scalar(
        select(Question)
        .join(RoomType, Question.room_type_id == RoomType.id)
        .where(Question.id == question_id, RoomType.architect_id == architect_id)
    )
    if question is None:
        raise NotFoundError(_QUESTION_NOT_FOUND)
    return question


async def update_question(
    db: AsyncSession, architect_id: str, question_id: str, fields: dict[str, Any]
) -> Question:
    question = await _get_owned_question(db, architect_id, question_id)

    if "question_text" in fields:
        text = (fields["question_text"] or "").strip()
        if not text:
            raise InvalidArgumentError("Question text cannot be empty")
        question.question_text = text
    if fields.get("question_type") is not None:
        _check_question_type(fields["question_type"])
        question.question_type = fields["question_type"]
    if "options" in fields or "question_type" in fields:
        options = fields["options"] if "options" in fields else question.options
        question.options = _options_for(question.question_type, options)
    for key in ("required", "display_order", "active"):
        if fields.get(key) is not None:
            setattr(question, key, fields[key])

    await db.commit()
    logger.info("question_updated", question_id=question.id, fields=sorted(fields))
    return question


async def soft_delete_question(db: AsyncSession, architect_id: str, question_id: str) -> Question:
    question = await _get_owned_question(db, architect_id, question_id)
    question.active = False
    await db.commit()
    logger.info("question_deactivated", question_id=question.id)
    return question


async def list_questions(
    db: AsyncSession,
    *,
    room_type_id: str | None = None,
    architect_id: str | None = None,
) -> list[Question]:
    """Active questions for one room type, or for every room of an architect."""
    if room_type_id is None and architect_id is None:
        raise InvalidArgumentError("roomTypeId or an authenticated architect is required")
    stmt = (
        select(Question)
        .join(RoomType, Question.room_type_id == RoomType.id)
        .where(Question.active.is_(True))
        .options(selectinload(Question.room_type))
        .order_by(Question.display_order, Question.created_at)
    )
    if room_type_id is not None:
        stmt = stmt.where(Question.room_type_id == room_type_id)
    if architect_id is not None:
        stmt = stmt.where(RoomType.architect_id == architect_id)
    return list((await db.scalars(stmt)).all())
