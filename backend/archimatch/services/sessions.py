"""Client sessions: the intake wizard's state, answers and photo ratings.

Status only moves forward: ``in_progress`` becomes ``completed`` (results
step or the maintenance sweep) or ``abandoned`` (explicit admin action).

Answers and photo interactions are unique per session and are written with
the database's own ``INSERT ... ON CONFLICT DO UPDATE`` so two concurrent
writers can never produce duplicate rows.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import delete, exists, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from archimatch.errors import ConflictError, InvalidArgumentError, NotFoundError
from archimatch.models.db import (
    Architect,
    ClientAnswer,
    ClientSession,
    InspirationPhoto,
    PhotoInteraction,
    Question,
    RoomType,
    photo_room_types,
)

logger = structlog.get_logger()

GENERAL_INFO_FIELDS = (
    "project_type",
    "housing_type",
    "housing_type_other",
    "property_usage",
    "household_adults",
    "household_children",
    "household_grandchildren",
    "children_ages",
    "has_animals",
    "desired_organization",
    "organization_comments",
)

_SESSION_NOT_FOUND = "Session not found"

_UPSERT_INSERTS = {"postgresql": pg_insert, "sqlite": sqlite_insert}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _session_relations() -> tuple:
    return (
        selectinload(ClientSession.architect),
        selectinload(ClientSession.answers)
        .selectinload(ClientAnswer.question)
        .selectinload(Question.room_type),
        selectinload(ClientSession.interactions)
        .selectinload(PhotoInteraction.photo)
        .selectinload(InspirationPhoto.room_types),
    )


def _upsert(
    db: AsyncSession,
    model: type,
    values: dict[str, Any],
    *,
    conflict_on: list[str],
    update_columns: list[str],
):
    dialect = db.bind.dialect.name
    insert_fn = _UPSERT_INSERTS.get(dialect)
    if insert_fn is None:
        raise RuntimeError(f"Atomic upsert is not supported on {dialect!r}")
    stmt = insert_fn(model).values(**values)
    return stmt.on_conflict_do_update(
        index_elements=conflict_on,
        set_={**{col: stmt.excluded[col] for col in update_columns}, "updated_at": _now()},
    )


def encode_answer_value(value: Any) -> str:
    """Answers are stored as text; multi-value answers as a JSON array."""
    if isinstance(value, (list, tuple)):
        return json.dumps(list(value), ensure_ascii=False)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


async def _require_session(db: AsyncSession, session_id: str) -> ClientSession:
    session = await db.get(ClientSession, session_id)
    if session is None:
        raise NotFoundError(_SESSION_NOT_FOUND)
    return session


async def _require_owned_session(
    db: AsyncSession, architect_id: str, session_id: str
) -> ClientSession:
    session = await db.scalar(
        select(ClientSession).where(
            ClientSession.id == session_id, ClientSession.architect_id == architect_id
        )
    )
    if session is None:
        raise NotFoundError(_SESSION_NOT_FOUND)
    return session


# --- Lifecycle ---


async def create_session(
    db: AsyncSession,
    *,
    architect_id: str,
    first_name: str,
    last_name: str,
    email: str,
) -> ClientSession:
    if await db.get(Architect, architect_id) is None:
        raise NotFoundError("Architect not found")
    session = ClientSession(
        architect_id=architect_id,
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        email=email.strip(),
        status="in_progress",
    )
    db.add(session)
    await db.commit()
    logger.info("session_created", session_id=session.id, architect_id=architect_id)
    return session


async def update_general_info(
    db: AsyncSession, session_id: str, fields: dict[str, Any]
) -> ClientSession:
    session = await _require_session(db, session_id)
    written = [key for key in GENERAL_INFO_FIELDS if key in fields]
    for key in written:
        setattr(session, key, fields[key])
    await db.commit()
    logger.info("session_general_info_updated", session_id=session_id, fields=written)
    return session


async def set_room_selection(
    db: AsyncSession, session_id: str, room_type_ids: Any
) -> ClientSession:
    if not isinstance(room_type_ids, list) or not all(isinstance(i, str) for i in room_type_ids):
        raise InvalidArgumentError("selectedRoomTypes must be an array of room type ids")
    session = await _require_session(db, session_id)
    session.selected_room_types = list(room_type_ids)
    await db.commit()
    logger.info("session_rooms_selected", session_id=session_id, room_count=len(room_type_ids))
    return session


async def complete_session(db: AsyncSession, session_id: str) -> ClientSession:
    """Mark completed. Repeating the call keeps the first ``completed_at``."""
    session = await _require_session(db, session_id)
    if session.status == "completed":
        return session
    if session.status == "abandoned":
        raise ConflictError("An abandoned session cannot be completed")
    session.status = "completed"
    session.completed_at = _now()
    await db.commit()
    logger.info("session_completed", session_id=session_id)
    return session


async def abandon_session(db: AsyncSession, architect_id: str, session_id: str) -> ClientSession:
    session = await _require_owned_session(db, architect_id, session_id)
    if session.status == "abandoned":
        return session
    if session.status == "completed":
        raise ConflictError("A completed session cannot be abandoned")
    session.status = "abandoned"
    await db.commit()
    logger.info("session_abandoned", session_id=session_id)
    return session


async def mark_answered_sessions_completed(db: AsyncSession, architect_id: str) -> int:
    """Complete every in-progress session of the architect that has an answer."""
    result = await db.execute(
        update(ClientSession)
        .where(
            ClientSession.architect_id == architect_id,
            ClientSession.status == "in_progress",
            exists().where(ClientAnswer.session_id == ClientSession.id),
        )
        .values(status="completed", completed_at=_now())
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    logger.info("sessions_status_swept", architect_id=architect_id, count=result.rowcount)
    return result.rowcount


async def delete_session(db: AsyncSession, architect_id: str, session_id: str) -> None:
    """Hard delete the session, its answers, interactions and client uploads."""
    await _require_owned_session(db, architect_id, session_id)

    uploads = select(InspirationPhoto.id).where(InspirationPhoto.session_id == session_id)
    no_sync = {"synchronize_session": False}
    await db.execute(
        delete(PhotoInteraction)
        .where(
            or_(
                PhotoInteraction.session_id == session_id,
                PhotoInteraction.photo_id.in_(uploads),
            )
        )
        .execution_options(**no_sync)
    )
    await db.execute(
        delete(ClientAnswer)
        .where(ClientAnswer.session_id == session_id)
        .execution_options(**no_sync)
    )
    await db.execute(delete(photo_room_types).where(photo_room_types.c.photo_id.in_(uploads)))
    await db.execute(
        delete(InspirationPhoto)
        .where(InspirationPhoto.session_id == session_id)
        .execution_options(**no_sync)
    )
    await db.execute(
        delete(ClientSession).where(ClientSession.id == session_id).execution_options(**no_sync)
    )
    await db.commit()
    db.expunge_all()
    logger.info("session_deleted", session_id=session_id, architect_id=architect_id)


# --- Reads ---


async def get_session(db: AsyncSession, session_id: str) -> ClientSession:
    """Session with architect, answers (question + room) and interactions (photo)."""
    session = await db.scalar(
        select(ClientSession)
        .where(ClientSession.id == session_id)
        .options(*_session_relations())
        .execution_options(populate_existing=True)
    )
    if session is None:
        raise NotFoundError(_SESSION_NOT_FOUND)
    return session


async def list_sessions(db: AsyncSession, architect_id: str) -> list[ClientSession]:
    stmt = (
        select(ClientSession)
        .where(ClientSession.architect_id == architect_id)
        .options(*_session_relations())
        .order_by(ClientSession.created_at.desc())
        .execution_options(populate_existing=True)
    )
    return list((await db.scalars(stmt)).all())


async def dashboard_stats(db: AsyncSession, architect_id: str) -> dict[str, int]:
    total_sessions = await db.scalar(
        select(func.count(ClientSession.id)).where(ClientSession.architect_id == architect_id)
    )
    completed_sessions = await db.scalar(
        select(func.count(ClientSession.id)).where(
            ClientSession.architect_id == architect_id,
            ClientSession.status == "completed",
        )
    )
    total_questions = await db.scalar(
        select(func.count(Question.id))
        .join(RoomType, Question.room_type_id == RoomType.id)
        .where(
            RoomType.architect_id == architect_id,
            RoomType.active.is_(True),
            Question.active.is_(True),
        )
    )
    total_photos = await db.scalar(
        select(func.count(InspirationPhoto.id)).where(
            InspirationPhoto.architect_id == architect_id,
            InspirationPhoto.active.is_(True),
            InspirationPhoto.is_client_upload.is_(False),
        )
    )
    return {
        "total_sessions": total_sessions or 0,
        "completed_sessions": completed_sessions or 0,
        "total_questions": total_questions or 0,
        "total_photos": total_photos or 0,
    }


# --- Answers & interactions ---


async def upsert_answer(
    db: AsyncSession, *, session_id: str, question_id: str, answer_value: Any
) -> ClientAnswer:
    session = await _require_session(db, session_id)
    question_known = await db.scalar(
        select(Question.id)
        .join(RoomType, Question.room_type_id == RoomType.id)
        .where(Question.id == question_id, RoomType.architect_id == session.architect_id)
    )
    if question_known is None:
        raise NotFoundError("Question not found")

    await db.execute(
        _upsert(
            db,
            ClientAnswer,
            {
                "id": str(uuid.uuid4()),
                "session_id": session_id,
                "question_id": question_id,
                "answer_value": encode_answer_value(answer_value),
            },
            conflict_on=["session_id", "question_id"],
            update_columns=["answer_value"],
        )
    )
    await db.commit()
    answer = await db.scalar(
        select(ClientAnswer)
        .where(ClientAnswer.session_id == session_id, ClientAnswer.question_id == question_id)
        .execution_options(populate_existing=True)
    )
    logger.info("answer_upserted", session_id=session_id, question_id=question_id)
    return answer


async def upsert_photo_interaction(
    db: AsyncSession,
    *,
    session_id: str,
    photo_id: str,
    action: str,
    annotations: list[dict[str, Any]] | None = None,
) -> PhotoInteraction:
    """Record like/dislike. ``annotations=None`` keeps previously saved annotations."""
    session = await _require_session(db, session_id)
    photo_known = await db.scalar(
        select(InspirationPhoto.id).where(
            InspirationPhoto.id == photo_id,
            InspirationPhoto.architect_id == session.architect_id,
        )
    )
    if photo_known is None:
        raise NotFoundError("Photo not found")

    values: dict[str, Any] = {
        "id": str(uuid.uuid4()),
        "session_id": session_id,
        "photo_id": photo_id,
        "action": action,
    }
    update_columns = ["action"]
    if annotations is not None:
        values["annotations"] = annotations
        update_columns.append("annotations")

    await db.execute(
        _upsert(
            db,
            PhotoInteraction,
            values,
            conflict_on=["session_id", "photo_id"],
            update_columns=update_columns,
        )
    )
    await db.commit()
    interaction = await db.scalar(
        select(PhotoInteraction)
        .where(PhotoInteraction.session_id == session_id, PhotoInteraction.photo_id == photo_id)
        .options(selectinload(PhotoInteraction.photo).selectinload(InspirationPhoto.room_types))
        .execution_options(populate_existing=True)
    )
    logger.info(
        "photo_interaction_upserted",
        session_id=session_id,
        photo_id=photo_id,
        action=action,
    )
    return interaction


async def list_photo_interactions(db: AsyncSession, session_id: str) -> list[PhotoInteraction]:
    stmt = (
        select(PhotoInteraction)
        .where(PhotoInteraction.session_id == session_id)
        .options(selectinload(PhotoInteraction.photo).selectinload(InspirationPhoto.room_types))
        .order_by(PhotoInteraction.created_at)
    )
    return list((await db.scalars(stmt)).all())
