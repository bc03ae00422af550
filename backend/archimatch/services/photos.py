"""Inspiration photos: curated by the architect or uploaded by a client.

Room associations live in the ``photo_room_types`` join table. A curated
photo without any association applies to every room.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import structlog
from sqlalchemy import exists, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from archimatch.errors import InvalidArgumentError, NotFoundError
from archimatch.models.db import ClientSession, InspirationPhoto, RoomType, photo_room_types

logger = structlog.get_logger()

_PHOTO_NOT_FOUND = "Photo not found"


async def _resolve_room_types(
    db: AsyncSession, architect_id: str, room_type_ids: Sequence[str]
) -> list[RoomType]:
    """Load the architect's room types for the given ids, rejecting unknown ones."""
    wanted = list(dict.fromkeys(room_type_ids))
    if not wanted:
        return []
    rooms = (
        await db.scalars(
            select(RoomType).where(
                RoomType.id.in_(wanted), RoomType.architect_id == architect_id
            )
        )
    ).all()
    found = {room.id for room in rooms}
    missing = [room_id for room_id in wanted if room_id not in found]
    if missing:
        raise InvalidArgumentError(f"Unknown room type ids: {', '.join(missing)}")
    return list(rooms)


async def list_photos(
    db: AsyncSession,
    *,
    architect_id: str | None = None,
    session_id: str | None = None,
    selected_room_ids: Sequence[str] | None = None,
) -> list[InspirationPhoto]:
    """Active photos, newest first.

    With ``session_id``: every photo tied to that session (client uploads).
    Otherwise the architect's curated photos, narrowed to ``selected_room_ids``
    when given (unassociated photos always pass the filter).
    """
    stmt = (
        select(InspirationPhoto)
        .where(InspirationPhoto.active.is_(True))
        .options(selectinload(InspirationPhoto.room_types))
        .order_by(InspirationPhoto.created_at.desc())
    )
    if session_id is not None:
        stmt = stmt.where(InspirationPhoto.session_id == session_id)
        if architect_id is not None:
            stmt = stmt.where(InspirationPhoto.architect_id == architect_id)
        return list((await db.scalars(stmt)).all())

    if architect_id is None:
        raise InvalidArgumentError("architectId or sessionId is required")
    stmt = stmt.where(
        InspirationPhoto.architect_id == architect_id,
        InspirationPhoto.is_client_upload.is_(False),
    )
    if selected_room_ids is not None:
        has_rooms = exists().where(photo_room_types.c.photo_id == InspirationPhoto.id)
        matches = exists().where(
            photo_room_types.c.photo_id == InspirationPhoto.id,
            photo_room_types.c.room_type_id.in_(list(selected_room_ids)),
        )
        stmt = stmt.where(or_(~has_rooms, matches))
    return list((await db.scalars(stmt)).all())


async def create_photo(
    db: AsyncSession,
    *,
    architect_id: str | None,
    image_url: str,
    title: str | None = None,
    description: str | None = None,
    tags: list[str] | None = None,
    room_type_ids: list[str] | None = None,
    session_id: str | None = None,
    is_client_upload: bool = False,
) -> InspirationPhoto:
    """Create a curated photo (``architect_id`` set) or a client upload.

    A client upload needs ``session_id``; its architect is the session's.
    """
    if session_id is not None:
        session = await db.get(ClientSession, session_id)
        if session is None or (architect_id is not None and session.architect_id != architect_id):
            raise NotFoundError("Session not found")
        architect_id = session.architect_id
    elif is_client_upload:
        raise InvalidArgumentError("A client upload requires sessionId")
    if architect_id is None:
        raise InvalidArgumentError("Curated photos require an authenticated architect")

    photo = InspirationPhoto(
        architect_id=architect_id,
        session_id=session_id,
        image_url=image_url,
        title=title,
        description=description,
        tags=list(tags) if tags else None,
        is_client_upload=is_client_upload,
        active=True,
        room_types=await _resolve_room_types(db, architect_id, room_type_ids or []),
    )
    db.add(photo)
    await db.commit()
    logger.info(
        "photo_created",
        photo_id=photo.id,
        architect_id=architect_id,
        session_id=session_id,
        is_client_upload=is_client_upload,
        room_count=len(photo.room_types),
    )
    return photo


async def _get_owned_photo(db: AsyncSession, architect_id: str, photo_id: str) -> InspirationPhoto:
    photo = await db.scalar(
        select(InspirationPhoto)
        .where(InspirationPhoto.id == photo_id, InspirationPhoto.architect_id == architect_id)
        .options(selectinload(InspirationPhoto.room_types))
    )
    if photo is None:
        raise NotFoundError(_PHOTO_NOT_FOUND)
    return photo


async def update_photo(
    db: AsyncSession, architect_id: str, photo_id: str, fields: dict[str, Any]
) -> InspirationPhoto:
    photo = await _get_owned_photo(db, architect_id, photo_id)

    if fields.get("image_url"):
        photo.image_url = fields["image_url"]
    for key in ("title", "description"):
        if key in fields:
            setattr(photo, key, fields[key])
    if "tags" in fields:
        photo.tags = list(fields["tags"]) if fields["tags"] else None
    if "room_type_ids" in fields:
        photo.room_types = await _resolve_room_types(
            db, architect_id, fields["room_type_ids"] or []
        )
    if fields.get("active") is not None:
        photo.active = fields["active"]

    await db.commit()
    logger.info("photo_updated", photo_id=photo.id, fields=sorted(fields))
    return photo


async def soft_delete_photo(db: AsyncSession, architect_id: str, photo_id: str) -> InspirationPhoto:
    photo = await _get_owned_photo(db, architect_id, photo_id)
    photo.active = False
    await db.commit()
    logger.info("photo_deactivated", photo_id=photo.id)
    return photo
