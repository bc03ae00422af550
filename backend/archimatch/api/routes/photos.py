"""Inspiration photo endpoints.

Curated photos are managed with the architect's token. The client wizard
lists them anonymously by ``architectId`` and registers its own uploads by
``sessionId``.
"""

from __future__ import annotations

import json
from typing import Annotated

from fastapi import APIRouter, Query

from archimatch.api.deps import CurrentArchitect, DbSession, OptionalArchitect, resolve_architect_id
from archimatch.errors import InvalidArgumentError, UnauthorizedError
from archimatch.models.contracts import (
    ErrorResponse,
    PhotoCreateRequest,
    PhotoOut,
    PhotoUpdateRequest,
)
from archimatch.services import photos

router = APIRouter(prefix="/inspiration-photos", tags=["photos"])

_WRITE_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


def parse_room_ids(raw: str | None) -> list[str] | None:
    """Accept a JSON array (what the wizard sends) or a comma-separated list."""
    if raw is None:
        return None
    raw = raw.strip()
    if raw.startswith("["):
        try:
            values = json.loads(raw)
        except ValueError as exc:
            raise InvalidArgumentError("selectedRoomIds is not valid JSON") from exc
        if not isinstance(values, list):
            raise InvalidArgumentError("selectedRoomIds must be an array")
        return [str(v) for v in values]
    return [part.strip() for part in raw.split(",") if part.strip()]


@router.get("", response_model=list[PhotoOut], responses={400: {"model": ErrorResponse}})
async def list_photos(
    db: DbSession,
    architect: OptionalArchitect,
    architect_id: Annotated[str | None, Query(alias="architectId")] = None,
    session_id: Annotated[str | None, Query(alias="sessionId")] = None,
    selected_room_ids: Annotated[str | None, Query(alias="selectedRoomIds")] = None,
) -> list[PhotoOut]:
    if session_id is not None:
        rows = await photos.list_photos(
            db,
            session_id=session_id,
            architect_id=architect.id if architect is not None else None,
        )
    else:
        rows = await photos.list_photos(
            db,
            architect_id=resolve_architect_id(architect, architect_id),
            selected_room_ids=parse_room_ids(selected_room_ids),
        )
    return [PhotoOut.from_row(row) for row in rows]


@router.post("", status_code=201, response_model=PhotoOut, responses=_WRITE_ERRORS)
async def create_photo(
    body: PhotoCreateRequest, db: DbSession, architect: OptionalArchitect
) -> PhotoOut:
    """Curated photo (bearer token) or a client's own upload (``sessionId``)."""
    if architect is None and body.session_id is None:
        raise UnauthorizedError("Authentication required")
    photo = await photos.create_photo(
        db,
        architect_id=architect.id if architect is not None else None,
        image_url=body.image_url,
        title=body.title,
        description=body.description,
        tags=body.tags,
        room_type_ids=body.room_type_ids,
        session_id=body.session_id,
        is_client_upload=body.is_client_upload or architect is None,
    )
    return PhotoOut.from_row(photo)


@router.put("/{photo_id}", response_model=PhotoOut, responses=_WRITE_ERRORS)
async def update_photo(
    photo_id: str, body: PhotoUpdateRequest, db: DbSession, architect: CurrentArchitect
) -> PhotoOut:
    photo = await photos.update_photo(
        db, architect.id, photo_id, body.model_dump(exclude_unset=True)
    )
    return PhotoOut.from_row(photo)


@router.delete("/{photo_id}", response_model=PhotoOut, responses=_WRITE_ERRORS)
async def delete_photo(photo_id: str, db: DbSession, architect: CurrentArchitect) -> PhotoOut:
    photo = await photos.soft_delete_photo(db, architect.id, photo_id)
    return PhotoOut.from_row(photo)
