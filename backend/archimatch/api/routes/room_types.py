"""Room type and question configuration endpoints.

Writes require the architect's bearer token. Reads are open so the client
wizard can load an architect's rooms by ``architectId``.
"""

from typing import Annotated

from fastapi import APIRouter, Query

from archimatch.api.deps import CurrentArchitect, DbSession, OptionalArchitect, resolve_architect_id
from archimatch.models.contracts import (
    ErrorResponse,
    QuestionCreateRequest,
    QuestionOut,
    QuestionUpdateRequest,
    QuestionWithRoomOut,
    RoomTypeCreateRequest,
    RoomTypeOut,
    RoomTypeUpdateRequest,
)
from archimatch.services import rooms

router = APIRouter(tags=["configuration"])

_WRITE_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


# --- Room types ---


@router.get(
    "/room-types",
    response_model=list[RoomTypeOut],
    responses={400: {"model": ErrorResponse}},
)
async def list_room_types(
    db: DbSession,
    architect: OptionalArchitect,
    architect_id: Annotated[str | None, Query(alias="architectId")] = None,
    include_children: Annotated[bool, Query(alias="includeChildren")] = False,
) -> list[RoomTypeOut]:
    """Active room types in display order, optionally nested under their categories."""
    architect_id = resolve_architect_id(architect, architect_id)
    rows = await rooms.list_room_types(db, architect_id, include_children=include_children)
    return [RoomTypeOut.from_row(row, include_children=include_children) for row in rows]


@router.post("/room-types", status_code=201, response_model=RoomTypeOut, responses=_WRITE_ERRORS)
async def create_room_type(
    body: RoomTypeCreateRequest, db: DbSession, architect: CurrentArchitect
) -> RoomTypeOut:
    room = await rooms.create_room_type(
        db,
        architect.id,
        name=body.name,
        display_order=body.display_order,
        parent_id=body.parent_id,
    )
    return RoomTypeOut.from_row(room)


@router.put("/room-types/{room_type_id}", response_model=RoomTypeOut, responses=_WRITE_ERRORS)
async def update_room_type(
    room_type_id: str, body: RoomTypeUpdateRequest, db: DbSession, architect: CurrentArchitect
) -> RoomTypeOut:
    room = await rooms.update_room_type(
        db, architect.id, room_type_id, body.model_dump(exclude_unset=True)
    )
    return RoomTypeOut.from_row(room)


@router.delete("/room-types/{room_type_id}", response_model=RoomTypeOut, responses=_WRITE_ERRORS)
async def delete_room_type(
    room_type_id: str, db: DbSession, architect: CurrentArchitect
) -> RoomTypeOut:
    """Soft delete: the room type is deactivated, not removed."""
    room = await rooms.soft_delete_room_type(db, architect.id, room_type_id)
    return RoomTypeOut.from_row(room)


# --- Questions ---


@router.get(
    "/questions",
    response_model=list[QuestionWithRoomOut],
    responses={400: {"model": ErrorResponse}},
)
async def list_questions(
    db: DbSession,
    architect: OptionalArchitect,
    room_type_id: Annotated[str | None, Query(alias="roomTypeId")] = None,
) -> list[QuestionWithRoomOut]:
    rows = await rooms.list_questions(
        db,
        room_type_id=room_type_id,
        architect_id=architect.id if architect is not None else None,
    )
    return [QuestionWithRoomOut.model_validate(row) for row in rows]


@router.post("/questions", status_code=201, response_model=QuestionOut, responses=_WRITE_ERRORS)
async def create_question(
    body: QuestionCreateRequest, db: DbSession, architect: CurrentArchitect
) -> QuestionOut:
    question = await rooms.create_question(
        db,
        architect.id,
        room_type_id=body.room_type_id,
        question_text=body.question_text,
        question_type=body.question_type,
        options=body.options,
        required=body.required,
        display_order=body.display_order,
    )
    return QuestionOut.model_validate(question)


@router.put("/questions/{question_id}", response_model=QuestionOut, responses=_WRITE_ERRORS)
async def update_question(
    question_id: str, body: QuestionUpdateRequest, db: DbSession, architect: CurrentArchitect
) -> QuestionOut:
    question = await rooms.update_question(
        db, architect.id, question_id, body.model_dump(exclude_unset=True)
    )
    return QuestionOut.model_validate(question)


@router.delete("/questions/{question_id}", response_model=QuestionOut, responses=_WRITE_ERRORS)
async def delete_question(
    question_id: str, db: DbSession, architect: CurrentArchitect
) -> QuestionOut:
    question = await rooms.soft_delete_question(db, architect.id, question_id)
    return QuestionOut.model_validate(question)
