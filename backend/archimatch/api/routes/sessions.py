"""Client session endpoints: the intake wizard and its admin views.

The wizard is anonymous: a client holds only the session id returned by
``POST /client-sessions``. Listing, sweeping, abandoning and deleting
sessions belong to the owning architect and require the bearer token.
"""

from typing import Annotated

from fastapi import APIRouter, Query, Response
from fastapi.responses import HTMLResponse

from archimatch.api.deps import CurrentArchitect, DbSession
from archimatch.models.contracts import (
    AnswerOut,
    AnswerUpsertRequest,
    ErrorResponse,
    GeneralInfoRequest,
    InteractionDetailOut,
    InteractionUpsertRequest,
    RoomSelectionRequest,
    SessionCreateRequest,
    SessionDetailOut,
    SessionOut,
    StatusUpdateResponse,
    interaction_detail,
)
from archimatch.services import report, sessions

router = APIRouter(tags=["sessions"])

_NOT_FOUND = {404: {"model": ErrorResponse}}
_ADMIN_ERRORS = {401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}


# --- Session lifecycle ---


@router.post(
    "/client-sessions",
    status_code=201,
    response_model=SessionOut,
    responses=_NOT_FOUND,
)
async def create_session(body: SessionCreateRequest, db: DbSession) -> SessionOut:
    """Start a wizard session for the given architect."""
    session = await sessions.create_session(
        db,
        architect_id=body.architect_id,
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
    )
    return SessionOut.from_row(session)


@router.get(
    "/client-sessions",
    response_model=list[SessionDetailOut],
    responses={401: {"model": ErrorResponse}},
)
async def list_sessions(db: DbSession, architect: CurrentArchitect) -> list[SessionDetailOut]:
    rows = await sessions.list_sessions(db, architect.id)
    return [SessionDetailOut.from_row(row) for row in rows]


@router.post(
    "/client-sessions/update-status",
    response_model=StatusUpdateResponse,
    responses={401: {"model": ErrorResponse}},
)
async def update_statuses(db: DbSession, architect: CurrentArchitect) -> StatusUpdateResponse:
    """Mark every in-progress session that already has answers as completed."""
    count = await sessions.mark_answered_sessions_completed(db, architect.id)
    return StatusUpdateResponse(count=count)


@router.get("/client-sessions/{session_id}", response_model=SessionDetailOut, responses=_NOT_FOUND)
async def get_session(session_id: str, db: DbSession) -> SessionDetailOut:
    session = await sessions.get_session(db, session_id)
    return SessionDetailOut.from_row(session)


@router.delete("/client-sessions/{session_id}", status_code=204, responses=_ADMIN_ERRORS)
async def delete_session(session_id: str, db: DbSession, architect: CurrentArchitect) -> Response:
    await sessions.delete_session(db, architect.id, session_id)
    return Response(status_code=204)


@router.put(
    "/client-sessions/{session_id}/general-info",
    response_model=SessionOut,
    responses=_NOT_FOUND,
)
async def update_general_info(
    session_id: str, body: GeneralInfoRequest, db: DbSession
) -> SessionOut:
    """Partial update; keys absent from the body are left untouched."""
    session = await sessions.update_general_info(
        db, session_id, body.model_dump(exclude_unset=True)
    )
    return SessionOut.from_row(session)


@router.put(
    "/client-sessions/{session_id}/room-selection",
    response_model=SessionOut,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def set_room_selection(
    session_id: str, body: RoomSelectionRequest, db: DbSession
) -> SessionOut:
    session = await sessions.set_room_selection(db, session_id, body.selected_room_types)
    return SessionOut.from_row(session)


@router.patch(
    "/client-sessions/{session_id}/complete",
    response_model=SessionOut,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def complete_session(session_id: str, db: DbSession) -> SessionOut:
    session = await sessions.complete_session(db, session_id)
    return SessionOut.from_row(session)


@router.patch(
    "/client-sessions/{session_id}/abandon",
    response_model=SessionOut,
    responses={**_ADMIN_ERRORS, 409: {"model": ErrorResponse}},
)
async def abandon_session(
    session_id: str, db: DbSession, architect: CurrentArchitect
) -> SessionOut:
    session = await sessions.abandon_session(db, architect.id, session_id)
    return SessionOut.from_row(session)


@router.get(
    "/client-sessions/{session_id}/pdf",
    response_class=HTMLResponse,
    responses=_NOT_FOUND,
)
async def session_report(session_id: str, db: DbSession) -> HTMLResponse:
    """Printable report of the session, served as a downloadable HTML document."""
    filename, html = await report.render_session_report(db, session_id)
    return HTMLResponse(
        content=html,
        headers={"Content-Disposition": report.content_disposition(filename)},
    )


# --- Answers & photo interactions ---


@router.post(
    "/client-answers",
    response_model=AnswerOut,
    responses={404: {"model": ErrorResponse}},
)
async def upsert_answer(body: AnswerUpsertRequest, db: DbSession) -> AnswerOut:
    """Create or replace the session's answer to a question."""
    answer = await sessions.upsert_answer(
        db,
        session_id=body.session_id,
        question_id=body.question_id,
        answer_value=body.answer_value,
    )
    return AnswerOut.model_validate(answer)


@router.post(
    "/photo-interactions",
    response_model=InteractionDetailOut,
    responses={404: {"model": ErrorResponse}},
)
async def upsert_photo_interaction(
    body: InteractionUpsertRequest, db: DbSession
) -> InteractionDetailOut:
    annotations = None
    if body.annotations is not None:
        annotations = [a.model_dump() for a in body.annotations]
    interaction = await sessions.upsert_photo_interaction(
        db,
        session_id=body.session_id,
        photo_id=body.photo_id,
        action=body.action,
        annotations=annotations,
    )
    return interaction_detail(interaction)


@router.get(
    "/photo-interactions",
    response_model=list[InteractionDetailOut],
    responses={404: {"model": ErrorResponse}},
)
async def list_photo_interactions(
    db: DbSession,
    session_id: Annotated[str, Query(alias="sessionId")],
) -> list[InteractionDetailOut]:
    rows = await sessions.list_photo_interactions(db, session_id)
    return [interaction_detail(row) for row in rows]
