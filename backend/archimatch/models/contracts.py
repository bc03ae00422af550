"""ArchiMatch API contracts.

Request and response bodies use camelCase keys on the wire (the wizard and
admin front-end were written against them); Python attributes stay
snake_case. Response models are built from ORM rows whose relationships
were eager-loaded by the service layer. Never validate a row whose
relationships may still be lazy.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from archimatch.models.db import ClientSession, InspirationPhoto, RoomType


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ErrorResponse(BaseModel):
    error: str
    message: str
    retryable: bool = False


# === Architects ===


class RegisterRequest(ApiModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=255)
    company: str | None = None


class LoginRequest(ApiModel):
    email: str
    password: str


class ArchitectOut(ApiModel):
    id: str
    email: str
    name: str
    company: str | None = None
    created_at: datetime | None = None


class ArchitectSummary(ApiModel):
    name: str
    company: str | None = None


class LoginResponse(ApiModel):
    architect: ArchitectOut
    access_token: str
    token_type: str = "bearer"


# === Room types & questions ===


class QuestionOut(ApiModel):
    id: str
    room_type_id: str
    question_text: str
    question_type: str
    options: list[Any] | None = None
    required: bool
    display_order: int
    active: bool
    created_at: datetime | None = None


class RoomTypeRef(ApiModel):
    id: str
    name: str
    display_order: int = 0
    parent_id: str | None = None


class QuestionWithRoomOut(QuestionOut):
    room_type: RoomTypeRef | None = None


class RoomTypeOut(ApiModel):
    id: str
    architect_id: str
    name: str
    display_order: int
    parent_id: str | None = None
    active: bool
    questions: list[QuestionOut] = []
    children: list[RoomTypeOut] | None = None

    @classmethod
    def from_row(cls, room: RoomType, *, include_children: bool = False) -> RoomTypeOut:
        """Build from a row with questions (and children) loaded; inactive rows dropped."""
        children = None
        if include_children:
            children = [
                cls.from_row(child) for child in room.children if child.active
            ]
        return cls(
            id=room.id,
            architect_id=room.architect_id,
            name=room.name,
            display_order=room.display_order,
            parent_id=room.parent_id,
            active=room.active,
            questions=[QuestionOut.model_validate(q) for q in room.questions if q.active],
            children=children,
        )


class RoomTypeCreateRequest(ApiModel):
    name: str
    display_order: int = 0
    parent_id: str | None = None


class RoomTypeUpdateRequest(ApiModel):
    name: str | None = None
    display_order: int | None = None
    active: bool | None = None


class QuestionCreateRequest(ApiModel):
    room_type_id: str
    question_text: str | None = Field(
        default=None, validation_alias=AliasChoices("questionText", "question_text", "text")
    )
    question_type: str | None = Field(
        default=None, validation_alias=AliasChoices("questionType", "question_type", "type")
    )
    options: list[str] | None = None
    required: bool = True
    display_order: int = 0


class QuestionUpdateRequest(ApiModel):
    question_text: str | None = Field(
        default=None, validation_alias=AliasChoices("questionText", "question_text", "text")
    )
    question_type: str | None = Field(
        default=None, validation_alias=AliasChoices("questionType", "question_type", "type")
    )
    options: list[str] | None = None
    required: bool | None = None
    display_order: int | None = None
    active: bool | None = None


# === Inspiration photos ===


class PhotoOut(ApiModel):
    id: str
    architect_id: str
    session_id: str | None = None
    image_url: str
    title: str | None = None
    description: str | None = None
    tags: list[str] = []
    room_type_ids: list[str] = []
    active: bool
    is_client_upload: bool
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, photo: InspirationPhoto) -> PhotoOut:
        return cls(
            id=photo.id,
            architect_id=photo.architect_id,
            session_id=photo.session_id,
            image_url=photo.image_url,
            title=photo.title,
            description=photo.description,
            tags=photo.tags or [],
            room_type_ids=photo.room_type_ids,
            active=photo.active,
            is_client_upload=photo.is_client_upload,
            created_at=photo.created_at,
        )


class PhotoCreateRequest(ApiModel):
    image_url: str = Field(min_length=1)
    title: str | None = None
    description: str | None = None
    tags: list[str] | None = None
    room_type_ids: list[str] | None = None
    session_id: str | None = None
    is_client_upload: bool = False


class PhotoUpdateRequest(ApiModel):
    image_url: str | None = None
    title: str | None = None
    description: str | None = None
    tags: list[str] | None = None
    room_type_ids: list[str] | None = None
    active: bool | None = None


# === Client sessions ===


class SessionCreateRequest(ApiModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: str = Field(min_length=1)
    architect_id: str


class GeneralInfoRequest(ApiModel):
    project_type: str | None = None
    housing_type: str | None = None
    housing_type_other: str | None = None
    property_usage: str | None = None
    household_adults: int | None = None
    household_children: int | None = None
    household_grandchildren: int | None = None
    children_ages: str | None = None
    has_animals: bool | None = None
    desired_organization: str | None = None
    organization_comments: str | None = None


class RoomSelectionRequest(ApiModel):
    # Left untyped so a non-array payload reaches the service as InvalidArgument.
    selected_room_types: Any = Field(
        default=None,
        validation_alias=AliasChoices("selectedRoomTypes", "selected_room_types", "roomTypeIds"),
    )


class SessionOut(ApiModel):
    id: str
    architect_id: str
    first_name: str
    last_name: str
    email: str
    status: str
    created_at: datetime | None = None
    completed_at: datetime | None = None
    project_type: str | None = None
    housing_type: str | None = None
    housing_type_other: str | None = None
    property_usage: str | None = None
    household_adults: int | None = None
    household_children: int | None = None
    household_grandchildren: int | None = None
    children_ages: str | None = None
    has_animals: bool | None = None
    desired_organization: str | None = None
    organization_comments: str | None = None
    selected_room_types: list[str] = []

    @classmethod
    def _base_fields(cls, session: ClientSession) -> dict[str, Any]:
        fields = {name: getattr(session, name) for name in SessionOut.model_fields}
        fields["selected_room_types"] = session.selected_room_types or []
        return fields

    @classmethod
    def from_row(cls, session: ClientSession) -> SessionOut:
        return cls(**cls._base_fields(session))


# === Answers & interactions ===


class AnswerUpsertRequest(ApiModel):
    session_id: str
    question_id: str
    answer_value: str | int | float | bool | list[str]


class AnswerOut(ApiModel):
    id: str
    session_id: str
    question_id: str
    answer_value: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AnswerDetailOut(AnswerOut):
    question: QuestionWithRoomOut


class Annotation(ApiModel):
    x: float = Field(ge=0, le=100)
    y: float = Field(ge=0, le=100)
    comment: str = ""


class InteractionUpsertRequest(ApiModel):
    session_id: str
    photo_id: str
    action: Literal["like", "dislike"]
    annotations: list[Annotation] | None = Field(
        default=None, validation_alias=AliasChoices("annotations", "annotationsJson")
    )


class InteractionOut(ApiModel):
    id: str
    session_id: str
    photo_id: str
    action: str
    annotations: list[Annotation] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None


class InteractionDetailOut(InteractionOut):
    photo: PhotoOut


class SessionDetailOut(SessionOut):
    architect: ArchitectSummary | None = None
    answers: list[AnswerDetailOut] = []
    interactions: list[InteractionDetailOut] = []

    @classmethod
    def from_row(cls, session: ClientSession) -> SessionDetailOut:
        """Build from a row loaded by ``services.sessions`` with every relation."""
        return cls(
            **cls._base_fields(session),
            architect=ArchitectSummary.model_validate(session.architect),
            answers=[
                AnswerDetailOut(
                    **AnswerOut.model_validate(answer).model_dump(),
                    question=QuestionWithRoomOut.model_validate(answer.question),
                )
                for answer in session.answers
            ],
            interactions=[interaction_detail(i) for i in session.interactions],
        )


def interaction_detail(interaction: Any) -> InteractionDetailOut:
    return InteractionDetailOut(
        id=interaction.id,
        session_id=interaction.session_id,
        photo_id=interaction.photo_id,
        action=interaction.action,
        annotations=interaction.annotations or [],
        created_at=interaction.created_at,
        updated_at=interaction.updated_at,
        photo=PhotoOut.from_row(interaction.photo),
    )


# === Misc ===


class StatusUpdateResponse(ApiModel):
    count: int


class DashboardStats(ApiModel):
    total_sessions: int
    completed_sessions: int
    total_questions: int
    total_photos: int


class UploadResponse(BaseModel):
    url: str
    filename: str
    size: int
    type: str
