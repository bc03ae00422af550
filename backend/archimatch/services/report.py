"""Printable HTML report of one client session.

The architect opens it in a browser and prints to PDF; no PDF binary is
produced here. Labels are French, like the rest of the product.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import quote

from jinja2 import Environment, FileSystemLoader, select_autoescape
from sqlalchemy.ext.asyncio import AsyncSession

from archimatch.models.db import ClientAnswer, ClientSession, PhotoInteraction
from archimatch.services.sessions import get_session

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html", "xml"]),
)

_MULTI_VALUE_TYPES = frozenset({"multiselect", "checkbox"})

STATUS_LABELS = {
    "completed": "Terminée",
    "in_progress": "En cours",
    "abandoned": "Abandonnée",
}


@dataclass
class RoomAnswers:
    room_name: str
    answers: list[tuple[str, str]] = field(default_factory=list)


@dataclass
class LikedPhoto:
    image_url: str
    alt: str
    caption: str


def display_answer(raw: str, question_type: str) -> str:
    """Render a stored answer; multi-value answers become a comma-separated list."""
    if question_type in _MULTI_VALUE_TYPES and raw.startswith("["):
        try:
            values = json.loads(raw)
        except ValueError:
            return raw
        if isinstance(values, list):
            return ", ".join(str(v) for v in values)
    return raw


def group_answers(answers: list[ClientAnswer]) -> list[RoomAnswers]:
    """Group by room type name, rooms and questions in display order."""

    def sort_key(answer: ClientAnswer) -> tuple:
        room = answer.question.room_type
        return (room.display_order, room.name, answer.question.display_order)

    groups: dict[str, RoomAnswers] = {}
    for answer in sorted(answers, key=sort_key):
        room_name = answer.question.room_type.name
        group = groups.setdefault(room_name, RoomAnswers(room_name=room_name))
        question = answer.question
        group.answers.append(
            (question.question_text, display_answer(answer.answer_value, question.question_type))
        )
    return list(groups.values())


def liked_photos(interactions: list[PhotoInteraction]) -> list[LikedPhoto]:
    photos = []
    for interaction in interactions:
        if interaction.action != "like":
            continue
        photo = interaction.photo
        caption = photo.title or "Sans titre"
        rooms = [room.name for room in photo.room_types]
        if rooms:
            caption = f"{caption} • {', '.join(rooms)}"
        photos.append(
            LikedPhoto(
                image_url=photo.image_url,
                alt=photo.title or "Image d'inspiration",
                caption=caption,
            )
        )
    return photos


def _fr_date(value: datetime | None) -> str:
    return value.strftime("%d/%m/%Y") if value else "—"


def render_html(session: ClientSession, *, generated_at: datetime | None = None) -> str:
    generated_at = generated_at or datetime.now(timezone.utc)
    groups = group_answers(session.answers)
    return _env.get_template("session_report.html").render(
        session=session,
        architect=session.architect,
        status_label=STATUS_LABELS.get(session.status, session.status),
        created_on=_fr_date(session.created_at),
        answer_count=len(session.answers),
        groups=groups,
        liked=liked_photos(session.interactions),
        generated_on=generated_at.strftime("%d/%m/%Y"),
        generated_time=generated_at.strftime("%H:%M:%S"),
    )


def report_filename(session: ClientSession) -> str:
    return f"session-{session.first_name}-{session.last_name}.html"


def content_disposition(filename: str) -> str:
    """Inline disposition with an ASCII fallback; client names are often accented."""
    ascii_name = filename.encode("ascii", "replace").decode("ascii").replace("?", "_")
    ascii_name = ascii_name.replace('"', "")
    return f"inline; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"


async def render_session_report(db: AsyncSession, session_id: str) -> tuple[str, str]:
    """Return ``(filename, html)`` for the session; NotFound if it does not exist."""
    session = await get_session(db, session_id)
    return report_filename(session), render_html(session)
