"""Bootstrap an installation: the admin architect and a starter catalogue.

Run with ``python -m archimatch.seed`` (or the ``archimatch-seed`` script).
Safe to re-run: an existing admin only gets its password reset, and rooms
or questions that already exist for the architect are left alone.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import dataclass

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from archimatch.config import settings
from archimatch.database import create_tables, dispose_engine, get_sessionmaker
from archimatch.logging import configure_logging
from archimatch.models.db import Architect
from archimatch.services import auth, rooms

logger = structlog.get_logger()

DEFAULT_CATALOGUE: list[tuple[str, list[str]]] = [
    (
        "🏡 Espaces de vie",
        [
            "Entrée / hall",
            "Salon",
            "Séjour",
            "Salle à manger",
            "Cuisine ouverte",
            "Cuisine fermée",
            "Coin repas",
            "Véranda / jardin d'hiver",
            "Pièce de réception",
            "Salle de jeux / salle TV",
            "Bibliothèque",
            "Home cinéma",
        ],
    ),
    (
        "🛏️ Espaces nuit",
        [
            "Chambre principale",
            "Suite parentale (avec salle d'eau / dressing)",
            "Chambre d'amis",
            "Chambre d'enfant",
            "Chambre d'adolescent",
            "Dortoir (gîte / maison secondaire)",
            "Mezzanine / coin nuit",
        ],
    ),
    (
        "🛁 Espaces d'eau",
        [
            "Salle de bains principale",
            "Salle d'eau",
            "Douche d'appoint",
            "WC indépendant",
            "Buanderie / lingerie",
            "Espace bien-être (sauna, hammam, jacuzzi)",
        ],
    ),
    (
        "🧑‍💼 Espaces de travail / techniques",
        [
            "Bureau principal",
            "Bureau d'appoint",
            "Atelier (créatif, bricolage, peinture…)",
            "Studio musique / son / vidéo",
            "Salle informatique / gaming room",
            "Local technique (chaufferie, PAC, ballon, etc.)",
        ],
    ),
    (
        "🍷 Espaces de stockage et annexes",
        [
            "Cellier / garde-manger",
            "Arrière-cuisine",
            "Cave à vin",
            "Cave alimentaire",
            "Grenier / combles",
            "Dressing indépendant",
            "Placards sous escalier",
            "Réserve / débarras",
            "Local jardin / abri",
        ],
    ),
    (
        "🚗 Espaces extérieurs",
        [
            "Terrasse",
            "Balcon",
            "Patio / cour intérieure",
            "Jardin",
            "Cuisine d'extérieur",
            "Abri de jardin",
            "Piscine",
            "Pool house",
            "Spa extérieur",
            "Carport",
            "Garage",
            "Abri à vélos / local technique extérieur",
        ],
    ),
    (
        "🏘️ Espaces spécifiques",
        [
            "Studio indépendant (location, ado, télétravail)",
            "Chambre d'hôtes / gîte",
            "Atelier professionnel / boutique",
            "Salle de sport / fitness",
            "Salle de danse / yoga",
            "Salle de musique",
            "Salle de réception / banquet",
            "Galerie d'art / exposition",
            "Orangerie / serre",
            "Chapelle / espace spirituel",
            "Chambre de service",
            "Logement du personnel",
        ],
    ),
]

# room name -> (text, type, options, required)
DEFAULT_QUESTIONS: dict[str, list[tuple[str, str, list[str] | None, bool]]] = {
    "Salon": [
        (
            "Quelle ambiance souhaitez-vous pour votre salon ?",
            "select",
            [
                "Cosy et chaleureux",
                "Moderne et épuré",
                "Classique et élégant",
                "Industriel",
                "Scandinave",
            ],
            True,
        ),
        ("Combien de personnes doivent pouvoir s'asseoir confortablement ?", "number", None, False),
        (
            "Fonctions principales du salon",
            "multiselect",
            ["Détente", "Réception d'invités", "Lecture", "Regarder la TV", "Jeux en famille"],
            True,
        ),
    ],
    "Cuisine ouverte": [
        (
            "Quel type d'aménagement préférez-vous ?",
            "select",
            ["Linéaire", "En L", "En U", "Avec îlot central", "En parallèle"],
            True,
        ),
        (
            "Style de cuisine souhaité",
            "select",
            ["Moderne", "Traditionnelle", "Campagnarde", "Industrielle", "Contemporaine"],
            True,
        ),
    ],
    "Chambre principale": [
        (
            "Ambiance recherchée",
            "select",
            ["Zen et apaisante", "Lumineuse", "Cocooning", "Minimaliste", "Romantique"],
            True,
        ),
    ],
}


@dataclass
class SeedSummary:
    rooms_created: int = 0
    questions_created: int = 0


async def ensure_admin(
    db: AsyncSession,
    *,
    email: str,
    password: str,
    name: str,
    company: str | None = None,
) -> tuple[Architect, bool]:
    """Create the admin architect, or reset its password if the email exists.

    Returns the architect and whether it was created.
    """
    existing = await db.scalar(
        select(Architect).where(Architect.email == email.strip().lower())
    )
    if existing is None:
        architect = await auth.register_architect(
            db, email=email, password=password, name=name, company=company
        )
        return architect, True

    existing.password_hash = auth.hash_password(password)
    await db.commit()
    logger.info("architect_password_reset", architect_id=existing.id)
    return existing, False


async def seed_catalogue(db: AsyncSession, architect_id: str) -> SeedSummary:
    """Insert the default categories, rooms and questions that are missing."""
    summary = SeedSummary()
    by_name = {room.name: room for room in await rooms.list_room_types(db, architect_id)}

    for category_order, (category_name, children) in enumerate(DEFAULT_CATALOGUE):
        category = by_name.get(category_name)
        if category is None:
            category = await rooms.create_room_type(
                db, architect_id, name=category_name, display_order=category_order
            )
            by_name[category_name] = category
            summary.rooms_created += 1

        for child_order, child_name in enumerate(children):
            if child_name in by_name:
                continue
            by_name[child_name] = await rooms.create_room_type(
                db,
                architect_id,
                name=child_name,
                display_order=child_order,
                parent_id=category.id,
            )
            summary.rooms_created += 1

    for room_name, questions in DEFAULT_QUESTIONS.items():
        room = by_name[room_name]
        asked = {q.question_text for q in await rooms.list_questions(db, room_type_id=room.id)}
        for order, (text, question_type, options, required) in enumerate(questions):
            if text in asked:
                continue
            await rooms.create_question(
                db,
                architect_id,
                room_type_id=room.id,
                question_text=text,
                question_type=question_type,
                options=options,
                required=required,
                display_order=order,
            )
            summary.questions_created += 1

    logger.info(
        "catalogue_seeded",
        architect_id=architect_id,
        rooms_created=summary.rooms_created,
        questions_created=summary.questions_created,
    )
    return summary


async def run_seed(args: argparse.Namespace) -> None:
    try:
        if args.create_tables:
            await create_tables()
        async with get_sessionmaker()() as db:
            architect, created = await ensure_admin(
                db,
                email=args.email,
                password=args.password,
                name=args.name,
                company=args.company,
            )
            logger.info("admin_ready", architect_id=architect.id, created=created)
            if not args.admin_only:
                await seed_catalogue(db, architect.id)
    finally:
        await dispose_engine()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="archimatch-seed",
        description="Create or reset the admin architect and seed the default catalogue.",
    )
    parser.add_argument("--email", default=settings.admin_email)
    parser.add_argument(
        "--password",
        default=settings.admin_password,
        help="defaults to ADMIN_PASSWORD",
    )
    parser.add_argument("--name", default=settings.admin_name)
    parser.add_argument("--company", default=settings.admin_company or None)
    parser.add_argument(
        "--admin-only",
        action="store_true",
        help="only create the account or reset its password",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="create missing tables first (local SQLite setups)",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Entrypoint for `python -m archimatch.seed`."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not args.password:
        parser.error("a password is required (--password or ADMIN_PASSWORD)")

    configure_logging()
    try:
        asyncio.run(run_seed(args))
    except Exception:
        logger.exception("seed_failed")
        sys.exit(1)


if __name__ == "__main__":
    main()
