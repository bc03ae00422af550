"""Architect accounts: registration, credential checks and bearer tokens."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from werkzeug.security import check_password_hash, generate_password_hash

from archimatch.config import settings
from archimatch.errors import ConflictError, UnauthorizedError
from archimatch.models.db import Architect

logger = structlog.get_logger()

_TOKEN_ISSUER = "archimatch"
_BAD_CREDENTIALS = "Invalid email or password"


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return check_password_hash(password_hash, password)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def issue_token(architect: Architect) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": architect.id,
        "email": architect.email,
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_ttl_minutes),
        "iss": _TOKEN_ISSUER,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> str:
    """Return the architect id carried by a valid token."""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            issuer=_TOKEN_ISSUER,
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise UnauthorizedError("Token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise UnauthorizedError("Invalid token") from exc
    return str(payload["sub"])


async def register_architect(
    db: AsyncSession,
    *,
    email: str,
    password: str,
    name: str,
    company: str | None = None,
) -> Architect:
    email = _normalize_email(email)
    existing = await db.scalar(select(Architect).where(Architect.email == email))
    if existing is not None:
        raise ConflictError("An architect with this email already exists")

    architect = Architect(
        email=email,
        password_hash=hash_password(password),
        name=name.strip(),
        company=company,
    )
    db.add(architect)
    try:
        await db.commit()
    except IntegrityError as exc:
        # Concurrent registration with the same email.
        await db.rollback()
        raise ConflictError("An architect with this email already exists") from exc
    logger.info("architect_registered", architect_id=architect.id)
    return architect


async def authenticate(db: AsyncSession, *, email: str, password: str) -> Architect:
    architect = await db.scalar(
        select(Architect).where(Architect.email == _normalize_email(email))
    )
    # Same message for unknown email and wrong password.
    if architect is None or not verify_password(password, architect.password_hash):
        logger.info("architect_login_failed")
        raise UnauthorizedError(_BAD_CREDENTIALS)
    logger.info("architect_logged_in", architect_id=architect.id)
    return architect


async def get_architect(db: AsyncSession, architect_id: str) -> Architect | None:
    return await db.get(Architect, architect_id)
