"""Shared route dependencies: DB session and the authenticated architect.

Tenant-scoped admin routes take the architect from the bearer token, never
from a request field. Wizard routes stay anonymous; there the session id is
the client's handle.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from archimatch.database import get_db
from archimatch.errors import InvalidArgumentError, UnauthorizedError
from archimatch.models.db import Architect
from archimatch.services.auth import decode_token, get_architect

_bearer = HTTPBearer(auto_error=False)

DbSession = Annotated[AsyncSession, Depends(get_db)]


async def optional_architect(
    db: DbSession,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer)],
) -> Architect | None:
    if credentials is None:
        return None
    architect = await get_architect(db, decode_token(credentials.credentials))
    if architect is None:
        raise UnauthorizedError("Unknown architect")
    return architect


async def current_architect(
    architect: Annotated[Architect | None, Depends(optional_architect)],
) -> Architect:
    if architect is None:
        raise UnauthorizedError("Authentication required")
    return architect


OptionalArchitect = Annotated[Architect | None, Depends(optional_architect)]
CurrentArchitect = Annotated[Architect, Depends(current_architect)]


def resolve_architect_id(architect: Architect | None, architect_id: str | None) -> str:
    """Authenticated callers always act as themselves; anonymous reads name the architect."""
    if architect is not None:
        return architect.id
    if not architect_id:
        raise InvalidArgumentError("architectId is required")
    return architect_id
