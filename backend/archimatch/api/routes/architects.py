"""Architect account endpoints: registration, login and profile."""

from fastapi import APIRouter

from archimatch.api.deps import CurrentArchitect, DbSession
from archimatch.models.contracts import (
    ArchitectOut,
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
)
from archimatch.services import auth

router = APIRouter(prefix="/architects", tags=["architects"])


@router.post(
    "/register",
    status_code=201,
    response_model=ArchitectOut,
    responses={409: {"model": ErrorResponse}},
)
async def register(body: RegisterRequest, db: DbSession) -> ArchitectOut:
    architect = await auth.register_architect(
        db,
        email=body.email,
        password=body.password,
        name=body.name,
        company=body.company,
    )
    return ArchitectOut.model_validate(architect)


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"model": ErrorResponse}},
)
async def login(body: LoginRequest, db: DbSession) -> LoginResponse:
    """Check credentials; returns the profile (never the hash) and a bearer token."""
    architect = await auth.authenticate(db, email=body.email, password=body.password)
    return LoginResponse(
        architect=ArchitectOut.model_validate(architect),
        access_token=auth.issue_token(architect),
    )


@router.get("/me", response_model=ArchitectOut, responses={401: {"model": ErrorResponse}})
async def me(architect: CurrentArchitect) -> ArchitectOut:
    return ArchitectOut.model_validate(architect)
