"""Admin dashboard counters."""

from fastapi import APIRouter

from archimatch.api.deps import CurrentArchitect, DbSession
from archimatch.models.contracts import DashboardStats, ErrorResponse
from archimatch.services import sessions

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=DashboardStats, responses={401: {"model": ErrorResponse}})
async def stats(db: DbSession, architect: CurrentArchitect) -> DashboardStats:
    return DashboardStats(**await sessions.dashboard_stats(db, architect.id))
