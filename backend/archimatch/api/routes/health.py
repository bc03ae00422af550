"""Health check endpoint with database and storage probes.

A dependency reporting "disconnected" does not change the overall status;
the endpoint always answers 200 so load balancers keep routing.
"""

from __future__ import annotations

import asyncio

import structlog
from fastapi import APIRouter
from sqlalchemy import text

from archimatch.config import settings
from archimatch.database import get_engine
from archimatch.utils import storage

logger = structlog.get_logger()

router = APIRouter(tags=["health"])

_CHECK_TIMEOUT = 3.0  # seconds per probe


async def _check_database() -> str:
    async def _ping() -> None:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))

    try:
        await asyncio.wait_for(_ping(), timeout=_CHECK_TIMEOUT)
        return "connected"
    except Exception as exc:
        logger.debug("health_database_failed", error=str(exc))
        return "disconnected"


async def _check_storage() -> str:
    """Bucket reachability, or "local" when uploads go to disk."""
    if not storage.storage_configured():
        return "local"
    try:
        await asyncio.wait_for(asyncio.to_thread(storage.check_bucket), timeout=_CHECK_TIMEOUT)
        return "connected"
    except Exception as exc:
        logger.debug("health_storage_failed", error=str(exc))
        return "disconnected"


@router.get("/health")
async def health_check() -> dict:
    database, storage_status = await asyncio.gather(_check_database(), _check_storage())
    return {
        "status": "ok",
        "version": "0.1.0",
        "environment": settings.environment,
        "database": database,
        "storage": storage_status,
    }
