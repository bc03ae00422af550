import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from archimatch.api.routes import (
    architects,
    dashboard,
    health,
    photos,
    room_types,
    sessions,
    uploads,
)
from archimatch.config import settings
from archimatch.database import create_tables, dispose_engine
from archimatch.errors import ArchimatchError
from archimatch.logging import configure_logging
from archimatch.utils import storage

configure_logging()

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.create_tables_on_startup:
        await create_tables()
    logger.info("api_started", environment=settings.environment)
    yield
    await dispose_engine()


app = FastAPI(
    title="ArchiMatch API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url=None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "Content-Disposition"],
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Bind a request ID into the log context and echo it back.

    The admin front-end shows it next to error toasts so a failed call can be
    found in the logs.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


def _error_response(
    request: Request, status_code: int, error: str, message: str, retryable: bool = False
) -> JSONResponse:
    response = JSONResponse(
        status_code=status_code,
        content={"error": error, "message": message, "retryable": retryable},
    )
    response.headers["X-Request-ID"] = getattr(
        request.state, "request_id", request.headers.get("X-Request-ID", "")
    )
    return response


@app.exception_handler(ArchimatchError)
async def domain_exception_handler(request: Request, exc: ArchimatchError) -> JSONResponse:
    logger.info(
        "request_rejected",
        path=request.url.path,
        method=request.method,
        error=exc.code,
        status_code=exc.status_code,
    )
    return _error_response(request, exc.status_code, exc.code, exc.message, exc.retryable)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Flatten FastAPI's ``{"detail": [...]}`` into the ErrorResponse shape."""
    messages = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err["loc"])
        messages.append(f"{loc}: {err['msg']}")
    return _error_response(request, 422, "validation_error", "; ".join(messages))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error_type=type(exc).__name__,
        exc_info=exc,
    )
    return _error_response(
        request, 500, "internal_error", "An unexpected error occurred", retryable=True
    )


app.include_router(health.router)
for module in (architects, room_types, photos, sessions, uploads, dashboard):
    app.include_router(module.router, prefix="/api")

if not storage.storage_configured():
    app.mount(
        storage.LOCAL_URL_PREFIX,
        StaticFiles(directory=settings.upload_dir, check_dir=False),
        name="uploads",
    )
