"""Image upload endpoint used by the wizard and the admin photo form."""

import asyncio

import structlog
from fastapi import APIRouter, UploadFile

from archimatch.config import settings
from archimatch.errors import InvalidArgumentError
from archimatch.models.contracts import ErrorResponse, UploadResponse
from archimatch.utils import storage

logger = structlog.get_logger()

router = APIRouter(tags=["uploads"])

_CHUNK_BYTES = 65_536


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def upload(file: UploadFile) -> UploadResponse:
    """Store one image and return its public URL.

    A batch on the client side is a sequence of these calls; files already
    stored stay stored when a later one fails.
    """
    # Reject by declared type before reading the body
    storage.validate_image(file.content_type, 0)

    chunks: list[bytes] = []
    total = 0
    while chunk := await file.read(_CHUNK_BYTES):
        total += len(chunk)
        if total > settings.max_upload_bytes:
            mb = settings.max_upload_bytes // (1024 * 1024)
            raise InvalidArgumentError(f"The file is too large (max {mb} MB)")
        chunks.append(chunk)

    stored = await asyncio.to_thread(
        storage.upload_image, b"".join(chunks), file.content_type, file.filename
    )
    logger.info("image_uploaded", filename=stored.filename, size=stored.size)
    return UploadResponse(
        url=stored.url, filename=stored.filename, size=stored.size, type=stored.type
    )
