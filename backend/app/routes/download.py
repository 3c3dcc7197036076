"""
Download endpoints for buffered uploads.

Provides GET and DELETE on /api/uploads/{uploadId}.
"""

import logging
import re
from typing import Iterator
from uuid import UUID

from fastapi import APIRouter, Response
from fastapi.responses import StreamingResponse

from encrypted_upload import AlreadyWritingError, BufferNotFoundError, ReadError

from app.middleware.error_handler import StorageError, UploadInProgressError, UploadNotFoundError
from app.models import ErrorResponse
from app.services.upload_store import upload_store

logger = logging.getLogger(__name__)

router = APIRouter()

CHUNK_SIZE = 64 * 1024


def _validate_upload_id(upload_id: str) -> bool:
    """
    Validate that upload_id is a UUID.

    Args:
        upload_id: The upload ID to validate

    Returns:
        bool: True if valid UUID format, False otherwise
    """
    try:
        UUID(upload_id, version=4)
        return True
    except (ValueError, AttributeError):
        uuid_pattern = re.compile(
            r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
            re.IGNORECASE,
        )
        return bool(uuid_pattern.match(upload_id))


def _iter_source(source) -> Iterator[bytes]:
    with source:
        while chunk := source.read(CHUNK_SIZE):
            yield chunk


@router.get(
    "/uploads/{uploadId}",
    summary="Download Upload",
    description="""
Stream back the plaintext of a buffered upload, decrypting it on the fly if it
was spilled to disk.
""",
    responses={
        200: {"description": "Upload content"},
        404: {"description": "Upload not found", "model": ErrorResponse},
        409: {"description": "Upload body still being received", "model": ErrorResponse},
        500: {"description": "Upload could not be read", "model": ErrorResponse},
    },
)
async def download_upload(uploadId: str) -> StreamingResponse:
    """
    Stream a buffered upload.

    Raises:
        UploadNotFoundError: If the ID is invalid, unknown, or its file is gone
        UploadInProgressError: If the upload body is still being received
        StorageError: If the content cannot be opened
    """
    logger.info(f"Download request: uploadId={uploadId}")

    if not _validate_upload_id(uploadId):
        logger.warning(f"Invalid uploadId format: {uploadId}")
        raise UploadNotFoundError(uploadId)

    item = upload_store.get(uploadId)
    if item is None:
        raise UploadNotFoundError(uploadId)

    try:
        source = item.open_read_source()
    except AlreadyWritingError:
        raise UploadInProgressError(uploadId)
    except BufferNotFoundError:
        raise UploadNotFoundError(uploadId)
    except ReadError as e:
        raise StorageError(uploadId, str(e))

    headers = {"Content-Length": str(item.size())}
    if item.name:
        headers["Content-Disposition"] = f'attachment; filename="{item.name}"'

    return StreamingResponse(
        _iter_source(source),
        media_type=item.content_type or "application/octet-stream",
        headers=headers,
    )


@router.delete(
    "/uploads/{uploadId}",
    status_code=204,
    summary="Delete Upload",
    description="Delete a buffered upload and its encrypted temp file.",
    responses={
        204: {"description": "Upload deleted"},
        404: {"description": "Upload not found", "model": ErrorResponse},
    },
)
async def delete_upload(uploadId: str) -> Response:
    """Delete a buffered upload."""
    if not _validate_upload_id(uploadId) or not upload_store.delete(uploadId):
        raise UploadNotFoundError(uploadId)
    return Response(status_code=204)
