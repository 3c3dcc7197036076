"""
Upload API Route

Streams a raw request body into an encrypting deferred buffer.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request

from encrypted_upload import InvalidFileNameError, UploadBufferError

from app.middleware.error_handler import InvalidFileNameApiError, StorageError
from app.middleware.file_size_validator import check_streamed_size, validate_content_length
from app.models.upload_response import ErrorResponse, UploadResponse
from app.services.upload_store import upload_store

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/upload",
    response_model=UploadResponse,
    status_code=201,
    summary="Upload Content",
    description="""
Upload raw content. The body is kept in memory up to the configured threshold;
larger bodies are encrypted into a temp file as they stream in, so plaintext
never reaches disk.

**Headers:**
- `Content-Type`: Declared content type (stored with the upload)
- `X-Filename`: Original filename (optional)

**Response:** Returns an `uploadId` to use with `/api/uploads/{uploadId}`.
""",
    responses={
        201: {"description": "Upload buffered"},
        400: {"description": "Invalid filename", "model": ErrorResponse},
        413: {"description": "Upload too large", "model": ErrorResponse},
        500: {"description": "Storage failure", "model": ErrorResponse},
    },
)
async def upload_content(
    request: Request,
    content_type: Optional[str] = Header(default=None),
    x_filename: Optional[str] = Header(default=None),
    declared_size: Optional[int] = Depends(validate_content_length),
) -> UploadResponse:
    """
    Buffer an uploaded body.

    Raises:
        UploadTooLargeError: If the body exceeds MAX_UPLOAD_SIZE
        InvalidFileNameApiError: If the filename contains a NUL character
        StorageError: If the encrypted temp file cannot be written
    """
    upload_id, item = upload_store.create(x_filename, content_type)
    logger.info(f"Upload started for {upload_id}, declared size: {declared_size}")

    try:
        file_name = item.name
        sink = item.write_sink()
        total = 0
        async for chunk in request.stream():
            total += len(chunk)
            check_streamed_size(total)
            sink.write(chunk)
        sink.close()
    except InvalidFileNameError as e:
        upload_store.delete(upload_id)
        raise InvalidFileNameApiError(e.name)
    except UploadBufferError as e:
        upload_store.delete(upload_id)
        logger.error(f"Buffering failed for upload {upload_id}: {e}")
        raise StorageError(upload_id, str(e))
    except Exception:
        upload_store.delete(upload_id)
        raise

    logger.info(f"Upload {upload_id} buffered: {item.size()} bytes, in memory: {item.is_in_memory()}")

    return UploadResponse(
        uploadId=upload_id,
        fileName=file_name,
        contentType=item.content_type,
        size=item.size(),
        inMemory=item.is_in_memory(),
    )
