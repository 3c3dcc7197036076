"""
Upload Size Validation

Rejects oversized uploads from the declared Content-Length before any byte is
buffered; the upload route enforces the same limit while streaming.
"""

import logging
from typing import Optional

from fastapi import Request

from app.config import settings
from app.middleware.error_handler import UploadTooLargeError

logger = logging.getLogger(__name__)


async def validate_content_length(request: Request) -> Optional[int]:
    """
    Check the declared Content-Length against MAX_UPLOAD_SIZE.

    Args:
        request: Incoming upload request

    Returns:
        int: Declared body size, or None if the client did not declare one

    Raises:
        UploadTooLargeError: 413 if the declared size exceeds MAX_UPLOAD_SIZE
    """
    declared = request.headers.get("content-length")
    if declared is None or not declared.isdigit():
        return None

    size = int(declared)
    if size > settings.MAX_UPLOAD_SIZE:
        logger.warning(f"Declared upload size exceeded: {size} bytes (max: {settings.MAX_UPLOAD_SIZE})")
        raise UploadTooLargeError(settings.MAX_UPLOAD_SIZE)

    return size


def check_streamed_size(total: int) -> None:
    """Raise UploadTooLargeError once the streamed byte count passes the limit."""
    if total > settings.MAX_UPLOAD_SIZE:
        logger.warning(f"Streamed upload size exceeded: {total} bytes (max: {settings.MAX_UPLOAD_SIZE})")
        raise UploadTooLargeError(settings.MAX_UPLOAD_SIZE)
