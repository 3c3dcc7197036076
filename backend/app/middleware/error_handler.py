"""
Centralized error handling middleware for FastAPI.

Provides consistent error responses and logging for all API routes.
"""

import logging
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class UploadApiError(Exception):
    """Base exception for upload API errors."""

    def __init__(self, message: str, status_code: int = 500, details: Any = None):
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class UploadNotFoundError(UploadApiError):
    """Raised when an upload ID is unknown or its content is gone."""

    def __init__(self, upload_id: str):
        super().__init__(
            message=f"Upload not found: {upload_id}",
            status_code=404,
            details={"upload_id": upload_id},
        )


class UploadTooLargeError(UploadApiError):
    """Raised when a request body exceeds the configured maximum."""

    def __init__(self, max_size: int):
        super().__init__(
            message=f"Upload exceeds maximum size of {max_size} bytes",
            status_code=413,
            details={"max_size": max_size},
        )


class InvalidFileNameApiError(UploadApiError):
    """Raised when the supplied filename is unacceptable."""

    def __init__(self, file_name: str):
        super().__init__(
            message="Invalid filename",
            status_code=400,
            details={"file_name": file_name},
        )


class UploadInProgressError(UploadApiError):
    """Raised when an upload is read before its body has been fully received."""

    def __init__(self, upload_id: str):
        super().__init__(
            message=f"Upload still in progress: {upload_id}",
            status_code=409,
            details={"upload_id": upload_id},
        )


class StorageError(UploadApiError):
    """Raised when buffering or reading back an upload fails."""

    def __init__(self, upload_id: str, reason: str):
        super().__init__(
            message=f"Upload storage failed: {reason}",
            status_code=500,
            details={"upload_id": upload_id},
        )


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Middleware that catches unhandled exceptions and returns consistent error responses.
    """

    async def dispatch(self, request: Request, call_next):
        try:
            response = await call_next(request)
            return response

        except UploadApiError as e:
            logger.error(
                f"UploadApiError: {e.message}",
                extra={"status_code": e.status_code, "details": e.details},
            )
            return JSONResponse(
                status_code=e.status_code,
                content={
                    "error": e.message,
                    "details": e.details,
                },
            )

        except Exception as e:
            # Log full stack trace for unexpected errors
            logger.exception(f"Unhandled exception: {str(e)}")
            return JSONResponse(
                status_code=500,
                content={
                    "error": "Internal server error",
                    "message": str(e) if logger.isEnabledFor(logging.DEBUG) else None,
                },
            )
