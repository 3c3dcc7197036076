"""FastAPI middleware for request/response processing."""

from .error_handler import (
    ErrorHandlerMiddleware,
    InvalidFileNameApiError,
    StorageError,
    UploadApiError,
    UploadInProgressError,
    UploadNotFoundError,
    UploadTooLargeError,
)

__all__ = [
    "ErrorHandlerMiddleware",
    "UploadApiError",
    "UploadNotFoundError",
    "UploadTooLargeError",
    "InvalidFileNameApiError",
    "StorageError",
    "UploadInProgressError",
]
