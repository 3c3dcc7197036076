"""Pydantic models for API request/response schemas."""

from .upload_response import ErrorResponse, UploadResponse

__all__ = [
    "UploadResponse",
    "ErrorResponse",
]
