"""
Upload Response Pydantic Model

Defines the response structure for buffered uploads.
"""

from typing import Optional

from pydantic import BaseModel, Field


class UploadResponse(BaseModel):
    """
    Response model for a successfully buffered upload.

    Returned by POST /api/upload once the request body has been fully written.
    """

    uploadId: str = Field(
        ...,
        description="UUID v4 identifier for retrieving or deleting the upload"
    )
    fileName: Optional[str] = Field(
        None,
        description="Original filename from the X-Filename header"
    )
    contentType: Optional[str] = Field(
        None,
        description="Content type declared by the client"
    )
    size: int = Field(
        ...,
        description="Plaintext size in bytes"
    )
    inMemory: bool = Field(
        ...,
        description="False when the upload spilled to an encrypted temp file"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "uploadId": "a1b2c3d4-e5f6-7890-abcd-ef1234567890",
                "fileName": "report.pdf",
                "contentType": "application/pdf",
                "size": 2457600,
                "inMemory": False,
            }
        }
    }


class ErrorResponse(BaseModel):
    """Error body returned by the upload endpoints."""

    error: str = Field(..., description="Human-readable error message")
    details: Optional[dict] = Field(None, description="Additional error context")
