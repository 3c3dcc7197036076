"""Service layer for upload storage and housekeeping."""

from .upload_store import UploadStore, upload_store

__all__ = [
    "UploadStore",
    "upload_store",
]
