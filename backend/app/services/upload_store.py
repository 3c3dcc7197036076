"""
Upload Store Service

Keeps the buffered items of in-flight uploads, keyed by upload ID, and owns
their lifecycle: every item created here is deleted through this store.
"""

import logging
import threading
import uuid
from pathlib import Path
from typing import Optional

from encrypted_upload import BufferedItem, BufferedItemFactory

from app.config import settings

logger = logging.getLogger(__name__)


class UploadStore:
    """
    Registry of buffered uploads.

    Handles:
    - Creating items with the configured threshold and repository
    - Looking items up by upload ID
    - Deleting items and their encrypted backing files
    """

    def __init__(self, factory: BufferedItemFactory):
        """
        Initialize UploadStore.

        Args:
            factory: Factory producing items with shared storage settings
        """
        self.factory = factory
        self._items: dict[str, BufferedItem] = {}
        self._lock = threading.Lock()

    def create(self, file_name: Optional[str], content_type: Optional[str]) -> tuple[str, BufferedItem]:
        """
        Create and register a new item for a file upload.

        Returns:
            tuple: (upload_id, item)
        """
        upload_id = str(uuid.uuid4())
        item = self.factory.create_item("file", content_type, False, file_name)
        with self._lock:
            self._items[upload_id] = item
        logger.info(f"Registered upload {upload_id}")
        return upload_id, item

    def get(self, upload_id: str) -> Optional[BufferedItem]:
        with self._lock:
            return self._items.get(upload_id)

    def delete(self, upload_id: str) -> bool:
        """
        Delete an upload and its backing file.

        Returns:
            bool: True if the upload existed
        """
        with self._lock:
            item = self._items.pop(upload_id, None)
        if item is None:
            return False
        item.delete()
        logger.info(f"Deleted upload {upload_id}")
        return True

    def active_paths(self) -> set[Path]:
        """Backing files currently owned by registered items."""
        with self._lock:
            items = list(self._items.values())
        return {path for item in items if (path := item.store_location()) is not None}

    def clear(self) -> int:
        """Delete every registered upload. Returns the number deleted."""
        with self._lock:
            items, self._items = self._items, {}
        for item in items.values():
            item.delete()
        if items:
            logger.info(f"Cleared {len(items)} uploads")
        return len(items)


def _build_store() -> UploadStore:
    return UploadStore(
        BufferedItemFactory(
            size_threshold=settings.UPLOAD_SIZE_THRESHOLD,
            repository=settings.UPLOAD_REPOSITORY,
        )
    )


upload_store = _build_store()
