"""Factory creating ``BufferedItem`` instances with shared storage settings."""

import logging
from pathlib import Path
from typing import Optional

from .buffered_item import BufferedItem

logger = logging.getLogger(__name__)

# Items up to this many bytes stay in memory by default.
DEFAULT_SIZE_THRESHOLD = 10240


class BufferedItemFactory:
    """Creates items sharing one size threshold and repository directory."""

    def __init__(
        self,
        size_threshold: int = DEFAULT_SIZE_THRESHOLD,
        repository: str | Path | None = None,
    ):
        self.size_threshold = size_threshold
        self.repository = Path(repository) if repository is not None else None

    def create_item(
        self,
        field_name: Optional[str],
        content_type: Optional[str],
        is_form_field: bool,
        file_name: Optional[str],
    ) -> BufferedItem:
        logger.debug(f"Creating buffered item for field {field_name!r}")
        return BufferedItem(
            field_name,
            content_type,
            is_form_field,
            file_name,
            self.size_threshold,
            self.repository,
        )
