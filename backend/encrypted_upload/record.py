"""Pydantic model for a persisted upload item."""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PersistedItem(BaseModel):
    """
    Serialized form of a ``BufferedItem``.

    Memory-resident items embed their plaintext in ``content``; disk-resident
    items reference their ciphertext file through ``store_file`` instead.
    Exactly one of the two is set. Bytes fields travel as base64 in JSON.
    """

    field_name: Optional[str] = Field(None, alias="fieldName")
    content_type: Optional[str] = Field(None, alias="contentType")
    is_form_field: bool = Field(False, alias="isFormField")
    file_name: Optional[str] = Field(None, alias="fileName")
    size_threshold: int = Field(..., alias="sizeThreshold", ge=0)
    repository: Optional[Path] = None
    key: Optional[bytes] = Field(None, description="Key the stored content is encrypted under")
    content: Optional[bytes] = None
    store_file: Optional[Path] = Field(None, alias="storeFile")

    model_config = ConfigDict(
        populate_by_name=True,
        ser_json_bytes="base64",
        val_json_bytes="base64",
    )

    @model_validator(mode="after")
    def _content_or_store_file(self) -> "PersistedItem":
        if (self.content is None) == (self.store_file is None):
            raise ValueError("exactly one of content and store_file must be set")
        if self.store_file is not None and self.key is None:
            raise ValueError("store_file requires the key it was encrypted under")
        return self
