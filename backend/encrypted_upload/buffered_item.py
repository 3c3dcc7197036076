"""
Buffered Upload Item

User-facing handle around one ``EncryptingDeferredBuffer``: carries the
upload metadata, reads and writes content without exposing where it lives,
and persists/restores itself across process boundaries.
"""

from __future__ import annotations

import io
import logging
import os
import shutil
from email.message import Message
from pathlib import Path
from typing import BinaryIO, Optional

from . import crypto
from .deferred_buffer import EncryptingDeferredBuffer, WriteSink, _remove_quietly
from .exceptions import (
    AlreadyWritingError,
    BufferIOError,
    BufferNotFoundError,
    InvalidFileNameError,
    InvalidRepositoryError,
    ReadError,
    UnsupportedCharsetError,
    WriteTargetUnavailableError,
)
from .record import PersistedItem
from .unique import temp_file_path, unique_id

logger = logging.getLogger(__name__)

# Charset assumed for text content when the sender does not declare one.
DEFAULT_CHARSET = "ISO-8859-1"


class BufferedItem:
    """
    One uploaded form field or file, buffered through an encrypting buffer.

    The buffer, and with it the encryption key and temp file path, is created
    on the first ``write_sink()`` call. Use the item as a context manager, or
    call ``delete()``, to release the backing file deterministically.
    """

    def __init__(
        self,
        field_name: Optional[str],
        content_type: Optional[str],
        is_form_field: bool,
        file_name: Optional[str],
        size_threshold: int,
        repository: str | Path | None = None,
    ):
        """
        Initialize a BufferedItem.

        Args:
            field_name: Name of the form field.
            content_type: Content type passed by the client, or None.
            is_form_field: True for a plain form field, False for a file upload.
            file_name: Original file name on the client, or None.
            size_threshold: Bytes kept in memory before spilling to disk.
            repository: Directory for temp files; system temp dir when None.
        """
        self.field_name = field_name
        self.is_form_field = is_form_field
        self.headers: dict[str, str] = {}
        self._content_type = content_type
        self._file_name = file_name
        self._size_threshold = size_threshold
        self._repository = Path(repository) if repository is not None else None
        self._buffer: EncryptingDeferredBuffer | None = None

    def __enter__(self) -> BufferedItem:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.delete()

    def __repr__(self) -> str:
        return (
            f"name={self._file_name}, StoreLocation={self.store_location()}, "
            f"size={self.size()} bytes, isFormField={self.is_form_field}, "
            f"FieldName={self.field_name}"
        )

    # Metadata

    @property
    def content_type(self) -> Optional[str]:
        return self._content_type

    @property
    def charset(self) -> Optional[str]:
        """The ``charset`` parameter of the content type, if any."""
        if not self._content_type:
            return None
        message = Message()
        message["content-type"] = self._content_type
        return message.get_param("charset")

    @property
    def name(self) -> Optional[str]:
        """Original file name.

        Raises:
            InvalidFileNameError: If the name contains a NUL character.
        """
        if self._file_name is not None and "\0" in self._file_name:
            raise InvalidFileNameError(self._file_name)
        return self._file_name

    @property
    def size_threshold(self) -> int:
        return self._size_threshold

    @property
    def repository(self) -> Optional[Path]:
        return self._repository

    # Content

    def write_sink(self) -> WriteSink:
        """Return the item's write sink, creating the buffer on first call."""
        if self._buffer is None:
            self._buffer = EncryptingDeferredBuffer(
                self._size_threshold,
                file_path=temp_file_path(self._repository),
                key=crypto.generate_key(),
            )
            return self._buffer.open_write_sink()
        return self._buffer.sink

    def is_in_memory(self) -> bool:
        return self._buffer is None or self._buffer.is_in_memory()

    def size(self) -> int:
        return self._buffer.size() if self._buffer is not None else 0

    def open_read_source(self) -> BinaryIO:
        """Open a plaintext stream over the content from the start."""
        if self._buffer is None:
            return io.BytesIO()
        return self._buffer.open_read_source()

    def read_all(self) -> bytes:
        """Return the whole plaintext content.

        Raises:
            ReadError: If disk-resident content cannot be decrypted or read.
        """
        if self._buffer is None:
            return b""
        return self._buffer.get_all_bytes()

    def read_as_text(self, charset: Optional[str] = None) -> str:
        """Decode the content with ``charset``, the declared charset or ISO-8859-1.

        Raises:
            UnsupportedCharsetError: If Python has no codec for the charset.
            ReadError: If the content cannot be read.
        """
        encoding = charset or self.charset or DEFAULT_CHARSET
        data = self.read_all()
        try:
            return data.decode(encoding, errors="replace")
        except LookupError as e:
            raise UnsupportedCharsetError(f"Unsupported charset: {encoding}") from e

    def write_to(self, destination: str | Path) -> None:
        """Write the plaintext content to ``destination``.

        The encrypted backing file is copied through decryption, never moved,
        so this may be called any number of times.
        If decryption fails, ``destination`` is left as it was.

        Raises:
            WriteTargetUnavailableError: If nothing was ever written.
            BufferNotFoundError: If the backing file has vanished.
            ReadError: If the backing file fails to decrypt.
            BufferIOError: If the destination cannot be written.
        """
        if self._buffer is None:
            raise WriteTargetUnavailableError("Cannot write uploaded file to disk: no content buffered")
        destination = Path(destination)
        if self._buffer.is_in_memory():
            data = self.read_all()
            try:
                destination.write_bytes(data)
            except OSError as e:
                raise BufferIOError(f"Failed to write {destination}: {e}") from e
            return

        # Decrypted bytes are unauthenticated until EOF, so they only reach
        # the destination name once the whole file has verified.
        partial = destination.with_name(f".{destination.name}.{unique_id()}.part")
        try:
            with self._buffer.open_read_source() as source, open(partial, "wb") as out:
                shutil.copyfileobj(source, out)
            os.replace(partial, destination)
        except ReadError:
            _remove_quietly(partial)
            raise
        except OSError as e:
            _remove_quietly(partial)
            raise BufferIOError(f"Failed to write {destination}: {e}") from e
        logger.info(f"Wrote {self.size()} decrypted bytes to {destination}")

    def delete(self) -> None:
        """Drop cached content and remove the backing file. Safe to repeat.

        Afterwards the item behaves like one that was never written.
        """
        if self._buffer is None:
            return
        buffer, self._buffer = self._buffer, None
        buffer.discard()

    def store_location(self) -> Optional[Path]:
        """Backing file path while disk-resident, otherwise None."""
        if self._buffer is None or self._buffer.is_in_memory():
            return None
        return self._buffer.file_path

    # Persist / restore

    def persist(self) -> PersistedItem:
        """
        Capture this item as a ``PersistedItem``.

        Memory-resident content is embedded as plaintext. Disk-resident
        content is referenced by path together with its key; the backing file
        then outlives this object and is consumed by ``restore``.

        Raises:
            AlreadyWritingError: If the write sink is still open.
        """
        content: Optional[bytes] = None
        store_file: Optional[Path] = None
        key: Optional[bytes] = None

        if self._buffer is None:
            content = b""
        elif self._buffer.is_writing:
            raise AlreadyWritingError("Cannot persist an item whose write sink is open")
        elif self._buffer.is_in_memory():
            content = self._buffer.get_all_bytes()
            key = self._buffer.key
        else:
            store_file = self._buffer.file_path
            key = self._buffer.key
            self._buffer.keep_backing_file()

        return PersistedItem(
            field_name=self.field_name,
            content_type=self._content_type,
            is_form_field=self.is_form_field,
            file_name=self._file_name,
            size_threshold=self._size_threshold,
            repository=self._repository,
            key=key,
            content=content,
            store_file=store_file,
        )

    @classmethod
    def restore(cls, record: PersistedItem) -> BufferedItem:
        """
        Rebuild an item from ``record`` under a freshly generated key.

        Embedded plaintext is written straight into the new buffer. A
        referenced ciphertext file is decrypted with the recorded key,
        re-encrypted into the new buffer, and then deleted.

        Raises:
            InvalidRepositoryError: If the recorded repository is unusable.
            BufferNotFoundError: If the referenced ciphertext file is missing.
            ReadError: If the referenced file fails to decrypt.
        """
        _validate_repository(record.repository)

        item = cls(
            record.field_name,
            record.content_type,
            record.is_form_field,
            record.file_name,
            record.size_threshold,
            record.repository,
        )
        sink = item.write_sink()
        try:
            if record.content is not None:
                sink.write(record.content)
            else:
                _replay_ciphertext(record.store_file, record.key, sink)
            sink.close()
        except Exception:
            item.delete()
            raise

        if record.store_file is not None:
            try:
                record.store_file.unlink(missing_ok=True)
            except OSError as e:
                logger.error(f"Failed to remove restored ciphertext {record.store_file}: {e}")
        logger.info(f"Restored item {record.field_name!r} ({item.size()} bytes) under a new key")
        return item


def _validate_repository(repository: Optional[Path]) -> None:
    if repository is None:
        return
    if "\0" in str(repository):
        raise InvalidRepositoryError(f"The repository [{repository}] contains a null character")
    if not repository.is_dir():
        raise InvalidRepositoryError(f"The repository [{repository.absolute()}] is not a directory")


def _replay_ciphertext(store_file: Path, key: bytes, sink: WriteSink) -> None:
    try:
        fileobj = open(store_file, "rb")
    except FileNotFoundError as e:
        raise BufferNotFoundError(f"Persisted ciphertext not found: {store_file}") from e
    except OSError as e:
        raise BufferIOError(f"Failed to open persisted ciphertext: {e}") from e
    with crypto.decrypt_from(fileobj, key) as source:
        shutil.copyfileobj(source, sink)
