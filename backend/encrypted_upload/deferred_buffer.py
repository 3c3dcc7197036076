"""Threshold-triggered buffer that encrypts whatever it spills to disk."""

from __future__ import annotations

import io
import logging
import threading
import weakref
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO

from . import crypto
from .exceptions import AlreadyWritingError, BufferIOError, BufferNotFoundError, ReadError
from .unique import temp_file_path

logger = logging.getLogger(__name__)


@dataclass
class MemoryBuffering:
    """Content still held in process memory."""

    content: bytearray = field(default_factory=bytearray)


@dataclass
class DiskBuffering:
    """Content living encrypted in ``path``; ``writer`` is None once closed."""

    path: Path
    writer: crypto.EncryptingWriter | None = None


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.error(f"Failed to remove backing file {path}: {e}")


class WriteSink(io.RawIOBase):
    """Append-only byte sink feeding an ``EncryptingDeferredBuffer``."""

    def __init__(self, buffer: EncryptingDeferredBuffer):
        super().__init__()
        self._buffer = buffer

    def writable(self) -> bool:
        return True

    def write(self, b) -> int:
        if self.closed:
            raise ValueError("write to closed WriteSink")
        data = bytes(b)
        self._buffer._append(data)
        return len(data)

    def close(self) -> None:
        """Finalize the encrypted file if the buffer spilled. Idempotent."""
        if not self.closed:
            try:
                self._buffer._finish_writing()
            finally:
                super().close()


class EncryptingDeferredBuffer:
    """
    Holds written bytes in memory up to ``threshold``, then moves them to an
    encrypted temp file and keeps encrypting straight into it.

    ``size()`` always reports the plaintext byte count. The key is generated
    per instance unless one is supplied, and never leaves process memory
    except through an explicit persisted record.

    The buffer is a context manager; leaving the ``with`` block discards the
    content and the backing file. A ``weakref.finalize`` hook removes a
    forgotten backing file on collection as a last resort.
    """

    def __init__(
        self,
        threshold: int,
        file_path: str | Path | None = None,
        key: bytes | None = None,
        repository: str | Path | None = None,
    ):
        if threshold < 0:
            raise ValueError(f"threshold must be non-negative, got {threshold}")
        self._threshold = threshold
        self._file_path = Path(file_path) if file_path is not None else None
        self._repository = repository
        self._key = key if key is not None else crypto.generate_key()
        self._state: MemoryBuffering | DiskBuffering = MemoryBuffering()
        self._byte_count = 0
        self._cached: bytes | None = None
        self._lock = threading.Lock()
        self._sink: WriteSink | None = None
        self._writing = False
        self._discarded = False
        self._finalizer: weakref.finalize | None = None

    def __enter__(self) -> EncryptingDeferredBuffer:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.discard()

    @property
    def threshold(self) -> int:
        return self._threshold

    @property
    def key(self) -> bytes:
        return self._key

    @property
    def file_path(self) -> Path | None:
        """Backing file path, or None while memory-resident."""
        if isinstance(self._state, DiskBuffering):
            return self._state.path
        return None

    def open_write_sink(self) -> WriteSink:
        """Return the one write sink this buffer will ever hand out.

        Raises:
            AlreadyWritingError: If a sink was already opened.
        """
        with self._lock:
            if self._sink is not None:
                raise AlreadyWritingError("Write sink already opened for this buffer")
            self._writing = True
            self._sink = WriteSink(self)
        return self._sink

    @property
    def sink(self) -> WriteSink | None:
        return self._sink

    @property
    def is_writing(self) -> bool:
        return self._writing

    def is_in_memory(self) -> bool:
        return isinstance(self._state, MemoryBuffering)

    def size(self) -> int:
        """Number of plaintext bytes accepted, whatever the backing store."""
        return self._byte_count

    def _append(self, data: bytes) -> None:
        if self._discarded:
            raise BufferIOError("Cannot write to a discarded buffer")
        state = self._state
        self._byte_count += len(data)
        if isinstance(state, MemoryBuffering):
            if self._byte_count <= self._threshold:
                state.content += data
            else:
                self._state = self._spill(state, data)
        else:
            if state.writer is None:
                raise BufferIOError(f"Backing file {state.path} is already finalized")
            try:
                state.writer.write(data)
            except OSError as e:
                logger.error(f"Failed to write to backing file {state.path}: {e}")
                raise BufferIOError(f"Failed to write to backing file: {e}") from e

    def _spill(self, state: MemoryBuffering, data: bytes) -> DiskBuffering:
        path = self._file_path
        if path is None:
            path = temp_file_path(self._repository)
            self._file_path = path
        disk = DiskBuffering(path=path)
        self._finalizer = weakref.finalize(self, _remove_quietly, path)
        fileobj = None
        try:
            fileobj = open(path, "wb")
            disk.writer = crypto.encrypt_to(fileobj, self._key)
            disk.writer.write(bytes(state.content))
            disk.writer.write(data)
        except OSError as e:
            if disk.writer is None and fileobj is not None:
                fileobj.close()
            logger.error(f"Failed to spill buffer to {path}: {e}")
            self._state = disk
            raise BufferIOError(f"Failed to spill buffer to disk: {e}") from e
        finally:
            state.content = bytearray()
        logger.info(f"Buffer exceeded {self._threshold} bytes, spilled encrypted to {path}")
        return disk

    def _finish_writing(self) -> None:
        state = self._state
        try:
            if isinstance(state, DiskBuffering) and state.writer is not None:
                writer, state.writer = state.writer, None
                try:
                    writer.close()
                except OSError as e:
                    logger.error(f"Failed to finalize backing file {state.path}: {e}")
                    raise BufferIOError(f"Failed to finalize backing file: {e}") from e
        finally:
            self._writing = False

    def _check_readable(self) -> None:
        if self._discarded:
            raise BufferNotFoundError("Buffer content was discarded")
        if self._writing:
            raise AlreadyWritingError("Write sink must be closed before reading")

    def open_read_source(self) -> BinaryIO:
        """Open a fresh plaintext stream over the content, from the start.

        Raises:
            AlreadyWritingError: If the write sink is still open.
            BufferNotFoundError: If the backing file is gone.
        """
        self._check_readable()
        state = self._state
        if isinstance(state, MemoryBuffering):
            return io.BytesIO(bytes(state.content))
        try:
            fileobj = open(state.path, "rb")
        except FileNotFoundError as e:
            raise BufferNotFoundError(f"Backing file not found: {state.path}") from e
        except OSError as e:
            raise ReadError(f"Failed to open backing file: {e}") from e
        return crypto.decrypt_from(fileobj, self._key)

    def get_all_bytes(self) -> bytes:
        """Return the whole plaintext, decrypting at most once.

        Raises:
            ReadError: If the content cannot be decrypted or read.
            BufferNotFoundError: If the backing file is gone.
        """
        if self._cached is not None:
            return self._cached
        self._check_readable()
        if isinstance(self._state, MemoryBuffering):
            self._cached = bytes(self._state.content)
            return self._cached
        with self.open_read_source() as source:
            try:
                data = source.read()
            except OSError as e:
                raise ReadError(f"Failed to read backing file: {e}") from e
        self._cached = data
        return data

    def keep_backing_file(self) -> None:
        """Stop removing the backing file when this buffer is collected.

        ``discard`` still deletes it.
        """
        if self._finalizer is not None:
            self._finalizer.detach()
            self._finalizer = None

    def discard(self) -> None:
        """Drop in-memory content and delete the backing file. Idempotent.

        A discarded buffer refuses further reads with ``BufferNotFoundError``.
        """
        self._cached = None
        self._discarded = True
        state = self._state
        if isinstance(state, MemoryBuffering):
            state.content = bytearray()
            self._writing = False
            return
        if state.writer is not None:
            writer, state.writer = state.writer, None
            try:
                writer.abort()
            except OSError as e:
                logger.warning(f"Failed to close backing file {state.path}: {e}")
            self._writing = False
        if self._finalizer is not None:
            self._finalizer.detach()
            self._finalizer = None
        if state.path.exists():
            logger.info(f"Deleting backing file {state.path}")
        _remove_quietly(state.path)
