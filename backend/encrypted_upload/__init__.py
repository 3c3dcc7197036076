"""Encrypting deferred buffer for uploaded content."""

from .buffered_item import DEFAULT_CHARSET, BufferedItem
from .deferred_buffer import EncryptingDeferredBuffer, WriteSink
from .exceptions import (
    AlreadyWritingError,
    BufferIOError,
    BufferNotFoundError,
    InvalidFileNameError,
    InvalidRepositoryError,
    ReadError,
    UnsupportedCharsetError,
    UploadBufferError,
    WriteTargetUnavailableError,
)
from .factory import DEFAULT_SIZE_THRESHOLD, BufferedItemFactory
from .record import PersistedItem

__all__ = [
    "BufferedItem",
    "BufferedItemFactory",
    "EncryptingDeferredBuffer",
    "PersistedItem",
    "WriteSink",
    "DEFAULT_CHARSET",
    "DEFAULT_SIZE_THRESHOLD",
    "UploadBufferError",
    "AlreadyWritingError",
    "BufferIOError",
    "BufferNotFoundError",
    "InvalidFileNameError",
    "InvalidRepositoryError",
    "ReadError",
    "UnsupportedCharsetError",
    "WriteTargetUnavailableError",
]
