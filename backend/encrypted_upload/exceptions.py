"""Custom exceptions for the encrypted upload buffer."""


class UploadBufferError(Exception):
    """Base exception for encrypted upload buffer errors."""

    pass


class AlreadyWritingError(UploadBufferError):
    """A write sink was requested twice, or used while still open."""

    pass


class BufferIOError(UploadBufferError):
    """Underlying storage I/O failed during write."""

    pass


class ReadError(UploadBufferError):
    """Buffer content could not be decrypted or read back."""

    pass


class BufferNotFoundError(ReadError):
    """The backing file of a disk-resident buffer is missing."""

    pass


class InvalidRepositoryError(UploadBufferError):
    """The storage directory is unusable for restoring an item."""

    pass


class WriteTargetUnavailableError(UploadBufferError):
    """An item has no backing store to write out."""

    pass


class UnsupportedCharsetError(UploadBufferError):
    """The requested character set is not known to Python."""

    pass


class InvalidFileNameError(UploadBufferError):
    """The uploaded file name contains a NUL character."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Invalid file name: {name!r}")
