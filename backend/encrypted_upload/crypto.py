"""AES-256-GCM streaming encryption for buffer backing files.

File format: NONCE(12) + CIPHERTEXT + TAG(16)

The ciphertext has the same length as the plaintext, so every byte handed to
``EncryptingWriter.write`` reaches disk already encrypted. The tag is only
written on ``close``; a file whose writer was never closed cannot be
authenticated and fails to decrypt.
"""

from __future__ import annotations

import io
import os
from typing import BinaryIO

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .exceptions import ReadError

KEY_SIZE = 32
NONCE_SIZE = 12  # 96 bits for AES-GCM
TAG_SIZE = 16
OVERHEAD = NONCE_SIZE + TAG_SIZE

CHUNK_SIZE = 64 * 1024


def generate_key() -> bytes:
    """Return a fresh random 256-bit AES key."""
    return AESGCM.generate_key(bit_length=KEY_SIZE * 8)


class EncryptingWriter:
    """Encrypts everything written to it into ``fileobj``.

    The nonce is written immediately; the authentication tag on ``close``.
    """

    def __init__(self, fileobj: BinaryIO, key: bytes):
        nonce = os.urandom(NONCE_SIZE)
        self._fileobj = fileobj
        self._encryptor = Cipher(algorithms.AES(key), modes.GCM(nonce)).encryptor()
        self._closed = False
        fileobj.write(nonce)

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, data: bytes) -> int:
        if self._closed:
            raise ValueError("write to closed EncryptingWriter")
        self._fileobj.write(self._encryptor.update(data))
        self._fileobj.flush()
        return len(data)

    def close(self) -> None:
        """Write the final block and tag, then close the underlying file."""
        if self._closed:
            return
        self._closed = True
        try:
            self._fileobj.write(self._encryptor.finalize())
            self._fileobj.write(self._encryptor.tag)
            self._fileobj.flush()
        finally:
            self._fileobj.close()

    def abort(self) -> None:
        """Close the underlying file without writing the tag."""
        self._closed = True
        self._fileobj.close()


class DecryptingReader(io.RawIOBase):
    """Raw stream yielding the plaintext of a file written by ``EncryptingWriter``.

    The trailing tag is held back while reading and verified at EOF. Any
    authentication failure (wrong key, truncation, tampering) raises
    ``ReadError``.
    """

    def __init__(self, fileobj: BinaryIO, key: bytes):
        super().__init__()
        self._fileobj = fileobj
        nonce = fileobj.read(NONCE_SIZE)
        if len(nonce) != NONCE_SIZE:
            fileobj.close()
            raise ReadError("Ciphertext truncated: missing nonce")
        self._decryptor = Cipher(algorithms.AES(key), modes.GCM(nonce)).decryptor()
        self._tail = b""
        self._pending = b""
        self._finished = False

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        while not self._pending and not self._finished:
            self._fill()
        n = min(len(b), len(self._pending))
        b[:n] = self._pending[:n]
        self._pending = self._pending[n:]
        return n

    def _fill(self) -> None:
        chunk = self._fileobj.read(CHUNK_SIZE)
        if not chunk:
            if len(self._tail) != TAG_SIZE:
                raise ReadError("Ciphertext truncated: missing authentication tag")
            try:
                self._pending = self._decryptor.finalize_with_tag(self._tail)
            except InvalidTag as e:
                raise ReadError("Ciphertext failed authentication") from e
            self._finished = True
            return
        data = self._tail + chunk
        self._tail = data[-TAG_SIZE:]
        body = data[:-TAG_SIZE]
        if body:
            self._pending = self._decryptor.update(body)

    def close(self) -> None:
        if not self.closed:
            self._fileobj.close()
        super().close()


def encrypt_to(fileobj: BinaryIO, key: bytes) -> EncryptingWriter:
    """Wrap ``fileobj`` so that writes land on it encrypted under ``key``."""
    return EncryptingWriter(fileobj, key)


def decrypt_from(fileobj: BinaryIO, key: bytes) -> io.BufferedReader:
    """Wrap ``fileobj`` holding ciphertext into a plaintext stream."""
    return io.BufferedReader(DecryptingReader(fileobj, key), buffer_size=CHUNK_SIZE)
