"""Unit tests for the AES-GCM streaming file encryption."""

import io

import pytest

from encrypted_upload import ReadError
from encrypted_upload.crypto import (
    KEY_SIZE,
    NONCE_SIZE,
    OVERHEAD,
    TAG_SIZE,
    decrypt_from,
    encrypt_to,
    generate_key,
)


class KeepOpenBytesIO(io.BytesIO):
    """BytesIO whose contents stay readable after close()."""

    def close(self) -> None:
        pass


def _encrypt(plaintext: bytes, key: bytes, chunks: int = 1) -> bytes:
    target = KeepOpenBytesIO()
    writer = encrypt_to(target, key)
    step = max(1, len(plaintext) // chunks)
    for offset in range(0, len(plaintext), step):
        writer.write(plaintext[offset:offset + step])
    writer.close()
    return target.getvalue()


def test_generate_key_is_random_256_bit():
    key1 = generate_key()
    key2 = generate_key()
    assert len(key1) == KEY_SIZE
    assert key1 != key2


def test_ciphertext_layout_adds_nonce_and_tag():
    key = generate_key()
    plaintext = b"A" * 150

    ciphertext = _encrypt(plaintext, key)

    assert len(ciphertext) == len(plaintext) + OVERHEAD
    assert OVERHEAD == NONCE_SIZE + TAG_SIZE
    assert plaintext not in ciphertext


def test_decrypt_recovers_plaintext_written_in_chunks():
    key = generate_key()
    plaintext = bytes(range(256)) * 700  # spans several read chunks

    ciphertext = _encrypt(plaintext, key, chunks=7)

    with decrypt_from(io.BytesIO(ciphertext), key) as source:
        assert source.read() == plaintext


def test_decrypt_empty_plaintext():
    key = generate_key()
    ciphertext = _encrypt(b"", key)

    assert len(ciphertext) == OVERHEAD
    with decrypt_from(io.BytesIO(ciphertext), key) as source:
        assert source.read() == b""


def test_decrypt_with_wrong_key_fails():
    ciphertext = _encrypt(b"secret payload", generate_key())

    with pytest.raises(ReadError):
        with decrypt_from(io.BytesIO(ciphertext), generate_key()) as source:
            source.read()


def test_decrypt_detects_tampering():
    key = generate_key()
    ciphertext = bytearray(_encrypt(b"secret payload", key))
    ciphertext[NONCE_SIZE] ^= 0x01

    with pytest.raises(ReadError):
        with decrypt_from(io.BytesIO(bytes(ciphertext)), key) as source:
            source.read()


def test_decrypt_detects_missing_tag():
    key = generate_key()
    ciphertext = _encrypt(b"secret payload", key)

    with pytest.raises(ReadError):
        with decrypt_from(io.BytesIO(ciphertext[:-TAG_SIZE]), key) as source:
            source.read()


def test_decrypt_rejects_missing_nonce():
    with pytest.raises(ReadError):
        decrypt_from(io.BytesIO(b"short"), generate_key())


def test_writer_rejects_writes_after_close():
    writer = encrypt_to(KeepOpenBytesIO(), generate_key())
    writer.close()
    writer.close()

    assert writer.closed
    with pytest.raises(ValueError):
        writer.write(b"late")
