from __future__ import annotations

import hashlib
import os
from functools import lru_cache

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from app.core.config import settings

NONCE_SIZE = 12


class DecryptionError(RuntimeError):
    pass


@lru_cache(maxsize=1)
def _get_cipher() -> AESGCM:
    return AESGCM(settings.encryption_key_bytes)


def encrypt_value(value: str | None) -> bytes | None:
    if value is None:
        return None
    nonce = os.urandom(NONCE_SIZE)
    ciphertext = _get_cipher().encrypt(nonce, value.encode("utf-8"), None)
    return nonce + ciphertext


def decrypt_value(blob: bytes | None) -> str | None:
    if not blob:
        return None
    nonce, data = blob[:NONCE_SIZE], blob[NONCE_SIZE:]
    try:
        plaintext = _get_cipher().decrypt(nonce, data, None)
    except InvalidTag as exc:
        raise DecryptionError("Stored value could not be decrypted with the configured key") from exc
    return plaintext.decode("utf-8")


def fingerprint(value: str) -> str:
    """Stable lookup hash for an identifier, ignoring case and separators."""
    normalized = "".join(ch for ch in value.upper() if ch.isalnum())
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()
