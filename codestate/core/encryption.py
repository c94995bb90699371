"""Symmetric encryption of stored documents."""

import base64
import logging
import os
from functools import lru_cache

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .constants import ENCRYPTION_HEADER, PBKDF2_ITERATIONS, SALT_LENGTH

logger = logging.getLogger(__name__)


class DecryptionError(Exception):
    """Raised when a payload cannot be decrypted with the configured key."""

    pass


@lru_cache(maxsize=64)
def _derive_key(passphrase: str, salt: bytes) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
    )
    return base64.urlsafe_b64encode(kdf.derive(passphrase.encode()))


def is_encrypted(payload: bytes) -> bool:
    """Check whether a payload carries the encryption header."""
    return payload.startswith(ENCRYPTION_HEADER.encode() + b":")


class DocumentCipher:
    """Fernet cipher keyed by a passphrase.

    Payload format is ``ENCRYPTED_v1:<salt b64>:<fernet token>``. Each payload
    gets its own random salt; Fernet's HMAC rejects wrong keys and tampering.
    """

    def __init__(self, passphrase: str):
        if not passphrase:
            raise ValueError("An encryption key is required when encryption is enabled")
        self._passphrase = passphrase

    def encrypt(self, data: bytes) -> bytes:
        salt = os.urandom(SALT_LENGTH)
        token = Fernet(_derive_key(self._passphrase, salt)).encrypt(data)
        return b":".join([ENCRYPTION_HEADER.encode(), base64.b64encode(salt), token])

    def decrypt(self, payload: bytes) -> bytes:
        parts = payload.split(b":")
        if len(parts) != 3 or parts[0] != ENCRYPTION_HEADER.encode():
            raise DecryptionError("Invalid encrypted data format")
        try:
            salt = base64.b64decode(parts[1], validate=True)
            return Fernet(_derive_key(self._passphrase, salt)).decrypt(parts[2])
        except (InvalidToken, ValueError) as e:
            logger.debug(f"Decryption failed: {type(e).__name__}")
            raise DecryptionError("Wrong encryption key or corrupted data") from e
