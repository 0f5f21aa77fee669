"""
Encryption of note bodies at rest.
Uses Fernet symmetric encryption.
"""

import base64
import hashlib
import logging

from cryptography.fernet import Fernet, InvalidToken

from .errors import DecryptionError
from .types import EncryptionState, Record

logger = logging.getLogger(__name__)


class FernetCipher:
    """
    Encrypts and decrypts text with a key supplied by the host process.

    Any string can be used as the key; a valid Fernet key is derived from
    it with SHA-256.
    """

    def __init__(self, key: str):
        if not key:
            raise ValueError("Encryption key must be a non-empty string")
        key_bytes = hashlib.sha256(key.encode()).digest()
        self._fernet = Fernet(base64.urlsafe_b64encode(key_bytes))

    def encrypt(self, text: str) -> str:
        """
        Encrypt text.

        Returns:
            Fernet token as a URL-safe base64 string
        """
        return self._fernet.encrypt(text.encode("utf-8")).decode("ascii")

    def decrypt(self, token: str) -> str:
        """
        Decrypt a token produced by encrypt().

        Raises:
            DecryptionError: Wrong key or corrupted ciphertext
        """
        try:
            return self._fernet.decrypt(token.encode("ascii")).decode("utf-8")
        except (InvalidToken, UnicodeError, ValueError) as e:
            logger.debug("Decryption failed: %s", type(e).__name__)
            raise DecryptionError("Decryption failed - wrong key or corrupted data") from e


def encrypt_record(record: Record, cipher: FernetCipher) -> Record:
    """Return a copy of ``record`` with a ciphertext body.

    The annotation is dropped: it is derived from the plaintext and is
    recomputed after decryption.
    """
    if record.encrypted:
        return record
    return record.with_changes(
        body=cipher.encrypt(record.body),
        annotation=None,
        encryption=EncryptionState.ENCRYPTED,
    )


def decrypt_record(record: Record, cipher: FernetCipher | None) -> Record:
    """Return a copy of ``record`` with a plaintext body.

    Plaintext records pass through unchanged.

    Raises:
        DecryptionError: No key configured, wrong key, or corrupted ciphertext
    """
    if not record.encrypted:
        return record
    if cipher is None:
        raise DecryptionError(
            f"Note {record.id} is encrypted but no encryption key is configured"
        )
    return record.with_changes(
        body=cipher.decrypt(record.body),
        encryption=EncryptionState.PLAIN,
    )
