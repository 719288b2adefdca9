"""At-rest encryption for RADIUS shared secrets.

Stored secrets use AES-256-GCM with a key derived (SHA-256) from the
``SESSION_SECRET`` environment variable. The stored form is
``iv_hex:tag_hex:ciphertext_hex`` with a 12-byte IV and 16-byte tag, which
keeps values written by the existing admin screens readable.
"""

from __future__ import annotations

import hashlib
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from nps_auth.exceptions import SecretDecryptionError
from nps_auth.utils.logger import get_logger

logger = get_logger(__name__)

IV_LENGTH = 12
TAG_LENGTH = 16
_DEV_KEY_MATERIAL = "default-secret-key-for-development"


def _derive_key(key_material: str | None = None) -> bytes:
    material = key_material or os.environ.get("SESSION_SECRET") or _DEV_KEY_MATERIAL
    return hashlib.sha256(material.encode("utf-8")).digest()


def is_encrypted(text: str | None) -> bool:
    """Return True when ``text`` looks like an ``iv:tag:ciphertext`` value."""
    if not text:
        return False
    parts = text.split(":")
    return len(parts) == 3 and len(parts[0]) == IV_LENGTH * 2


def encrypt_secret(plaintext: str, *, key_material: str | None = None) -> str:
    """Encrypt ``plaintext`` for storage."""
    if not plaintext:
        return ""
    iv = os.urandom(IV_LENGTH)
    sealed = AESGCM(_derive_key(key_material)).encrypt(
        iv, plaintext.encode("utf-8"), None
    )
    ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
    return f"{iv.hex()}:{tag.hex()}:{ciphertext.hex()}"


def decrypt_secret(value: str, *, key_material: str | None = None) -> str:
    """Decrypt a stored secret.

    Values that are not in the encrypted form are returned unchanged so
    plaintext secrets from an INI file or the environment work as-is.

    Raises:
        SecretDecryptionError: the value looks encrypted but cannot be opened
            (wrong ``SESSION_SECRET``, truncated or tampered data).
    """
    if not value:
        return ""
    if not is_encrypted(value):
        return value

    iv_hex, tag_hex, ct_hex = value.split(":")
    try:
        iv = bytes.fromhex(iv_hex)
        tag = bytes.fromhex(tag_hex)
        ciphertext = bytes.fromhex(ct_hex)
    except ValueError as exc:
        raise SecretDecryptionError("Encrypted secret is not valid hex") from exc
    if len(tag) != TAG_LENGTH:
        raise SecretDecryptionError("Encrypted secret has an invalid tag length")

    try:
        plaintext = AESGCM(_derive_key(key_material)).decrypt(
            iv, ciphertext + tag, None
        )
    except InvalidTag as exc:
        logger.warning(
            "Shared secret decryption failed",
            event="secrets.decrypt.failed",
        )
        raise SecretDecryptionError(
            "Unable to decrypt shared secret (check SESSION_SECRET)"
        ) from exc
    return plaintext.decode("utf-8")


__all__ = ["decrypt_secret", "encrypt_secret", "is_encrypted"]
