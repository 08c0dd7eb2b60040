"""
Password-based encryption for backup files

Format: base64(salt[16] + iv[12] + AES-256-GCM ciphertext). The key is
derived from the password with PBKDF2-HMAC-SHA256.
"""

import base64
import binascii
import os
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from src.config import get_settings

SALT_BYTES = 16
IV_BYTES = 12
KEY_BYTES = 32


class BackupDecryptionError(Exception):
    """Wrong password or corrupted backup."""

    def __init__(self, message: str = "Decryption failed. Wrong password or corrupted data."):
        super().__init__(message)


def derive_key(password: str, salt: bytes, iterations: Optional[int] = None) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_BYTES,
        salt=salt,
        iterations=iterations or get_settings().security.pbkdf2_iterations,
    )
    return kdf.derive(password.encode("utf-8"))


def encrypt_text(plaintext: str, password: str, iterations: Optional[int] = None) -> str:
    if not password:
        raise ValueError("A password is required to encrypt the backup")
    salt = os.urandom(SALT_BYTES)
    iv = os.urandom(IV_BYTES)
    key = derive_key(password, salt, iterations)
    ciphertext = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)
    return base64.b64encode(salt + iv + ciphertext).decode("ascii")


def decrypt_text(payload: str, password: str, iterations: Optional[int] = None) -> str:
    """
    Raises:
        BackupDecryptionError: Bad password, bad base64, or tampered data
    """
    try:
        raw = base64.b64decode(payload.strip(), validate=True)
    except (binascii.Error, ValueError):
        raise BackupDecryptionError()
    if len(raw) <= SALT_BYTES + IV_BYTES:
        raise BackupDecryptionError()

    salt = raw[:SALT_BYTES]
    iv = raw[SALT_BYTES:SALT_BYTES + IV_BYTES]
    ciphertext = raw[SALT_BYTES + IV_BYTES:]
    key = derive_key(password or "", salt, iterations)
    try:
        return AESGCM(key).decrypt(iv, ciphertext, None).decode("utf-8")
    except (InvalidTag, UnicodeDecodeError):
        raise BackupDecryptionError()
