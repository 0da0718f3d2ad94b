"""
Property Registry - Snapshot Encryption

Protects registry snapshots at rest. Identity records carry names, emails and
free-form attributes, so the JSON snapshot can be encrypted as a whole before
it is written.

Uses AES-256-GCM for authenticated encryption with PBKDF2 key derivation:
- PBKDF2-HMAC-SHA256 (600,000 iterations)
- Random IV for each encryption operation; random salt unless the caller
  supplies one (a storage backend keeps one salt per instance)
- Derived keys cached per (passphrase, salt)
- Passphrase taken from PROPERTY_REGISTRY_ENCRYPTION_KEY
"""

import base64
import functools
import json
import os
import secrets
from typing import Any, Optional, Union

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

# Constants
SALT_SIZE = 16  # 128 bits
IV_SIZE = 12  # 96 bits for GCM
KEY_SIZE = 32  # 256 bits
TAG_SIZE = 16
PBKDF2_ITERATIONS = 600_000
KEY_CACHE_SIZE = 32

ENCRYPTION_KEY_ENV = "PROPERTY_REGISTRY_ENCRYPTION_KEY"
ENCRYPTION_ENABLED_ENV = "PROPERTY_REGISTRY_ENCRYPTION_ENABLED"

# Encrypted data prefix for identification
ENCRYPTED_PREFIX = "ENC:1:"


class EncryptionError(Exception):
    """Raised when encryption/decryption fails."""
    pass


class KeyDerivationError(Exception):
    """Raised when key derivation fails."""
    pass


@functools.lru_cache(maxsize=KEY_CACHE_SIZE)
def _derive_key(password: str, salt: bytes) -> bytes:
    """
    Derive a 256-bit encryption key from a passphrase using PBKDF2.

    Results are cached, so repeated saves and loads under one salt pay for
    the 600,000 iterations once.

    Args:
        password: The passphrase to derive the key from
        salt: Random salt for key derivation

    Returns:
        32-byte derived key
    """
    if not password:
        raise KeyDerivationError("Password cannot be empty")

    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_SIZE,
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
        backend=default_backend(),
    )
    return kdf.derive(password.encode("utf-8"))


def _get_encryption_key() -> Optional[str]:
    return os.getenv(ENCRYPTION_KEY_ENV)


def is_encryption_enabled() -> bool:
    """
    Check if snapshot encryption is enabled.

    Returns:
        True if encryption is not switched off and a key is configured
    """
    enabled = os.getenv(ENCRYPTION_ENABLED_ENV, "true").lower()
    if enabled in ("false", "0", "no", "off"):
        return False
    return _get_encryption_key() is not None


def generate_encryption_key() -> str:
    """
    Generate a cryptographically secure passphrase.

    Returns:
        Base64-encoded 256-bit random key
    """
    return base64.b64encode(secrets.token_bytes(KEY_SIZE)).decode("utf-8")


def encrypt_data(
    data: Union[str, bytes, dict[str, Any]],
    key: Optional[str] = None,
    salt: Optional[bytes] = None,
) -> str:
    """
    Encrypt data using AES-256-GCM.

    Args:
        data: Data to encrypt (string, bytes, or JSON-serializable dict)
        key: Optional passphrase. If not provided, uses the environment variable.
        salt: Optional key-derivation salt of SALT_SIZE bytes. A fresh random
            salt is drawn when omitted.

    Returns:
        ENCRYPTED_PREFIX + base64(salt + iv + ciphertext)

    Raises:
        EncryptionError: If no key is available or encryption fails
    """
    encryption_key = key or _get_encryption_key()
    if not encryption_key:
        raise EncryptionError(
            f"No encryption key provided. Set {ENCRYPTION_KEY_ENV} environment variable "
            "or generate one with generate_encryption_key()"
        )
    if salt is None:
        salt = secrets.token_bytes(SALT_SIZE)
    elif len(salt) != SALT_SIZE:
        raise EncryptionError(f"Salt must be {SALT_SIZE} bytes")

    try:
        if isinstance(data, dict):
            data_bytes = json.dumps(data, sort_keys=True).encode("utf-8")
        elif isinstance(data, str):
            data_bytes = data.encode("utf-8")
        else:
            data_bytes = data

        iv = secrets.token_bytes(IV_SIZE)
        aesgcm = AESGCM(_derive_key(encryption_key, salt))
        ciphertext = aesgcm.encrypt(iv, data_bytes, None)

        encoded = base64.b64encode(salt + iv + ciphertext).decode("utf-8")
        return ENCRYPTED_PREFIX + encoded

    except Exception as e:
        raise EncryptionError(f"Encryption failed: {str(e)}") from e


def decrypt_data(
    encrypted_data: str, key: Optional[str] = None, return_type: str = "auto"
) -> Union[str, bytes, dict[str, Any]]:
    """
    Decrypt AES-256-GCM encrypted data.

    Args:
        encrypted_data: Output of encrypt_data()
        key: Optional passphrase. If not provided, uses the environment variable.
        return_type: "auto", "str", "bytes", or "json"

    Returns:
        Decrypted data as string, bytes, or dict based on return_type

    Raises:
        EncryptionError: If the key is wrong, the data was tampered with,
            or the format is invalid
    """
    encryption_key = key or _get_encryption_key()
    if not encryption_key:
        raise EncryptionError(
            f"No decryption key provided. Set {ENCRYPTION_KEY_ENV} environment variable."
        )

    try:
        if not is_encrypted(encrypted_data):
            raise EncryptionError("Invalid encrypted data format: missing prefix")

        blob = base64.b64decode(encrypted_data[len(ENCRYPTED_PREFIX):])
        if len(blob) < SALT_SIZE + IV_SIZE + TAG_SIZE:
            raise EncryptionError("Invalid encrypted data: too short")

        salt = blob[:SALT_SIZE]
        iv = blob[SALT_SIZE:SALT_SIZE + IV_SIZE]
        ciphertext = blob[SALT_SIZE + IV_SIZE:]

        aesgcm = AESGCM(_derive_key(encryption_key, salt))
        plaintext = aesgcm.decrypt(iv, ciphertext, None)

        if return_type == "bytes":
            return plaintext

        plaintext_str = plaintext.decode("utf-8")
        if return_type == "str":
            return plaintext_str

        try:
            return json.loads(plaintext_str)
        except json.JSONDecodeError:
            if return_type == "json":
                raise
            return plaintext_str

    except EncryptionError:
        raise
    except Exception as e:
        raise EncryptionError(f"Decryption failed: {str(e)}") from e


def is_encrypted(data: Any) -> bool:
    """True if data is a string produced by encrypt_data()."""
    return isinstance(data, str) and data.startswith(ENCRYPTED_PREFIX)


def encrypt_state_data(
    state_data: dict[str, Any], key: Optional[str] = None, salt: Optional[bytes] = None
) -> str:
    """Encrypt a full registry snapshot for storage."""
    return encrypt_data(state_data, key, salt)


def decrypt_state_data(encrypted_data: str, key: Optional[str] = None) -> dict[str, Any]:
    """Decrypt a registry snapshot written by encrypt_state_data()."""
    return decrypt_data(encrypted_data, key, return_type="json")


__all__ = [
    "EncryptionError",
    "KeyDerivationError",
    "is_encryption_enabled",
    "generate_encryption_key",
    "encrypt_data",
    "decrypt_data",
    "is_encrypted",
    "encrypt_state_data",
    "decrypt_state_data",
    "SALT_SIZE",
    "ENCRYPTION_KEY_ENV",
    "ENCRYPTION_ENABLED_ENV",
]
