"""
JSON file storage backend.

Default backend. Persists the registry snapshot to a local JSON file,
optionally encrypted at rest with AES-256-GCM.
"""

import json
import logging
import os
import secrets
import shutil
import threading
from datetime import datetime
from typing import Any

from encryption import (
    SALT_SIZE,
    EncryptionError,
    decrypt_state_data,
    encrypt_state_data,
    is_encrypted,
)
from storage.base import (
    StorageBackend,
    StorageError,
    StorageReadError,
    StorageWriteError,
)

logger = logging.getLogger(__name__)


class JSONFileStorage(StorageBackend):
    """
    JSON file storage backend.

    Writes go to a temp file first and are moved into place with os.replace,
    so a crash mid-write never leaves a truncated snapshot behind.

    Every snapshot is saved after each operation, so encrypted saves reuse one
    key-derivation salt per instance and only the IV changes per write.
    """

    def __init__(
        self,
        file_path: str = "registry_data.json",
        encryption_enabled: bool = False,
        encryption_key: str | None = None,
    ):
        """
        Initialize JSON file storage.

        Args:
            file_path: Path to the JSON file
            encryption_enabled: Whether to encrypt snapshots on save
            encryption_key: Passphrase; falls back to the environment
        """
        self.file_path = file_path
        self.encryption_enabled = encryption_enabled
        self.encryption_key = encryption_key
        self._salt = secrets.token_bytes(SALT_SIZE)
        self._lock = threading.Lock()

    def load_state(self) -> dict[str, Any] | None:
        """
        Load the registry snapshot from the JSON file.

        Encrypted files are decrypted transparently, whether or not
        encryption is enabled for writing.

        Returns:
            Snapshot dictionary, or None if the file doesn't exist or is empty.

        Raises:
            StorageReadError: If reading, decrypting or parsing fails
        """
        with self._lock:
            try:
                with open(self.file_path, "r", encoding="utf-8") as f:
                    raw_data = f.read()
            except FileNotFoundError:
                return None
            except PermissionError as e:
                raise StorageReadError(f"Permission denied: {self.file_path}") from e
            except OSError as e:
                raise StorageReadError(f"OS error: {e}") from e

            if not raw_data.strip():
                return None

            if is_encrypted(raw_data):
                try:
                    return decrypt_state_data(raw_data, self.encryption_key)
                except EncryptionError as e:
                    raise StorageReadError(f"Failed to decrypt snapshot: {e}") from e

            try:
                return json.loads(raw_data)
            except json.JSONDecodeError as e:
                raise StorageReadError(f"Invalid JSON format: {e}") from e

    def save_state(self, state_data: dict[str, Any]) -> None:
        """
        Save the registry snapshot to the JSON file.

        Raises:
            StorageWriteError: If encryption or writing fails
        """
        with self._lock:
            try:
                if self.encryption_enabled:
                    data = encrypt_state_data(state_data, self.encryption_key, self._salt)
                else:
                    data = json.dumps(state_data, indent=2, ensure_ascii=False)
            except (EncryptionError, TypeError, ValueError) as e:
                raise StorageWriteError(f"Failed to serialize snapshot: {e}") from e

            temp_path = f"{self.file_path}.tmp"
            try:
                with open(temp_path, "w", encoding="utf-8") as f:
                    f.write(data)
                os.replace(temp_path, self.file_path)
            except PermissionError as e:
                raise StorageWriteError(f"Permission denied: {self.file_path}") from e
            except OSError as e:
                raise StorageWriteError(f"OS error: {e}") from e

    def is_available(self) -> bool:
        """
        Check if file storage is available.

        Returns:
            True if the containing directory exists and is writable
        """
        directory = os.path.dirname(self.file_path) or "."
        if not os.path.isdir(directory):
            return False
        return os.access(directory, os.W_OK)

    def get_info(self) -> dict[str, Any]:
        info = super().get_info()
        info.update({
            "file_path": self.file_path,
            "file_exists": os.path.exists(self.file_path),
            "encryption_enabled": self.encryption_enabled,
        })

        if os.path.exists(self.file_path):
            try:
                stat = os.stat(self.file_path)
                info["file_size_bytes"] = stat.st_size
                info["last_modified"] = stat.st_mtime
            except OSError as e:
                logger.warning("Could not stat %s: %s", self.file_path, e)

        return info

    def backup(self, backup_path: str | None = None) -> str:
        """
        Copy the current snapshot file aside.

        Args:
            backup_path: Path for the copy (default: timestamped .backup suffix)

        Returns:
            Path to the backup file

        Raises:
            StorageError: If there is nothing to back up or the copy fails
        """
        if backup_path is None:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            backup_path = f"{self.file_path}.{timestamp}.backup"

        with self._lock:
            if not os.path.exists(self.file_path):
                raise StorageError("No file to backup")
            try:
                shutil.copy2(self.file_path, backup_path)
            except OSError as e:
                raise StorageError(f"Backup failed: {e}") from e

        logger.info("Backed up %s to %s", self.file_path, backup_path)
        return backup_path
