"""
In-memory storage backend.

Keeps the registry snapshot in memory only, useful for:
- Unit testing
- Development
- Ephemeral registries
"""

import copy
import threading
from typing import Any

from storage.base import StorageBackend


class MemoryStorage(StorageBackend):
    """
    In-memory storage backend.

    All data is lost when the process exits. Thread-safe operations.
    """

    def __init__(self):
        self._data: dict[str, Any] | None = None
        # Reentrant: get_info calls the count helpers under the lock
        self._lock = threading.RLock()
        self.save_count = 0

    def load_state(self) -> dict[str, Any] | None:
        """
        Load the snapshot from memory.

        Returns:
            Deep copy of the stored snapshot, or None if empty
        """
        with self._lock:
            if self._data is None:
                return None
            return copy.deepcopy(self._data)

    def save_state(self, state_data: dict[str, Any]) -> None:
        with self._lock:
            self._data = copy.deepcopy(state_data)
            self.save_count += 1

    def is_available(self) -> bool:
        """Memory storage is always available."""
        return True

    def get_info(self) -> dict[str, Any]:
        info = super().get_info()
        with self._lock:
            info.update(
                {
                    "has_data": self._data is not None,
                    "save_count": self.save_count,
                    "identity_count": self.get_identity_count(),
                    "asset_count": self.get_asset_count(),
                }
            )
        return info

    def clear(self) -> None:
        """Clear all stored data."""
        with self._lock:
            self._data = None

    def get_identity_count(self) -> int:
        with self._lock:
            if self._data and "state" in self._data:
                return len(self._data["state"].get("identities", {}))
            return 0

    def get_asset_count(self) -> int:
        with self._lock:
            if self._data and "state" in self._data:
                return len(self._data["state"].get("assets", {}))
            return 0
