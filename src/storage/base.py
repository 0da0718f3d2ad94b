"""
Abstract base class for storage backends.

A backend persists one thing: the registry snapshot (RegistryState.to_dict()
plus the host's logical clock height).
"""

from abc import ABC, abstractmethod
from typing import Any


class StorageError(Exception):
    """Base exception for storage-related errors."""
    pass


class StorageReadError(StorageError):
    """Raised when reading from storage fails."""
    pass


class StorageWriteError(StorageError):
    """Raised when writing to storage fails."""
    pass


class StorageBackend(ABC):
    """
    Abstract base class for registry storage backends.

    All storage backends must implement these methods to provide
    a consistent interface for snapshot persistence.
    """

    @abstractmethod
    def load_state(self) -> dict[str, Any] | None:
        """
        Load the registry snapshot from storage.

        Returns:
            Snapshot dictionary, or None if nothing has been saved yet.

        Raises:
            StorageReadError: If reading fails
        """
        pass

    @abstractmethod
    def save_state(self, state_data: dict[str, Any]) -> None:
        """
        Save the registry snapshot, replacing any previous one.

        Args:
            state_data: JSON-safe snapshot dictionary

        Raises:
            StorageWriteError: If writing fails
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """
        Check if the storage backend is available and ready.

        Returns:
            True if storage is accessible, False otherwise
        """
        pass

    def get_info(self) -> dict[str, Any]:
        """
        Get information about the storage backend.

        Returns:
            Dictionary with backend type, status, and configuration
        """
        return {
            "backend_type": self.__class__.__name__,
            "available": self.is_available(),
        }

    def close(self) -> None:
        """
        Release resources.

        Default implementation does nothing.
        """
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
