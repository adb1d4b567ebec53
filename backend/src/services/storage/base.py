"""
Abstract base class for blob storage adapters.

Defines the interface the server needs from the storage holding uploaded
update archives. Keys are opaque, slash-separated strings such as
``updates/1.0.0/20250101120000-ab12cd34.zip``.

Design Pattern: Strategy pattern for pluggable storage backends
"""

from abc import ABC, abstractmethod
from typing import Tuple

from backend.src.services.exceptions import StorageError


class StorageAdapter(ABC):
    """
    Abstract base class for blob storage adapters.

    Methods:
        upload_file(): Store bytes under a key
        read_file(): Fetch the bytes stored under a key
        exists(): Check whether a key is present
        test_connection(): Validate credentials and connectivity

    All failures surface as StorageError so callers can map them to a single
    upstream error response.

    Usage:
        >>> adapter = LocalStorageAdapter("/var/lib/ota/storage")
        >>> key = adapter.upload_file("updates/1.0.0/bundle.zip", data)
        >>> adapter.read_file(key) == data
        True
    """

    backend_name = "abstract"

    @abstractmethod
    def upload_file(self, path: str, content: bytes) -> str:
        """
        Store ``content`` under ``path``.

        Returns:
            The key to persist on the Release row

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def read_file(self, path: str) -> bytes:
        """
        Read the bytes stored under ``path``.

        Raises:
            StorageError: If the key is missing or the read fails
        """
        pass

    @abstractmethod
    def exists(self, path: str) -> bool:
        """
        Check whether ``path`` holds an object.

        Raises:
            StorageError: If the backend cannot be queried
        """
        pass

    @abstractmethod
    def test_connection(self) -> Tuple[bool, str]:
        """
        Test connectivity to the backend.

        Returns:
            Tuple of (success, message)
        """
        pass

    @staticmethod
    def normalize_key(path: str) -> str:
        """
        Normalize a storage key and reject traversal segments.

        Raises:
            ValueError: If the key is empty or escapes the storage root
        """
        if not path or not path.strip():
            raise ValueError("Storage key cannot be empty")
        key = path.strip().replace("\\", "/").lstrip("/")
        segments = key.split("/")
        if any(segment in ("", ".", "..") for segment in segments):
            raise ValueError(f"Invalid storage key: {path}")
        return key

    def _key(self, path: str) -> str:
        """normalize_key() raising StorageError for adapter callers."""
        try:
            return self.normalize_key(path)
        except ValueError as e:
            raise StorageError(str(e), path=path)
