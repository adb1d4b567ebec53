"""
Local filesystem storage adapter.

Stores archives under a root directory, one file per key. Suitable for
single-node deployments, development and tests.
"""

from pathlib import Path
from typing import Tuple

from backend.src.services.exceptions import StorageError
from backend.src.services.storage.base import StorageAdapter
from backend.src.utils.logging_config import get_logger


logger = get_logger("storage")


class LocalStorageAdapter(StorageAdapter):
    """
    Local filesystem adapter.

    Example:
        >>> adapter = LocalStorageAdapter("/tmp/ota-storage")
        >>> adapter.upload_file("updates/1.0.0/a.zip", b"PK...")
        'updates/1.0.0/a.zip'
    """

    backend_name = "local"

    def __init__(self, root_dir: str):
        """
        Initialize LocalStorageAdapter.

        Args:
            root_dir: Directory holding stored objects (created if missing)
        """
        self.root = Path(root_dir).expanduser().resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        """Map a key to a file path, verifying it stays inside the root."""
        key = self._key(path)
        file_path = (self.root / key).resolve()
        if self.root != file_path and self.root not in file_path.parents:
            raise StorageError(f"Invalid storage key: {path}", path=path)
        return file_path

    def upload_file(self, path: str, content: bytes) -> str:
        file_path = self._resolve(path)
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_bytes(content)
        except OSError as e:
            logger.error(f"Local storage write failed path={path} error={e}")
            raise StorageError(f"Failed to store {path}: {e}", path=path)
        logger.info(f"Stored {len(content)} bytes at {path}")
        return self._key(path)

    def read_file(self, path: str) -> bytes:
        file_path = self._resolve(path)
        if not file_path.is_file():
            raise StorageError(f"Object not found in storage: {path}", path=path)
        try:
            return file_path.read_bytes()
        except OSError as e:
            logger.error(f"Local storage read failed path={path} error={e}")
            raise StorageError(f"Failed to read {path}: {e}", path=path)

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def test_connection(self) -> Tuple[bool, str]:
        if not self.root.is_dir():
            return False, f"Storage directory does not exist: {self.root}"
        return True, f"Local storage at {self.root}"
