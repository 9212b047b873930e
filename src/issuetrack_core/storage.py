"""Attachment storage.

``ObjectStore`` is the interface routers use; ``LocalFileStore`` keeps objects
in a directory on disk and serves them under a base URL.
"""
import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
from uuid import uuid4

logger = logging.getLogger("issuetrack-core.storage")


class StorageError(Exception):
    """Raised when an object cannot be written or removed."""
    pass


def make_object_key(original_name: str) -> str:
    """Unique key for an upload: ``<uuid>-<name with whitespace replaced by dashes>``."""
    safe_name = re.sub(r"\s+", "-", Path(original_name).name) or "file"
    return f"{uuid4()}-{safe_name}"


class ObjectStore(ABC):
    """Minimal object store interface."""

    @abstractmethod
    def put(self, data: bytes, original_name: str, content_type: str, key: Optional[str] = None) -> tuple[str, str]:
        """Store ``data`` and return ``(key, url)``."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove the object stored under ``key``. Missing objects are ignored."""


class LocalFileStore(ObjectStore):
    """Stores objects as files under ``root``."""

    def __init__(self, root: str, base_url: str = "/uploads"):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def _path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise StorageError(f"Invalid object key: {key}")
        return path

    def put(self, data: bytes, original_name: str, content_type: str, key: Optional[str] = None) -> tuple[str, str]:
        key = key or make_object_key(original_name)
        path = self._path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Failed to store {key}: {e}") from e

        logger.info(f"Stored object {key} ({len(data)} bytes, {content_type})")
        return key, f"{self.base_url}/{key}"

    def delete(self, key: str) -> None:
        path = self._path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to delete {key}: {e}") from e
        logger.info(f"Deleted object {key}")
