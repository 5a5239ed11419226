from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional

from ..config import settings
from .preview import ALLOWED_EXTENSIONS, extension_of

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024

# <32 hex chars><allow-listed extension>
_STORAGE_KEY_PATTERN = re.compile(r"^[0-9a-f]{32}\.[a-z0-9]{1,5}$")


class StorageError(Exception):
    """Raised when a blob cannot be written or located."""


class UnsupportedFileType(StorageError):
    pass


class FileTooLarge(StorageError):
    pass


@dataclass
class StoredFile:
    key: str
    path: Path
    size: int


class LocalStorageService:
    """Flat-directory blob store keyed by generated opaque names.

    The client-supplied filename never reaches the filesystem; only its
    extension survives, and only if it is on the allow-list.
    """

    def __init__(self, root: Optional[Path] = None, max_bytes: Optional[int] = None) -> None:
        self.root = Path(root or settings.upload_dir)
        self.max_bytes = max_bytes if max_bytes is not None else settings.max_upload_bytes
        self.root.mkdir(parents=True, exist_ok=True)

    def _build_key(self, original_name: str) -> str:
        suffix = extension_of(original_name)
        if suffix not in ALLOWED_EXTENSIONS:
            raise UnsupportedFileType("Unsupported file type")
        return f"{uuid.uuid4().hex}{suffix}"

    def save(self, file_obj: BinaryIO, original_name: str) -> StoredFile:
        key = self._build_key(original_name)
        path = self.root / key

        total_bytes = 0
        try:
            with path.open("wb") as target:
                while True:
                    chunk = file_obj.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    total_bytes += len(chunk)
                    if total_bytes > self.max_bytes:
                        raise FileTooLarge("File too large.")
                    target.write(chunk)
        except FileTooLarge:
            path.unlink(missing_ok=True)
            raise
        except OSError as exc:
            path.unlink(missing_ok=True)
            logger.error("blob_store_failed key=%s error=%s", key, exc)
            raise StorageError("Failed to store upload") from exc

        logger.info("blob_stored key=%s bytes=%s", key, total_bytes)
        return StoredFile(key=key, path=path, size=total_bytes)

    def path_for(self, key: str) -> Optional[Path]:
        """Resolve ``key`` to an existing file inside the store, or None."""
        if not _STORAGE_KEY_PATTERN.match(key or ""):
            return None
        path = self.root / key
        if not path.is_file():
            return None
        return path

    def delete(self, key: str) -> None:
        if not _STORAGE_KEY_PATTERN.match(key or ""):
            return
        try:
            (self.root / key).unlink(missing_ok=True)
        except OSError:
            logger.warning("blob_delete_failed key=%s", key, exc_info=True)


def get_storage_service() -> LocalStorageService:
    return LocalStorageService()
