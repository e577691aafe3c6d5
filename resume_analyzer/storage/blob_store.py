from __future__ import annotations

import logging
import time
from functools import lru_cache
from pathlib import Path
from typing import Protocol

from resume_analyzer.core.config import settings
from resume_analyzer.core.errors import NotFoundError, StorageError

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    def put(self, key: str, content: bytes, *, content_type: str) -> None: ...

    def get(self, key: str) -> bytes: ...


def file_extension(file_name: str) -> str:
    return file_name.rsplit(".", 1)[-1] if "." in file_name else file_name


def build_storage_key(user_id: str, file_name: str, now_ms: int | None = None) -> str:
    """Key layout is ``{user_id}/{unix_millis}.{extension}``."""
    timestamp = int(time.time() * 1000) if now_ms is None else now_ms
    return f"{user_id}/{timestamp}.{file_extension(file_name)}"


class LocalBlobStore:
    """Filesystem-backed blob store rooted at a single directory."""

    def __init__(self, root: str):
        self._root = Path(root).resolve()

    def _path_for(self, key: str) -> Path:
        if not key or key.startswith("/"):
            raise StorageError(f"Invalid storage key '{key}'")
        path = (self._root / key).resolve()
        if self._root not in path.parents:
            raise StorageError(f"Invalid storage key '{key}'")
        return path

    def put(self, key: str, content: bytes, *, content_type: str) -> None:
        path = self._path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("xb") as handle:
                handle.write(content)
        except FileExistsError as exc:
            raise StorageError(f"Storage key already exists: '{key}'") from exc
        except OSError as exc:
            logger.error("blob_write_failed key=%s: %s", key, exc)
            raise StorageError("Failed to store file") from exc
        logger.info("blob_stored key=%s bytes=%s content_type=%s", key, len(content), content_type)

    def get(self, key: str) -> bytes:
        path = self._path_for(key)
        if not path.is_file():
            raise NotFoundError(f"No blob stored at '{key}'")
        return path.read_bytes()


@lru_cache(maxsize=1)
def get_blob_store() -> LocalBlobStore:
    return LocalBlobStore(settings.blob_storage_dir)
