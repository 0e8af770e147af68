"""Key/bytes caches for bulk downloads.

Fetchers receive a cache instead of checking for files on disk themselves,
so tests can swap in MemoryCache.
"""

import logging
from pathlib import Path
from typing import Protocol

from genesets_pipeline.errors import OutputWriteFailure

logger = logging.getLogger(__name__)


class ResponseCache(Protocol):
    """Minimal cache interface: bytes keyed by a deterministic string."""

    def get(self, key: str) -> bytes | None:
        ...

    def put(self, key: str, data: bytes) -> None:
        ...


class FileCache:
    """Cache storing each key as a file under one directory."""

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        # Keys are filenames; refuse anything that would escape the directory
        name = Path(key).name
        if not name or name != key:
            raise ValueError(f"Cache key must be a plain filename: {key!r}")
        return self.directory / name

    def get(self, key: str) -> bytes | None:
        path = self._path(key)
        if not path.exists():
            return None
        logger.debug(f"Cache hit: {path}")
        return path.read_bytes()

    def put(self, key: str, data: bytes) -> None:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix(path.suffix + ".tmp")
            tmp_path.write_bytes(data)
            tmp_path.replace(path)
        except OSError as e:
            raise OutputWriteFailure(path, str(e)) from e
        logger.debug(f"Cached {len(data)} bytes at {path}")


class MemoryCache:
    """In-process cache, mainly for tests."""

    def __init__(self, initial: dict[str, bytes] | None = None):
        self._store: dict[str, bytes] = dict(initial or {})

    def get(self, key: str) -> bytes | None:
        return self._store.get(key)

    def put(self, key: str, data: bytes) -> None:
        self._store[key] = data

    def __contains__(self, key: str) -> bool:
        return key in self._store
