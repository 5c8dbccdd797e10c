"""
Avatar cache

Two tiers keyed by resource URL: an in-process map holding the bytes handed to
the renderer, and a directory holding one file per URL named by the SHA-256 of
the URL. Staleness on disk is decided by file modification time alone.
"""

import hashlib
import logging
import os
import time
from pathlib import Path

logger = logging.getLogger("matrix_status.cache")

FRESHNESS_WINDOW = 3 * 60 * 60
DEFAULT_MAX_AGE = 7 * 24 * 60 * 60
DEFAULT_MAX_BYTES = 50 * 1024 * 1024


class CacheStore:
    def __init__(
        self,
        cache_dir: str | Path,
        freshness_window: float = FRESHNESS_WINDOW,
        max_age: float = DEFAULT_MAX_AGE,
        max_bytes: int = DEFAULT_MAX_BYTES,
    ):
        self.cache_dir = Path(cache_dir)
        self.freshness_window = freshness_window
        self.max_age = max_age
        self.max_bytes = max_bytes
        self._memory: dict[str, bytes] = {}

    @staticmethod
    def key_for(url: str) -> str:
        return hashlib.sha256(url.encode("utf-8")).hexdigest()

    def path_for(self, url: str) -> Path:
        return self.cache_dir / self.key_for(url)

    # memory tier

    def get_memory(self, url: str) -> bytes | None:
        return self._memory.get(url)

    def put_memory(self, url: str, data: bytes) -> None:
        self._memory[url] = data

    def clear_memory(self) -> None:
        self._memory.clear()

    # disk tier

    def disk_age(self, url: str, now: float | None = None) -> float | None:
        """Seconds since the disk copy was written, or None when absent."""
        try:
            mtime = self.path_for(url).stat().st_mtime
        except OSError:
            return None
        return (time.time() if now is None else now) - mtime

    def is_fresh(self, url: str, now: float | None = None) -> bool:
        age = self.disk_age(url, now)
        return age is not None and age <= self.freshness_window

    def read_disk(self, url: str) -> bytes | None:
        try:
            return self.path_for(url).read_bytes()
        except OSError:
            return None

    def write_disk(self, url: str, data: bytes) -> Path:
        """
        Write bytes for ``url``

        The file is written under a temporary name and renamed so a reader
        never sees a partial image.
        """
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(url)
        tmp_path = path.with_name(f".{path.name}.tmp")
        tmp_path.write_bytes(data)
        os.replace(tmp_path, path)
        return path

    def prune(self, now: float | None = None) -> int:
        """
        Apply the eviction policy to the disk tier

        Entries older than ``max_age`` are removed first, then the oldest
        remaining entries until the directory holds at most ``max_bytes``.

        Returns:
            Number of removed files
        """
        if not self.cache_dir.is_dir():
            return 0
        now = time.time() if now is None else now

        entries = []
        for path in self.cache_dir.iterdir():
            if not path.is_file() or path.name.startswith("."):
                continue
            try:
                stat = path.stat()
            except OSError:
                continue
            entries.append((stat.st_mtime, stat.st_size, path))

        removed = 0
        kept = []
        for mtime, size, path in entries:
            if now - mtime > self.max_age:
                removed += self._unlink(path)
            else:
                kept.append((mtime, size, path))

        kept.sort(key=lambda entry: entry[0])
        total = sum(size for _, size, _ in kept)
        for _, size, path in kept:
            if total <= self.max_bytes:
                break
            removed += self._unlink(path)
            total -= size

        if removed:
            logger.info(f"Pruned {removed} cached avatar(s) from {self.cache_dir}")
        return removed

    @staticmethod
    def _unlink(path: Path) -> int:
        try:
            path.unlink()
        except OSError as e:
            logger.debug(f"Could not remove cache file {path}: {e}")
            return 0
        return 1
