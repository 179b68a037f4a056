"""Local filesystem storage."""

import logging
import os
from collections.abc import Iterator

from grove.errors import StorageError
from grove.storage.base import Entry

logger = logging.getLogger(__name__)


class LocalStorage:
    """Storage backed by the local filesystem."""

    def list_dir(self, path: str) -> list[Entry]:
        """List a directory, sorted by entry name.

        Args:
            path: Directory to list.

        Returns:
            Entries of the directory.

        Raises:
            StorageError: If the directory cannot be read.
        """
        try:
            with os.scandir(path) as it:
                raw = list(it)
        except OSError as e:
            raise StorageError(f"Cannot list directory {path}: {e}") from e

        entries = []
        for item in raw:
            try:
                is_dir = item.is_dir()
                mtime = int(item.stat().st_mtime)
            except OSError as e:
                # Broken symlinks and races with deletion
                logger.warning(f"Skipping unreadable entry {item.path}: {e}")
                continue
            entries.append(
                Entry(
                    name=item.name,
                    path=_join(path, item.name),
                    is_dir=is_dir,
                    mtime=mtime,
                )
            )

        entries.sort(key=lambda e: e.name)
        return entries

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def is_dir(self, path: str) -> bool:
        return os.path.isdir(path)

    def mtime(self, path: str) -> int:
        try:
            return int(os.stat(path).st_mtime)
        except OSError as e:
            raise StorageError(f"Cannot stat {path}: {e}") from e

    def read_text(self, path: str) -> str:
        try:
            with open(path, encoding="utf-8") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Cannot read {path}: {e}") from e

    def read_bytes(self, path: str) -> bytes:
        try:
            with open(path, "rb") as f:
                return f.read()
        except OSError as e:
            raise StorageError(f"Cannot read {path}: {e}") from e

    def walk(self, path: str) -> Iterator[tuple[str, list[Entry], list[Entry]]]:
        """Walk a directory tree top-down.

        Yields:
            Tuples of (directory, sub-directory entries, file entries).
        """
        stack = [path]
        while stack:
            current = stack.pop()
            entries = self.list_dir(current)
            dirs = [e for e in entries if e.is_dir]
            files = [e for e in entries if not e.is_dir]
            yield current, dirs, files
            stack.extend(d.path for d in reversed(dirs))


def _join(directory: str, name: str) -> str:
    return directory.rstrip("/") + "/" + name
