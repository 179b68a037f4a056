"""Narrow storage interface the tree builder and cache manager depend on."""

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class Entry:
    """A single directory entry."""

    name: str
    path: str  # Full storage path ("/" separated)
    is_dir: bool
    mtime: int  # Modification time in whole seconds


class Storage(Protocol):
    """Directory listing and file access.

    Paths are plain strings using "/" as separator. Listings are returned in
    lexicographic order so discovery order is deterministic.
    """

    def list_dir(self, path: str) -> list[Entry]: ...

    def exists(self, path: str) -> bool: ...

    def is_dir(self, path: str) -> bool: ...

    def mtime(self, path: str) -> int: ...

    def read_text(self, path: str) -> str: ...

    def read_bytes(self, path: str) -> bytes: ...

    def walk(self, path: str) -> Iterator[tuple[str, list[Entry], list[Entry]]]: ...
