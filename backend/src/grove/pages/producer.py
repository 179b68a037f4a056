"""Document producers: where the tree builder gets folders and content from.

The tree builder walks a tree of folder paths and asks a producer for each
folder's children, content and modification time. ``FilesystemProducer``
answers from a storage tree; ``DelegatedProducer`` answers from an external
object store's flat index.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Protocol

from grove.config import Config
from grove.errors import StorageError
from grove.pages.frontmatter import normalize_header
from grove.storage.base import Entry, Storage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContentDescriptor:
    """The content attached to one folder.

    Filesystem content carries raw ``text`` (front matter plus body). Delegated
    content arrives already parsed as ``header`` and ``body``.
    """

    file_path: str
    extension: str
    text: str | None = None
    header: dict[str, Any] = field(default_factory=dict)
    body: str = ""
    template: str | None = None


class DocumentProducer(ABC):
    """Abstract source of folders and content for the tree builder."""

    @property
    @abstractmethod
    def root_path(self) -> str:
        """Path of the root folder."""
        pass

    @abstractmethod
    def list_children(self, path: str) -> list[str]:
        """Child folder paths of a folder, in discovery order."""
        pass

    @abstractmethod
    def get_content(self, path: str) -> ContentDescriptor | None:
        """Content of a folder, or None when it has none."""
        pass

    @abstractmethod
    def get_modified(self, path: str) -> int:
        """Modification time of a folder's own content."""
        pass


class FilesystemProducer(DocumentProducer):
    """Produce documents from a directory tree in storage.

    Each folder is listed once; the listing is filtered by the hidden-entry
    rule and the ignore lists, and the content file is the retained file
    whose name matches the highest priority extension.
    """

    def __init__(self, storage: Storage, root: str, config: Config) -> None:
        self._storage = storage
        self._root = root.rstrip("/") or "/"
        self._extensions = config.page_extensions()
        self._ignore_hidden = config.pages.ignore_hidden
        self._ignore_files = set(config.pages.ignore_files)
        self._ignore_folders = set(config.pages.ignore_folders)
        self._content_re = re.compile(
            r"^[^.]*(" + "|".join(re.escape(ext) for ext in self._extensions) + r")$"
        )
        self._listings: dict[str, tuple[list[Entry], list[Entry]]] = {}

    @property
    def root_path(self) -> str:
        return self._root

    def _listing(self, path: str) -> tuple[list[Entry], list[Entry]]:
        if path not in self._listings:
            folders: list[Entry] = []
            files: list[Entry] = []
            for entry in self._storage.list_dir(path):
                if self._ignore_hidden and entry.name.startswith("."):
                    continue
                if entry.is_dir:
                    if entry.name not in self._ignore_folders:
                        folders.append(entry)
                elif entry.name not in self._ignore_files:
                    files.append(entry)
            self._listings[path] = (folders, files)
        return self._listings[path]

    def list_children(self, path: str) -> list[str]:
        folders, _ = self._listing(path)
        return [entry.path for entry in folders]

    def get_content(self, path: str) -> ContentDescriptor | None:
        _, files = self._listing(path)
        best: tuple[int, Entry, str] | None = None
        for entry in files:
            match = self._content_re.match(entry.name)
            if not match:
                continue
            extension = match.group(1)
            priority = self._extensions.index(extension)
            if best is None or priority < best[0]:
                best = (priority, entry, extension)

        if best is None:
            return None
        _, entry, extension = best
        try:
            text = self._storage.read_text(entry.path)
        except StorageError as e:
            logger.warning(f"Skipping content of {path}: {e}")
            return None
        return ContentDescriptor(file_path=entry.path, extension=extension, text=text)

    def get_modified(self, path: str) -> int:
        _, files = self._listing(path)
        return max((entry.mtime for entry in files), default=0)


class DelegatedTranslation(Protocol):
    """A localized variant of a delegated entry."""

    header: dict[str, Any]
    template: str
    modified: int
    content: str


class DelegatedEntry(Protocol):
    """One object in a delegated store's index."""

    path: str
    slug: str

    def has_translation(self, language: str | None = None) -> bool: ...

    def get_translation(self, language: str | None = None) -> DelegatedTranslation | None: ...


class DelegatedIndex(Protocol):
    """External object store that owns page storage."""

    def get_index(self) -> dict[str, DelegatedEntry]: ...

    def get_cache_checksum(self) -> str: ...


class DelegatedProducer(DocumentProducer):
    """Produce documents from a delegated store's flat index.

    Entries without a variant in the requested language are skipped; every
    other entry is attached to the folder of its parent path.
    """

    def __init__(self, index: DelegatedIndex, root: str, language: str | None = None) -> None:
        self._root = root.rstrip("/") or "/"
        self._language = language or None
        self._children: dict[str, list[str]] = {}
        self._translations: dict[str, DelegatedTranslation] = {}

        for entry in index.get_index().values():
            path = entry.path.rstrip("/")
            if path == self._root:
                continue
            if not entry.has_translation(self._language):
                logger.debug(f"Skipping {path}: no {self._language or 'default'} translation")
                continue
            translation = entry.get_translation(self._language)
            if translation is None:
                continue
            self._translations[path] = translation
            parent = path.rsplit("/", 1)[0] or "/"
            self._children.setdefault(parent, []).append(path)

    @property
    def root_path(self) -> str:
        return self._root

    def list_children(self, path: str) -> list[str]:
        return list(self._children.get(path, []))

    def get_content(self, path: str) -> ContentDescriptor | None:
        translation = self._translations.get(path)
        if translation is None:
            return None
        suffix = f".{self._language}.md" if self._language else ".md"
        return ContentDescriptor(
            file_path=f"{path}/{translation.template}{suffix}",
            extension=suffix,
            header=normalize_header(dict(translation.header or {})),
            body=translation.content or "",
            template=translation.template,
        )

    def get_modified(self, path: str) -> int:
        translation = self._translations.get(path)
        return int(translation.modified) if translation is not None else 0
