"""Build the document tree from a producer."""

import hashlib
import logging
import time
from dataclasses import dataclass, field

from grove.config import Config
from grove.constants import MODULAR_PREFIX, MODULAR_TEMPLATE
from grove.errors import DuplicatePathError
from grove.pages.document import Document, slug_from_folder
from grove.pages.producer import DocumentProducer
from grove.pages.sorting import SortEngine

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    """Instances and children produced by one tree build."""

    root_path: str
    instances: dict[str, Document] = field(default_factory=dict)
    children: dict[str, dict[str, dict]] = field(default_factory=dict)
    last_modified: int = 0


def document_id(modified: int, file_path: str) -> str:
    """Identifier that changes whenever the content file or its mtime changes."""
    return f"{modified}{hashlib.md5(file_path.encode('utf-8')).hexdigest()}"


class TreeBuilder:
    """Recursively turn producer folders into Documents.

    The builder registers every Document in ``instances`` and every
    parent/child edge in ``children``; each children entry is ordered by the
    sort engine as soon as the folder has been scanned.
    """

    def __init__(self, config: Config, sorter: SortEngine) -> None:
        self._config = config
        self._sorter = sorter

    def build(
        self, producer: DocumentProducer, result: BuildResult | None = None
    ) -> BuildResult:
        """Build the full tree.

        Args:
            producer: Source of folders and content.
            result: Maps to fill in. The sort engine looks documents up in
                ``result.instances`` so callers share it with the engine.

        Returns:
            The filled BuildResult.

        Raises:
            DuplicatePathError: If a path is produced twice.
        """
        result = result or BuildResult(root_path=producer.root_path)
        start = time.perf_counter()
        self._recurse(producer, producer.root_path, None, result)
        elapsed = time.perf_counter() - start
        logger.debug(f"Built {len(result.instances)} documents in {elapsed:.3f}s")
        return result

    def build_root(self, root: str, result: BuildResult | None = None) -> BuildResult:
        """Build only the root document (pages disabled)."""
        result = result or BuildResult(root_path=root)
        document = self._new_document(root, None)
        result.instances[root] = document
        result.children[root] = {}
        return result

    def _new_document(self, path: str, parent: Document | None) -> Document:
        document = Document.for_folder(path, parent)
        if parent is None:
            document.order_by = self._config.pages.order_by
            document.order_dir = self._config.pages.order_dir
        else:
            document.order_by = parent.order_by
            document.order_dir = parent.order_dir
        return document

    def _recurse(
        self,
        producer: DocumentProducer,
        path: str,
        parent: Document | None,
        result: BuildResult,
    ) -> Document:
        document = self._new_document(path, parent)

        if path in result.instances and parent is not None:
            raise DuplicatePathError(path)
        result.instances[path] = document
        if parent is not None:
            result.children.setdefault(parent.path, {})[path] = {"slug": document.slug}
        result.children.setdefault(path, {})

        content_exists = False
        if parent is not None:
            content = producer.get_content(path)
            if content is not None:
                if content.text is not None:
                    document.init_content(content.file_path, content.extension, content.text)
                else:
                    document.init_header(
                        content.file_path,
                        content.extension,
                        content.header,
                        content.body,
                        content.template,
                    )
                content_exists = True

            document.raw_route = f"{parent.raw_route}/{slug_from_folder(document.folder)}"
            document.route = document.default_route or f"{parent.route}/{document.slug}"

        if document.header_order_by:
            document.order_by = document.header_order_by
        if document.header_order_dir:
            document.order_dir = document.header_order_dir

        last_modified = producer.get_modified(path)
        param_sep = self._config.pages.param_sep

        for child_path in producer.list_children(path):
            name = child_path.rstrip("/").rsplit("/", 1)[-1]
            if param_sep and param_sep in name:
                continue
            child = self._recurse(producer, child_path, document, result)
            if name.startswith(MODULAR_PREFIX):
                child.routable = False
            result.children[path][child_path] = {"slug": child.slug}

        if not content_exists:
            document.routable = False
            if self._config.pages.hide_empty_folders:
                document.visible = False

        if document.template == MODULAR_TEMPLATE:
            for child_path in result.children[path]:
                last_modified = max(last_modified, result.instances[child_path].modified)

        document.modified = last_modified
        document.id = document_id(last_modified, document.file_path or path)
        result.last_modified = max(result.last_modified, last_modified)

        result.children[path] = self._sorter.sort(document, result.children[path])
        return document
