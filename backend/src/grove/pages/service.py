"""PageIndex: the content index service.

Owns the tree, route index, taxonomy map, sort cache and cache manager for
one site. A build produces a complete ``IndexState`` which then replaces
the published one in a single assignment; readers holding the previous
state keep a consistent view.
"""

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

from grove.cache import CacheBackend, CacheManager, FileCacheBackend, Snapshot
from grove.config import Config
from grove.constants import FORMAT_VERSION_DELEGATED, FORMAT_VERSION_PAGE
from grove.errors import StorageError
from grove.pages.builder import BuildResult, TreeBuilder
from grove.pages.collection import Collection, DelegatedCollection
from grove.pages.document import Document
from grove.pages.producer import (
    DelegatedIndex,
    DelegatedProducer,
    DocumentProducer,
    FilesystemProducer,
)
from grove.pages.query import CollectionQuery
from grove.pages.routes import DispatchResult, Dispatcher, RouteIndex, resolve_home_route
from grove.pages.sorting import SortEngine, SortFlags
from grove.pages.taxonomy import TaxonomyMap
from grove.pages.types import PageTypes
from grove.storage import LocalStorage, ResourceLocator, Storage

logger = logging.getLogger(__name__)


@dataclass
class IndexState:
    """Everything one build produced."""

    root_path: str
    format_version: str
    sorter: SortEngine
    taxonomy: TaxonomyMap
    routes: RouteIndex = field(default_factory=RouteIndex)
    instances: dict[str, Document] = field(default_factory=dict)
    children: dict[str, dict[str, dict]] = field(default_factory=dict)
    cache_id: str = ""
    last_modified: int = 0

    @classmethod
    def empty(
        cls, config: Config, root_path: str, format_version: str, cache_id: str = ""
    ) -> "IndexState":
        instances: dict[str, Document] = {}
        return cls(
            root_path=root_path,
            format_version=format_version,
            sorter=SortEngine(
                instances.get,
                intl_enabled=config.pages.intl_enabled,
                collation_locale=config.pages.collation_locale,
            ),
            taxonomy=TaxonomyMap(config.site.taxonomies),
            instances=instances,
            cache_id=cache_id,
        )

    def build_result(self) -> BuildResult:
        """BuildResult writing into this state's instance and children maps."""
        return BuildResult(
            root_path=self.root_path, instances=self.instances, children=self.children
        )

    def to_snapshot(self) -> Snapshot:
        return Snapshot(
            format_version=self.format_version,
            instances={path: document.to_dict() for path, document in self.instances.items()},
            routes=self.routes.to_dict(),
            children={path: dict(children) for path, children in self.children.items()},
            taxonomy=self.taxonomy.to_dict(),
            sort=self.sorter.cache,
        )

    @classmethod
    def from_snapshot(
        cls, snapshot: Snapshot, config: Config, root_path: str, cache_id: str = ""
    ) -> "IndexState":
        state = cls.empty(config, root_path, snapshot.format_version, cache_id)
        for path, data in snapshot.instances.items():
            state.instances[path] = Document.from_dict(data)
        state.routes = RouteIndex(snapshot.routes)
        state.children = {path: dict(children) for path, children in snapshot.children.items()}
        state.taxonomy = TaxonomyMap.from_dict(snapshot.taxonomy, config.site.taxonomies)
        state.sorter.load(snapshot.sort)
        state.last_modified = max((d.modified for d in state.instances.values()), default=0)
        return state


class PageIndex:
    """Content index for one site.

    Args:
        config: Site configuration.
        storage: Storage the pages are read from (local filesystem by default).
        cache_backend: Snapshot store; defaults to JSON files in the cache
            directory.
        delegated: External object store owning the pages. When given, the
            tree is built from its index instead of the storage tree.
        language: Active language; defaults to the configured one.
    """

    def __init__(
        self,
        config: Config,
        storage: Storage | None = None,
        cache_backend: CacheBackend | None = None,
        delegated: DelegatedIndex | None = None,
        language: str | None = None,
    ) -> None:
        self.config = config
        self.storage = storage or LocalStorage()
        self.delegated = delegated
        if language is None:
            language = config.languages.active_language if config.languages.enabled else ""
        self.language = language

        self.locator = ResourceLocator(self.storage)
        self.locator.add_path("page", str(config.pages_path))
        self.locator.add_path("cache", str(config.cache_path))
        self.locator.add_path("theme", str(config.templates_path))

        if cache_backend is None:
            cache_backend = FileCacheBackend(config.cache_path)
        self.cache_manager = CacheManager(
            cache_backend,
            self.storage,
            check_method=config.cache.check_method,
            enabled=config.cache.enabled,
        )

        self._state: IndexState | None = None
        self._enabled = True
        self._home_route: str | None = None
        self._page_types: PageTypes | None = None

    def init(self) -> None:
        """Build or load the index once. Later calls do nothing."""
        if self._state is None:
            self.rebuild()

    def rebuild(self, force: bool = False) -> IndexState:
        """Build (or load from cache) a new state and publish it.

        Args:
            force: Ignore any cached snapshot.

        Returns:
            The published state.

        Raises:
            StorageError: If the pages directory does not exist.
            DuplicatePathError: If the producer yields a path twice.
        """
        state = self._load_state(force)
        self._state = state
        return state

    def reset(self) -> None:
        """Drop the published state and init-once fields."""
        self._state = None
        self._home_route = None
        self._page_types = None

    def disable(self) -> None:
        """Serve only the root document until enable() is called."""
        self._enabled = False
        self._state = self._build_disabled()

    def enable(self) -> None:
        if not self._enabled:
            self._enabled = True
            self.rebuild()

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def state(self) -> IndexState:
        self.init()
        assert self._state is not None
        return self._state

    def _pages_root(self) -> str:
        if self.delegated is not None:
            return str(self.config.pages_path)
        root = self.locator.find_resource("page://")
        if not isinstance(root, str):
            raise StorageError(f"Pages directory not found: {self.config.pages_path}")
        return root

    def _build_disabled(self) -> IndexState:
        root = str(self.config.pages_path)
        state = IndexState.empty(self.config, root, FORMAT_VERSION_PAGE)
        TreeBuilder(self.config, state.sorter).build_root(root, state.build_result())
        return state

    def _load_state(self, force: bool) -> IndexState:
        if not self._enabled:
            return self._build_disabled()

        root = self._pages_root()
        producer: DocumentProducer
        if self.delegated is not None:
            version = FORMAT_VERSION_DELEGATED
            cache_id = CacheManager.delegated_cache_id(
                self.delegated.get_cache_checksum(), self.language, self.config.checksum()
            )
            producer = DelegatedProducer(self.delegated, root, self.language or None)
        else:
            version = FORMAT_VERSION_PAGE
            cache_id = self.cache_manager.cache_id(root, self.language, self.config.checksum())
            producer = FilesystemProducer(self.storage, root, self.config)

        if not force:
            snapshot = self.cache_manager.load(cache_id, version)
            if snapshot is not None:
                try:
                    state = IndexState.from_snapshot(snapshot, self.config, root, cache_id)
                except (TypeError, KeyError, ValueError, AttributeError) as e:
                    logger.warning(f"Discarding unreadable page cache {cache_id}: {e}")
                    self.cache_manager.invalidate(cache_id)
                else:
                    logger.info(f"Page cache hit ({cache_id})")
                    return state

        logger.info(f"Page cache missed, rebuilding pages ({cache_id})")
        state = self._build(producer, root, version, cache_id)
        self.cache_manager.store(cache_id, state.to_snapshot())
        return state

    def _build(
        self, producer: DocumentProducer, root: str, version: str, cache_id: str
    ) -> IndexState:
        start = time.perf_counter()
        state = IndexState.empty(self.config, root, version, cache_id)
        result = TreeBuilder(self.config, state.sorter).build(producer, state.build_result())
        state.last_modified = result.last_modified
        state.routes.build(state.instances.values(), self.home_route)
        for document in state.instances.values():
            if not document.root:
                state.taxonomy.add(document)
        elapsed = time.perf_counter() - start
        logger.info(f"Indexed {len(state.instances)} pages in {elapsed:.3f}s")
        return state

    @property
    def route_index(self) -> RouteIndex:
        return self.state.routes

    @property
    def taxonomy(self) -> TaxonomyMap:
        return self.state.taxonomy

    @property
    def instances(self) -> dict[str, Document]:
        return self.state.instances

    @property
    def last_modified(self) -> int:
        return self.state.last_modified

    @property
    def cache_id(self) -> str:
        return self.state.cache_id

    def get(self, path: str | None) -> Document | None:
        if path is None:
            return None
        return self.state.instances.get(path)

    def root(self) -> Document:
        state = self.state
        return state.instances[state.root_path]

    def new_collection(
        self, items: Mapping[str, dict] | None = None, params: Mapping[str, Any] | None = None
    ) -> Collection:
        cls = DelegatedCollection if self.delegated is not None else Collection
        return cls(items, params, self)

    def children(self, path: str) -> Collection:
        return self.new_collection(self.state.children.get(path, {}))

    def find(self, route: str, all: bool = False) -> Document | None:
        """Document for a route (fallbacks applied, no redirects), or None."""
        return self.dispatch(route, all=all, redirect=False).document

    def dispatch(self, route: str, all: bool = False, redirect: bool = True) -> DispatchResult:
        return Dispatcher(self, self.config).dispatch(route, all=all, redirect=redirect)

    def all(self, document: Document | None = None) -> Collection:
        """Every document below ``document`` (default: root), itself included
        unless it is the root, in depth-first order."""
        state = self.state
        current = document or self.root()
        items: dict[str, dict] = {}
        stack = [current.path]
        while stack:
            path = stack.pop()
            found = state.instances.get(path)
            if found is None:
                continue
            if not found.root:
                items[path] = {"slug": found.slug}
            stack.extend(reversed(list(state.children.get(path, {}))))
        return self.new_collection(items)

    def ancestor(self, route: str, path: str | None = None) -> Document | None:
        """Nearest document at or above ``route`` whose path is ``path``."""
        if path is None:
            return None
        document = self.find(route, all=True)
        while document is not None:
            if document.path == path:
                return document
            parent = self.get(document.parent_path)
            if parent is None or parent.root:
                return None
            document = parent
        return None

    def inherited(self, route: str, field: str | None = None) -> Document | None:
        """Nearest ancestor of ``route`` that sets header ``field``."""
        if field is None:
            return None
        document = self.find(route, all=True)
        parent = self.get(document.parent_path) if document else None
        while parent is not None:
            if parent.value(f"header.{field}") is not None:
                return parent
            if parent.root:
                return None
            parent = self.get(parent.parent_path)
        return None

    def sort(
        self,
        document: Document,
        order_by: str | None = None,
        order_dir: str | None = None,
        flags: SortFlags | None = None,
    ) -> dict[str, dict]:
        """Children of ``document`` ordered by a field (cached per field)."""
        state = self.state
        children = state.children.get(document.path, {})
        return state.sorter.sort(document, children, order_by, order_dir, flags)

    def sort_collection(
        self,
        items: Mapping[str, dict],
        order_by: str,
        order_dir: str = "asc",
        manual: list[str] | None = None,
        flags: SortFlags | None = None,
    ) -> list[str]:
        return self.state.sorter.sort_collection(items, order_by, order_dir, manual, flags)

    def collection(
        self,
        params: Mapping[str, Any] | None = None,
        self_document: Document | None = None,
        page: int | None = None,
    ) -> Collection:
        """Run a collection definition.

        Args:
            params: Definition mapping; defaults to ``self_document``'s
                ``content`` header.
            self_document: Document ``@self`` refers to.
            page: Page number for pagination.
        """
        if params is None:
            content = self_document.header.get("content") if self_document else None
            params = content if isinstance(content, Mapping) else {}
        query = CollectionQuery.from_params(params, default_limit=self.config.pagination.limit)
        return query.execute(self, self_document, page)

    def get_list(
        self,
        current: Document | None = None,
        level: int = 0,
        raw_routes: bool = False,
        show_all: bool = True,
        show_full_path: bool = False,
        show_slug: bool = False,
        show_modular: bool = False,
        limit_levels: int | None = None,
    ) -> dict[str, str]:
        """Route -> indented label for every document, for pickers.

        Raises:
            ValueError: If ``level`` is given without ``current``.
        """
        if current is None:
            if level:
                raise ValueError("get_list() needs a document when level is set")
            current = self.root()

        result: dict[str, str] = {}
        if not current.root:
            route = current.raw_route if raw_routes else current.route
            if show_full_path:
                label = current.route
            else:
                extra = f"({current.slug}) " if show_slug else ""
                label = f"{'--' * level}> {extra}{current.title}"
            result[route] = label

        if limit_levels is None or level + 1 < limit_levels:
            for child in self.children(current.path):
                if show_all or child.routable or (child.modular and show_modular):
                    result.update(
                        self.get_list(
                            child,
                            level + 1,
                            raw_routes,
                            show_all,
                            show_full_path,
                            show_slug,
                            show_modular,
                            limit_levels,
                        )
                    )
        return result

    def access_levels(self) -> list[str]:
        """Distinct access levels named in any document's ``access`` header."""
        levels: list[str] = []
        for document in self.all():
            access = document.header.get("access")
            if access is None:
                continue
            if isinstance(access, dict):
                for name, value in access.items():
                    if isinstance(value, dict):
                        levels.extend(str(inner) for inner in value)
                    elif isinstance(value, list):
                        levels.extend(str(inner) for inner in value)
                    else:
                        levels.append(str(name))
            elif isinstance(access, list):
                levels.extend(str(level) for level in access)
            else:
                levels.append(str(access))
        return list(dict.fromkeys(levels))

    @property
    def home_route(self) -> str:
        if self._home_route is None:
            self._home_route = resolve_home_route(self.config)
        return self._home_route

    def reset_home_route(self) -> None:
        self._home_route = None

    @property
    def page_types(self) -> PageTypes:
        if self._page_types is None:
            templates = self.locator.find_resource("theme://")
            if isinstance(templates, str):
                self._page_types = PageTypes.scan(self.storage, templates)
            else:
                self._page_types = PageTypes()
        return self._page_types

    @property
    def base(self) -> str:
        base = self.config.site.base.strip("/")
        return f"/{base}" if base else ""

    def base_route(self, lang: str | None = None) -> str:
        """Base path plus the language prefix for ``lang``."""
        languages = self.config.languages
        prefix = ""
        if languages.enabled:
            lang = lang or self.language or languages.default_language
            if lang and (lang != languages.default_language or languages.include_default_lang):
                prefix = f"/{lang}"
        return f"{self.base}{prefix}"

    def route(self, route: str = "/", lang: str | None = None) -> str:
        full = self.base_route(lang) + route.rstrip("/")
        return full or "/"

    def url(self, route: str = "/", lang: str | None = None) -> str:
        return quote(self.route(route, lang), safe="/:@!$&'()*+,;=-._~")
