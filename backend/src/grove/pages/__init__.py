"""Content tree, routing, ordering and collections."""

from grove.pages.builder import BuildResult, TreeBuilder
from grove.pages.collection import Collection, DelegatedCollection
from grove.pages.document import Document
from grove.pages.producer import (
    ContentDescriptor,
    DelegatedIndex,
    DelegatedProducer,
    DocumentProducer,
    FilesystemProducer,
)
from grove.pages.query import CollectionQuery, SourceKind, SourceSpec, SourceType, parse_items
from grove.pages.routes import DispatchResult, Dispatcher, RouteIndex
from grove.pages.service import IndexState, PageIndex
from grove.pages.sorting import SortEngine, SortFlags, resolve_sort_flags
from grove.pages.taxonomy import TaxonomyMap
from grove.pages.types import PageTypes

__all__ = [
    # Model
    "Document",
    # Building
    "BuildResult",
    "TreeBuilder",
    "ContentDescriptor",
    "DelegatedIndex",
    "DelegatedProducer",
    "DocumentProducer",
    "FilesystemProducer",
    # Routing
    "DispatchResult",
    "Dispatcher",
    "RouteIndex",
    # Ordering
    "SortEngine",
    "SortFlags",
    "resolve_sort_flags",
    # Collections
    "Collection",
    "CollectionQuery",
    "DelegatedCollection",
    "SourceKind",
    "SourceSpec",
    "SourceType",
    "parse_items",
    "TaxonomyMap",
    # Service
    "IndexState",
    "PageIndex",
    "PageTypes",
]
