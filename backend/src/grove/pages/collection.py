"""Ordered collections of documents.

A Collection maps document paths to ``{"slug": ...}`` info in display
order. Every operation returns a new collection; the receiver is never
modified. Documents are resolved through the owning PageIndex, so paths
that no longer resolve are skipped by filters.
"""

import random as _random
from collections.abc import Iterator, Mapping
from typing import TYPE_CHECKING, Any, Union

from grove.pages.dates import to_timestamp
from grove.pages.document import Document

if TYPE_CHECKING:
    from grove.pages.service import PageIndex


class Collection:
    """Immutable ordered mapping of document paths."""

    def __init__(
        self,
        items: Mapping[str, dict] | None = None,
        params: Mapping[str, Any] | None = None,
        index: "PageIndex | None" = None,
    ) -> None:
        self._items: dict[str, dict] = dict(items or {})
        self._params: dict[str, Any] = dict(params or {})
        self._index = index

    def _create(self, items: Mapping[str, dict]) -> "Collection":
        return type(self)(items, self._params, self._index)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Document]:
        return iter(self.documents())

    def __contains__(self, item: Union[str, Document]) -> bool:
        return _key(item) in self._items

    def __repr__(self) -> str:
        return f"{type(self).__name__}({list(self._items)!r})"

    def keys(self) -> list[str]:
        return list(self._items)

    def items(self) -> dict[str, dict]:
        return dict(self._items)

    @property
    def params(self) -> dict[str, Any]:
        return dict(self._params)

    def with_params(self, params: Mapping[str, Any]) -> "Collection":
        """Copy of the collection with ``params`` merged over the current ones."""
        collection = self._create(self._items)
        collection._params = {**self._params, **params}
        return collection

    def get(self, path: str) -> Document | None:
        if path not in self._items or self._index is None:
            return None
        return self._index.get(path)

    def documents(self) -> list[Document]:
        """Resolved documents in order, skipping paths that no longer resolve."""
        if self._index is None:
            return []
        documents = []
        for path in self._items:
            document = self._index.get(path)
            if document is not None:
                documents.append(document)
        return documents

    def to_extended_dict(self) -> dict[str, dict[str, Any]]:
        """Route -> document dict for every resolved document."""
        return {document.route: document.to_dict() for document in self.documents()}

    def first(self) -> Document | None:
        documents = self.documents()
        return documents[0] if documents else None

    def last(self) -> Document | None:
        documents = self.documents()
        return documents[-1] if documents else None

    def nth(self, position: int) -> Document | None:
        keys = list(self._items)
        if not 0 <= position < len(keys):
            return None
        return self.get(keys[position])

    def random(self, count: int = 1) -> "Collection":
        keys = list(self._items)
        picked = _random.sample(keys, min(count, len(keys)))
        return self._create({key: self._items[key] for key in picked})

    def current_position(self, path: str) -> int | None:
        keys = list(self._items)
        return keys.index(path) if path in self._items else None

    def adjacent_sibling(self, path: str, direction: int = 1) -> Document | None:
        """Document ``direction`` places away from ``path``, or None."""
        position = self.current_position(path)
        if position is None:
            return None
        return self.nth(position + direction) if position + direction >= 0 else None

    def prev_sibling(self, path: str) -> Document | None:
        return self.adjacent_sibling(path, -1)

    def next_sibling(self, path: str) -> Document | None:
        return self.adjacent_sibling(path, 1)

    def remove(self, item: Union[str, Document]) -> "Collection":
        key = _key(item)
        return self._create({k: v for k, v in self._items.items() if k != key})

    def append(self, other: Union["Collection", Mapping[str, dict]]) -> "Collection":
        """Union; entries of ``other`` win on key collision."""
        items = dict(self._items)
        items.update(_items_of(other))
        return self._create(items)

    def merge(self, other: "Collection") -> "Collection":
        items = dict(self._items)
        for key, info in _items_of(other).items():
            items[key] = info
        return self._create(items)

    def intersect(self, other: "Collection") -> "Collection":
        other_items = _items_of(other)
        return self._create({k: v for k, v in self._items.items() if k in other_items})

    def slice(self, offset: int, length: int | None = None) -> "Collection":
        keys = list(self._items)
        end = None if length is None else offset + length
        return self._create({key: self._items[key] for key in keys[offset:end]})

    def batch(self, size: int) -> list["Collection"]:
        if size < 1:
            raise ValueError("Batch size must be at least 1")
        keys = list(self._items)
        return [
            self._create({key: self._items[key] for key in keys[i : i + size]})
            for i in range(0, len(keys), size)
        ]

    def order(
        self,
        by: str,
        dir: str = "asc",
        manual: list[str] | None = None,
        flags: Any = None,
    ) -> "Collection":
        """Reorder by a document field (see SortEngine)."""
        return self._reordered(by, dir, manual, flags)

    def _reordered(
        self, by: str, dir: str, manual: list[str] | None, flags: Any
    ) -> "Collection":
        if self._index is None:
            return self._create(self._items)
        keys = self._index.sort_collection(self._items, by, dir, manual, flags)
        return self._create({key: self._items[key] for key in keys})

    def _filter(self, predicate) -> "Collection":
        if self._index is None:
            return self._create({})
        items = {}
        for path, info in self._items.items():
            document = self._index.get(path)
            if document is not None and predicate(document):
                items[path] = info
        return self._create(items)

    def published(self) -> "Collection":
        return self._filter(lambda d: d.published)

    def non_published(self) -> "Collection":
        return self._filter(lambda d: not d.published)

    def visible(self) -> "Collection":
        return self._filter(lambda d: d.visible)

    def non_visible(self) -> "Collection":
        return self._filter(lambda d: not d.visible)

    def modular(self) -> "Collection":
        return self._filter(lambda d: d.modular)

    def non_modular(self) -> "Collection":
        return self._filter(lambda d: not d.modular)

    def routable(self) -> "Collection":
        return self._filter(lambda d: d.routable)

    def non_routable(self) -> "Collection":
        return self._filter(lambda d: not d.routable)

    def of_type(self, template: str) -> "Collection":
        return self._filter(lambda d: d.template == template)

    def of_one_of_these_types(self, templates: list[str]) -> "Collection":
        return self._filter(lambda d: d.template in templates)

    def of_one_of_these_access_levels(self, levels: list[str]) -> "Collection":
        """Documents whose ``access`` header grants one of ``levels``.

        ``access`` may be a single level, a mapping of level -> flag, or a
        mapping of group -> mapping/list of levels.
        """
        return self._filter(lambda d: _has_access_level(d.header.get("access"), levels))

    def date_range(
        self, start: Any, end: Any = None, field: str | None = None
    ) -> "Collection":
        """Documents dated within [start, end].

        Args:
            start: Start date (timestamp or date text).
            end: Optional end date.
            field: Header field holding the date; defaults to the document date.

        Raises:
            ValueError: If ``start`` or ``end`` cannot be parsed.
        """
        start_ts = to_timestamp(start) if start else 0
        if start_ts is None:
            raise ValueError(f"Invalid start date: {start!r}")
        end_ts = to_timestamp(end) if end else None
        if end and end_ts is None:
            raise ValueError(f"Invalid end date: {end!r}")

        def in_range(document: Document) -> bool:
            date = to_timestamp(document.value(field)) if field else document.date
            if date is None:
                return False
            return date >= start_ts and (end_ts is None or date <= end_ts)

        return self._filter(in_range)


class DelegatedCollection(Collection):
    """Collection over a delegated store.

    Set operations and reordering are not available on this variant; they
    fail loudly rather than return partial results.
    """

    def _not_implemented(self, method: str) -> NotImplementedError:
        return NotImplementedError(f"{type(self).__name__}.{method}(): Not Implemented")

    def merge(self, other: Collection) -> Collection:
        raise self._not_implemented("merge")

    def intersect(self, other: Collection) -> Collection:
        raise self._not_implemented("intersect")

    def append(self, other: Union[Collection, Mapping[str, dict]]) -> Collection:
        raise self._not_implemented("append")

    def batch(self, size: int) -> list[Collection]:
        raise self._not_implemented("batch")

    def order(
        self,
        by: str,
        dir: str = "asc",
        manual: list[str] | None = None,
        flags: Any = None,
    ) -> Collection:
        raise self._not_implemented("order")


def _key(item: Union[str, Document]) -> str:
    return item.path if isinstance(item, Document) else item


def _items_of(other: Union[Collection, Mapping[str, dict]]) -> dict[str, dict]:
    return other.items() if isinstance(other, Collection) else dict(other)


def _has_access_level(access: Any, levels: list[str]) -> bool:
    if access is None:
        return False
    if isinstance(access, dict):
        for name, value in access.items():
            if isinstance(value, dict):
                if any(inner in levels for inner in value):
                    return True
            elif isinstance(value, list):
                if any(inner in levels for inner in value):
                    return True
            elif name in levels:
                return True
        return False
    if isinstance(access, list):
        return any(level in levels for level in access)
    return access in levels
