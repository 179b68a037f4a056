"""Collection queries: parse a collection definition once, run it many times.

A definition is the mapping found under a document's ``content`` header::

    items:
      "@page.children": /blog
    taxonomy:
      tag: [python]
    filter:
      visible: true
    dateRange:
      start: 2024-01-01
    order:
      by: date
      dir: desc
    limit: 10
    pagination: true

``items`` accepts ``@self`` / ``self@`` (and ``.children``, ``.modular``,
``.all``, ``.parent``, ``.siblings``, ``.descendants``), ``@page`` with a
route, ``@root``, ``@taxonomy`` with a mapping or ``@taxonomy.<name>`` with
terms, and lists of those, which are unioned with the first occurrence of a
path winning.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from grove.errors import PageIndexError
from grove.pages.collection import Collection
from grove.pages.document import Document
from grove.pages.sorting import resolve_sort_flags

if TYPE_CHECKING:
    from grove.pages.service import PageIndex

logger = logging.getLogger(__name__)


class SourceKind(Enum):
    SELF = "self"
    PAGE = "page"
    ROOT = "root"
    TAXONOMY = "taxonomy"
    UNKNOWN = "unknown"


class SourceType(Enum):
    ALL = "all"
    MODULAR = "modular"
    CHILDREN = "children"
    SELF = "self"
    PARENT = "parent"
    SIBLINGS = "siblings"
    DESCENDANTS = "descendants"
    UNKNOWN = "unknown"


_KINDS = {
    "@self": SourceKind.SELF,
    "self@": SourceKind.SELF,
    "@page": SourceKind.PAGE,
    "page@": SourceKind.PAGE,
    "@root": SourceKind.ROOT,
    "root@": SourceKind.ROOT,
    "@taxonomy": SourceKind.TAXONOMY,
    "taxonomy@": SourceKind.TAXONOMY,
}

# "page" is accepted as a synonym of "self"
_TYPES = {t.value: t for t in SourceType if t is not SourceType.UNKNOWN}
_TYPES["page"] = SourceType.SELF

# Boolean filters: name -> (positive collection method, negative method)
_FILTER_PAIRS = {
    "published": ("published", "non_published"),
    "visible": ("visible", "non_visible"),
    "modular": ("modular", "non_modular"),
    "routable": ("routable", "non_routable"),
}


@dataclass(frozen=True)
class SourceSpec:
    """One parsed ``items`` source.

    ``route`` is set for PAGE sources, ``taxonomy`` for TAXONOMY sources.
    """

    kind: SourceKind
    type: SourceType = SourceType.CHILDREN
    route: str | None = None
    taxonomy: dict[str, Any] | None = None


def _params_list(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return value
    return [value]


def _parse_one(command: str, params: Any) -> SourceSpec:
    scope, _, rest = command.partition(".")
    kind = _KINDS.get(scope, SourceKind.UNKNOWN)
    if kind is SourceKind.UNKNOWN:
        logger.debug(f"Unknown collection source {command!r}")
        return SourceSpec(kind=SourceKind.UNKNOWN, type=SourceType.UNKNOWN)

    if kind is SourceKind.TAXONOMY:
        if rest:
            terms = params if isinstance(params, list) else [params]
            return SourceSpec(kind=kind, taxonomy={rest: terms})
        return SourceSpec(kind=kind, taxonomy=dict(params) if isinstance(params, dict) else {})

    first = params[0] if isinstance(params, list) and params else None
    if not rest or (rest == "modular" and first is False):
        source_type = SourceType.CHILDREN
    else:
        source_type = _TYPES.get(rest, SourceType.UNKNOWN)

    route = None
    if kind is SourceKind.PAGE:
        route = str(first) if first not in (None, False) else None
    return SourceSpec(kind=kind, type=source_type, route=route)


def parse_items(value: Any) -> tuple[SourceSpec, ...]:
    """Parse an ``items`` definition into source specs.

    A string or single-key mapping is one source; a list or a mapping with
    several keys is a union of sources.
    """
    if value is None or value == "" or value == [] or value == {}:
        return ()
    if isinstance(value, str):
        return (_parse_one(value, []),)
    if isinstance(value, Mapping):
        if len(value) == 1:
            command, params = next(iter(value.items()))
            if isinstance(command, str):
                return (_parse_one(command, _params_list(params)),)
        specs: list[SourceSpec] = []
        for command, params in value.items():
            specs.extend(parse_items({command: params}))
        return tuple(specs)
    if isinstance(value, list):
        specs = []
        for item in value:
            specs.extend(parse_items(item))
        return tuple(specs)
    logger.debug(f"Unsupported collection items {value!r}")
    return ()


def evaluate(
    specs: tuple[SourceSpec, ...], index: "PageIndex", self_document: Document | None = None
) -> Collection:
    """Resolve sources to a seed collection (union, first occurrence wins)."""
    items: dict[str, dict] = {}
    for spec in specs:
        for path, info in _evaluate_one(spec, index, self_document).items().items():
            items.setdefault(path, info)
    return index.new_collection(items)


def _evaluate_one(
    spec: SourceSpec, index: "PageIndex", self_document: Document | None
) -> Collection:
    empty = index.new_collection()

    if spec.kind is SourceKind.TAXONOMY:
        return index.new_collection(index.taxonomy.find(spec.taxonomy or {}))

    if spec.kind is SourceKind.SELF:
        document = self_document
    elif spec.kind is SourceKind.PAGE:
        document = index.find(spec.route) if spec.route else None
    elif spec.kind is SourceKind.ROOT:
        document = index.root()
    else:
        return empty

    if document is None:
        return empty

    if spec.type is SourceType.ALL:
        return index.children(document.path)
    if spec.type is SourceType.CHILDREN:
        return index.children(document.path).non_modular()
    if spec.type is SourceType.MODULAR:
        return index.children(document.path).modular()
    if spec.type is SourceType.SELF:
        return index.new_collection({document.path: {"slug": document.slug}})
    if spec.type is SourceType.PARENT:
        parent = index.get(document.parent_path) if document.parent_path else None
        if parent is None:
            return empty
        return index.new_collection({parent.path: {"slug": parent.slug}})
    if spec.type is SourceType.SIBLINGS:
        if not document.parent_path:
            return empty
        return index.children(document.parent_path).remove(document.path)
    if spec.type is SourceType.DESCENDANTS:
        return index.all(document).remove(document.path).non_modular()
    return empty


@dataclass(frozen=True)
class DateRange:
    start: Any = None
    end: Any = None
    field: str | None = None


@dataclass(frozen=True)
class OrderSpec:
    by: str = "default"
    dir: str = "asc"
    custom: tuple[str, ...] = ()
    flags: Any = None


@dataclass(frozen=True)
class CollectionQuery:
    """A parsed collection definition."""

    items: tuple[SourceSpec, ...] = ()
    taxonomy: dict[str, Any] = field(default_factory=dict)
    filters: dict[str, Any] = field(default_factory=dict)
    date_range: DateRange | None = None
    order: OrderSpec | None = None
    limit: int | None = None
    page: int | None = None
    pagination: bool = True
    default_limit: int | None = None
    params: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_params(
        cls, params: Mapping[str, Any], default_limit: int | None = None
    ) -> "CollectionQuery":
        """Parse a collection definition mapping.

        Args:
            params: Collection definition.
            default_limit: Page size used when a page is requested and the
                definition sets no ``limit``.
        """
        date_range = None
        raw_range = params.get("dateRange") or params.get("date_range")
        if isinstance(raw_range, Mapping):
            date_range = DateRange(
                start=raw_range.get("start"),
                end=raw_range.get("end"),
                field=raw_range.get("field"),
            )

        order = None
        raw_order = params.get("order")
        if isinstance(raw_order, Mapping):
            custom = raw_order.get("custom") or ()
            if isinstance(custom, str):
                custom = [custom]
            order = OrderSpec(
                by=str(raw_order.get("by") or "default"),
                dir=str(raw_order.get("dir") or "asc").lower(),
                custom=tuple(str(c) for c in custom),
                flags=resolve_sort_flags(raw_order.get("sort_flags")),
            )

        limit = _positive_int("limit", params.get("limit"))
        page = _positive_int("page", params.get("page"))
        return cls(
            items=parse_items(params.get("items")),
            taxonomy=dict(params.get("taxonomies") or params.get("taxonomy") or {}),
            filters=dict(params.get("filter") or {}),
            date_range=date_range,
            order=order,
            limit=limit,
            page=page,
            pagination=bool(params.get("pagination", True)),
            default_limit=default_limit,
            params=dict(params),
        )

    def execute(
        self,
        index: "PageIndex",
        self_document: Document | None = None,
        page: int | None = None,
    ) -> Collection:
        """Run the pipeline: seed, taxonomy, filters, date range, order, paginate.

        A failing stage is logged and the collection produced so far is
        returned.

        Args:
            index: Index the sources are resolved against.
            self_document: Document ``@self`` sources refer to.
            page: Page number; overrides the definition's ``page``.
        """
        collection = index.new_collection(params=self.params)
        if not self.items:
            return collection

        stages = (
            self._seed,
            self._apply_taxonomy,
            self._apply_filters,
            self._apply_date_range,
            self._apply_order,
            lambda c, i, s: self._paginate(c, page),
        )
        for stage in stages:
            try:
                collection = stage(collection, index, self_document)
            except (PageIndexError, ValueError, TypeError) as e:
                logger.warning(f"Collection stage failed, returning partial result: {e}")
                break
        return collection

    def _seed(
        self, collection: Collection, index: "PageIndex", self_document: Document | None
    ) -> Collection:
        return evaluate(self.items, index, self_document).with_params(self.params)

    def _apply_taxonomy(self, collection: Collection, index: "PageIndex", _: Any) -> Collection:
        # Every listed term must be present; modular documents are exempt
        if not self.taxonomy:
            return collection
        items = collection.items()
        kept = {}
        for document in collection.documents():
            if not document.modular:
                taxonomy = document.taxonomy
                terms = [
                    (name, str(term))
                    for name, values in self.taxonomy.items()
                    for term in (values if isinstance(values, list) else [values])
                ]
                if not all(term in taxonomy.get(name, []) for name, term in terms):
                    continue
            kept[document.path] = items[document.path]
        return collection._create(kept)

    def _apply_filters(self, collection: Collection, index: "PageIndex", _: Any) -> Collection:
        filters = dict(self.filters)
        if "published" not in filters and "non-published" not in filters:
            filters["published"] = True

        for name, (positive, negative) in _FILTER_PAIRS.items():
            wanted = bool(filters.get(name))
            unwanted = bool(filters.get(f"non-{name}"))
            if wanted and unwanted:
                logger.debug(f"Filters {name} and non-{name} cancel out")
                continue
            if wanted:
                collection = getattr(collection, positive)()
            elif unwanted:
                collection = getattr(collection, negative)()

        if filters.get("type"):
            collection = collection.of_type(str(filters["type"]))
        types = filters.get("types")
        if types:
            collection = collection.of_one_of_these_types(
                types if isinstance(types, list) else [types]
            )
        access = filters.get("access")
        if access:
            collection = collection.of_one_of_these_access_levels(
                access if isinstance(access, list) else [access]
            )
        return collection

    def _apply_date_range(self, collection: Collection, index: "PageIndex", _: Any) -> Collection:
        if self.date_range is None:
            return collection
        date_range = self.date_range
        return collection.date_range(date_range.start, date_range.end, date_range.field)

    def _apply_order(self, collection: Collection, index: "PageIndex", _: Any) -> Collection:
        if self.order is None:
            return collection
        keys = index.sort_collection(
            collection.items(),
            self.order.by,
            self.order.dir,
            list(self.order.custom) or None,
            self.order.flags,
        )
        items = collection.items()
        return collection._create({key: items[key] for key in keys})

    def _paginate(self, collection: Collection, page: int | None) -> Collection:
        requested = page or self.page
        limit = self.limit
        if not limit and self.pagination and requested:
            limit = self.default_limit
        if not limit or len(collection) <= limit:
            return collection
        start = 0
        if self.pagination:
            start = (max(requested or 1, 1) - 1) * limit
        return collection.slice(start, limit)


def _positive_int(name: str, value: Any) -> int | None:
    if value is None or value == "" or value is False:
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring invalid collection {name} {value!r}")
        return None
    if number < 1:
        logger.warning(f"Ignoring invalid collection {name} {value!r}")
        return None
    return number
