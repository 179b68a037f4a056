"""Ordering of sibling documents and collections.

Orderings are memoised in a sort cache keyed by container and order field.
The cache is a pure function of the tree; it is serialised with the index
snapshot and discarded with it.
"""

import hashlib
import json
import locale
import logging
import random
import re
import threading
from collections.abc import Callable, Iterable, Mapping
from enum import IntFlag
from typing import Any, Union

from grove.constants import DATE_ORDER_FIELDS, NATURAL_PAD_WIDTH
from grove.errors import MissingDocumentError
from grove.pages.document import Document

logger = logging.getLogger(__name__)

_DIGITS_RE = re.compile(r"(\d+)")
_NUMBER_RE = re.compile(r"^-?\d+(\.\d+)?$")

# LC_COLLATE is process-wide: each locale name is applied at most once
_collation_lock = threading.Lock()
_collation_results: dict[str, bool] = {}
_active_collation: str | None = None


class SortFlags(IntFlag):
    """Comparison modes, combinable with FLAG_CASE."""

    REGULAR = 1
    NUMERIC = 2
    STRING = 4
    LOCALE_STRING = 8
    NATURAL = 16
    FLAG_CASE = 32


DEFAULT_SORT_FLAGS = SortFlags.NATURAL | SortFlags.FLAG_CASE


def resolve_sort_flags(value: Union[None, int, str, Iterable[str]]) -> SortFlags | None:
    """Combine symbolic flag names ("SORT_NATURAL", "FLAG_CASE") into SortFlags.

    Unknown names are ignored with a warning. Returns None when nothing
    valid was given, so callers fall back to their default flags.
    """
    if value is None:
        return None
    if isinstance(value, SortFlags):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return SortFlags(value) if value else None
    names = [value] if isinstance(value, str) else list(value)

    flags: SortFlags | None = None
    for name in names:
        for part in str(name).split("|"):
            key = part.strip().upper()
            if key.startswith("SORT_"):
                key = key[len("SORT_") :]
            if not key:
                continue
            try:
                flag = SortFlags[key]
            except KeyError:
                logger.warning(f"Ignoring unknown sort flag {part.strip()!r}")
                continue
            flags = flag if flags is None else flags | flag
    return flags


def natural_key(text: str, fold_case: bool = False) -> tuple:
    """Key that compares embedded numbers by value ("item9" < "item10")."""
    if fold_case:
        text = text.casefold()
    parts = _DIGITS_RE.split(text)
    return tuple(int(part) if i % 2 else part for i, part in enumerate(parts))


def _regular_key(value: Any) -> tuple:
    # None first, then numbers (numeric strings included), then text
    if value is None:
        return (0, 0.0, "")
    if isinstance(value, (bool, int, float)):
        return (1, float(value), "")
    text = str(value)
    if _NUMBER_RE.match(text):
        return (1, float(text), "")
    return (2, 0.0, text)


def _numeric_key(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def set_collation_locale(name: str) -> bool:
    """Apply ``name`` as the process LC_COLLATE locale, once per process.

    The first locale applied successfully stays in effect. Later requests
    for the same name reuse that result; requests for another name are
    refused so readers collating concurrently never see the locale change.

    Returns:
        True if ``name`` is the active collation locale.
    """
    global _active_collation
    with _collation_lock:
        if name in _collation_results:
            return _collation_results[name]
        if _active_collation is not None:
            logger.warning(
                f"Collation locale {name!r} ignored, {_active_collation!r} is already active"
            )
            _collation_results[name] = False
            return False
        try:
            locale.setlocale(locale.LC_COLLATE, name)
        except locale.Error as e:
            logger.warning(f"Collation locale {name!r} unavailable: {e}")
            _collation_results[name] = False
            return False
        _active_collation = name
        _collation_results[name] = True
        return True


def _reset_collation_locale() -> None:
    """Forget applied collation locales. For testing only."""
    global _active_collation
    with _collation_lock:
        _collation_results.clear()
        _active_collation = None


def _pad_numbers(text: str) -> str:
    return _DIGITS_RE.sub(lambda m: m.group(1).zfill(NATURAL_PAD_WIDTH), text)


class SortEngine:
    """Orders child maps and collections by a document field.

    Args:
        lookup: Resolves a path to its Document.
        intl_enabled: Use locale collation for natural ordering.
        collation_locale: LC_COLLATE locale name; empty keeps the process locale.
    """

    def __init__(
        self,
        lookup: Callable[[str], Document | None],
        intl_enabled: bool = True,
        collation_locale: str = "",
    ) -> None:
        self._lookup = lookup
        self._cache: dict[str, dict[str, list[str]]] = {}
        self._collate = intl_enabled
        if intl_enabled and collation_locale:
            self._collate = set_collation_locale(collation_locale)

    @property
    def cache(self) -> dict[str, dict[str, list[str]]]:
        return self._cache

    def load(self, cache: Mapping[str, Mapping[str, list[str]]]) -> None:
        """Replace the sort cache with one restored from a snapshot."""
        self._cache = {
            key: {by: list(keys) for by, keys in value.items()} for key, value in cache.items()
        }

    def clear(self) -> None:
        self._cache = {}

    def sort(
        self,
        container: Document,
        children: Mapping[str, dict],
        order_by: str | None = None,
        order_dir: str | None = None,
        flags: SortFlags | None = None,
    ) -> dict[str, dict]:
        """Order the children of a container document.

        Args:
            container: Parent document; supplies the default order field,
                direction and manual order.
            children: Child path -> info mapping in discovery order.
            order_by: Order field, defaults to the container's.
            order_dir: "asc" or "desc", defaults to the container's.
            flags: Comparison flags.

        Returns:
            The children mapping in sorted order.
        """
        if not children:
            return {}
        order_by = order_by or container.order_by
        order_dir = order_dir or container.order_dir

        if order_by == "random":
            keys = self._build(children, order_by, container.order_manual, flags)
        else:
            per_container = self._cache.setdefault(container.path, {})
            if order_by not in per_container:
                per_container[order_by] = self._build(
                    children, order_by, container.order_manual, flags
                )
            keys = per_container[order_by]

        if order_dir != "asc":
            keys = list(reversed(keys))
        return {key: children[key] for key in keys if key in children}

    def sort_collection(
        self,
        items: Mapping[str, dict],
        order_by: str,
        order_dir: str = "asc",
        manual: list[str] | None = None,
        flags: SortFlags | None = None,
    ) -> list[str]:
        """Order an arbitrary collection's keys.

        Orderings are cached under a digest of the items, manual order,
        field and direction.
        """
        if not items:
            return []

        if order_by == "random":
            keys = self._build(items, order_by, manual, flags)
        else:
            payload = json.dumps(list(items)) + json.dumps(manual or []) + order_by + order_dir
            lookup = hashlib.md5(payload.encode("utf-8")).hexdigest()
            per_lookup = self._cache.setdefault(lookup, {})
            if order_by not in per_lookup:
                per_lookup[order_by] = self._build(items, order_by, manual, flags)
            keys = per_lookup[order_by]

        if order_dir != "asc":
            keys = list(reversed(keys))
        return [key for key in keys if key in items]

    def _document(self, key: str) -> Document:
        document = self._lookup(key)
        if document is None:
            raise MissingDocumentError(key)
        return document

    def _field_values(
        self, items: Mapping[str, dict], order_by: str, flags: SortFlags | None
    ) -> tuple[dict[str, Any], SortFlags | None]:
        values: dict[str, Any] = {}

        if order_by.startswith("header."):
            query, _, default = order_by[len("header.") :].partition("|")
            for key in items:
                value = self._document(key).value(f"header.{query}")
                if isinstance(value, (list, tuple)):
                    values[key] = ",".join(str(v) for v in value)
                elif value:
                    values[key] = value
                else:
                    values[key] = default or key
            return values, flags or SortFlags.REGULAR

        if order_by in DATE_ORDER_FIELDS:
            for key in items:
                values[key] = getattr(self._document(key), order_by)
            return values, SortFlags.REGULAR

        if order_by in ("title", "slug", "folder", "basename"):
            attribute = "folder" if order_by == "basename" else order_by
            for key in items:
                values[key] = getattr(self._document(key), attribute)
            return values, flags

        # "default", "manual" and unknown fields order by key
        for key in items:
            self._document(key)
            values[key] = key
        return values, SortFlags.REGULAR

    def _build(
        self,
        items: Mapping[str, dict],
        order_by: str,
        manual: list[str] | None,
        flags: SortFlags | None,
    ) -> list[str]:
        values, flags = self._field_values(items, order_by, flags)
        flags = flags or DEFAULT_SORT_FLAGS

        if order_by == "random":
            keys = list(values)
            random.shuffle(keys)
        else:
            keys = self._sorted_keys(values, flags)

        if manual:
            keys = self._apply_manual(keys, items, manual)
        return keys

    def _sorted_keys(self, values: dict[str, Any], flags: SortFlags) -> list[str]:
        fold_case = bool(flags & SortFlags.FLAG_CASE)
        keys = list(values)

        if flags & SortFlags.NATURAL:
            if self._collate:
                if all(_regular_key(v)[0] == 1 for v in values.values()):
                    return sorted(keys, key=lambda k: _regular_key(values[k]))
                try:
                    return sorted(keys, key=lambda k: self._collation_key(values[k], fold_case))
                except (locale.Error, ValueError, OSError) as e:
                    logger.warning(f"Locale collation failed, using natural order: {e}")
            return sorted(keys, key=lambda k: natural_key(str(values[k]), fold_case))

        if flags & SortFlags.LOCALE_STRING:
            return sorted(keys, key=lambda k: locale.strxfrm(str(values[k])))
        if flags & SortFlags.STRING:
            if fold_case:
                return sorted(keys, key=lambda k: str(values[k]).casefold())
            return sorted(keys, key=lambda k: str(values[k]))
        if flags & SortFlags.NUMERIC:
            return sorted(keys, key=lambda k: _numeric_key(values[k]))
        return sorted(keys, key=lambda k: _regular_key(values[k]))

    @staticmethod
    def _collation_key(value: Any, fold_case: bool) -> str:
        text = _pad_numbers(str(value))
        if fold_case:
            text = text.casefold()
        return locale.strxfrm(text)

    @staticmethod
    def _apply_manual(keys: list[str], items: Mapping[str, dict], manual: list[str]) -> list[str]:
        # Listed slugs take their list position; the rest follow in field order
        positions: dict[str, int] = {}
        next_position = len(manual)
        for key in keys:
            slug = items[key].get("slug")
            if slug in manual:
                positions[key] = manual.index(slug)
            else:
                positions[key] = next_position
                next_position += 1
        return sorted(keys, key=lambda k: positions[k])
