"""Taxonomy map: taxonomy name -> term -> documents."""

from collections.abc import Iterable, Mapping
from typing import Any, Union

from grove.pages.document import Document


class TaxonomyMap:
    """Index of documents by taxonomy term.

    Only the configured taxonomy names are indexed; other keys of a
    document's ``taxonomy`` header are ignored.
    """

    def __init__(self, names: Iterable[str]) -> None:
        self._names = tuple(names)
        self._map: dict[str, dict[str, dict[str, dict]]] = {}

    @property
    def names(self) -> tuple[str, ...]:
        return self._names

    def add(self, document: Document) -> None:
        for name, terms in document.taxonomy.items():
            if name not in self._names:
                continue
            for term in terms:
                self._map.setdefault(name, {}).setdefault(term, {})[document.path] = {
                    "slug": document.slug
                }

    def terms(self, name: str) -> dict[str, dict[str, dict]]:
        return self._map.get(name, {})

    def find(
        self, spec: Mapping[str, Union[str, list[str]]], operation: str = "and"
    ) -> dict[str, dict]:
        """Documents matching taxonomy terms.

        Args:
            spec: Taxonomy name -> term or list of terms.
            operation: "and" keeps documents matching every term, "or" any term.

        Returns:
            Path -> info mapping, ordered by first match.
        """
        matches: list[dict[str, dict]] = []
        for name, terms in spec.items():
            if isinstance(terms, str):
                terms = [terms]
            for term in terms or []:
                matches.append(self._map.get(name, {}).get(str(term), {}))

        if not matches:
            return {}

        if operation.lower() == "or":
            results: dict[str, dict] = {}
            for match in matches:
                results.update(match)
            return results

        first, *rest = matches
        return {path: info for path, info in first.items() if all(path in m for m in rest)}

    def to_dict(self) -> dict[str, Any]:
        return {
            name: {term: dict(paths) for term, paths in terms.items()}
            for name, terms in self._map.items()
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], names: Iterable[str]) -> "TaxonomyMap":
        taxonomy = cls(names)
        taxonomy._map = {
            name: {term: dict(paths) for term, paths in terms.items()}
            for name, terms in data.items()
        }
        return taxonomy
