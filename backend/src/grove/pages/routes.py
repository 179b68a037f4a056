"""Route registration and request dispatch."""

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import unquote

from grove.config import Config
from grove.constants import MAX_REWRITE_HOPS
from grove.errors import RewriteLoopError
from grove.pages.document import Document

if TYPE_CHECKING:
    from grove.pages.service import PageIndex

logger = logging.getLogger(__name__)

_PHP_GROUP_RE = re.compile(r"\$\{?(\d+)\}?")


def resolve_home_route(config: Config) -> str:
    """Home route without surrounding slashes.

    With languages enabled and ``[home.aliases]`` configured, the active
    locale's alias wins, falling back to the default locale's alias, then
    to ``[home] alias``.
    """
    home = config.home.alias
    aliases = dict(config.home_aliases)
    if config.languages.enabled and aliases:
        active = config.languages.active_language
        default = config.languages.default_language
        home = aliases.get(active) or aliases.get(default) or home
    return home.strip("/")


class RouteIndex:
    """Route -> document path lookup table."""

    def __init__(self, routes: Mapping[str, str] | None = None) -> None:
        self._routes: dict[str, str] = dict(routes or {})

    def build(self, documents: Iterable[Document], home: str) -> None:
        """Register every route of every document.

        A document contributes its route, its raw route and canonical route
        when they differ, and each alias. Later registrations overwrite
        earlier ones. When ``/<home>`` is registered, ``/`` points at the same
        document and that document's route becomes ``/``.
        """
        routes: dict[str, str] = {}
        for document in documents:
            if document.root:
                continue
            routes[document.route] = document.path
            if document.raw_route and document.raw_route != document.route:
                routes[document.raw_route] = document.path
            canonical = document.canonical_route
            if canonical and canonical != document.route:
                routes[canonical] = document.path
            for alias in document.route_aliases:
                routes[alias] = document.path
        self._routes = routes
        self._apply_home(documents, home)

    def _apply_home(self, documents: Iterable[Document], home: str) -> None:
        home_route = "/" + home.strip("/")
        if not home.strip("/") or home_route not in self._routes:
            return
        home_path = self._routes[home_route]
        self._routes["/"] = home_path
        for document in documents:
            if document.path == home_path:
                document.route = "/"
                break

    def get(self, route: str) -> str | None:
        return self._routes.get(route)

    def __contains__(self, route: str) -> bool:
        return route in self._routes

    def __len__(self) -> int:
        return len(self._routes)

    def to_dict(self) -> dict[str, str]:
        return dict(self._routes)


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of dispatching a route.

    ``document`` may be a non-routable document (callers answer 404 for it);
    ``redirect`` is set when the caller should redirect instead of serving.
    """

    document: Document | None = None
    redirect: str | None = None

    @property
    def found(self) -> bool:
        return self.document is not None and self.document.routable


def _to_python_replacement(replacement: str) -> str:
    # Rule replacements may use $1 / ${1} group references
    return _PHP_GROUP_RE.sub(lambda m: f"\\g<{m.group(1)}>", replacement)


def _apply_rule(pattern: str, replacement: str, source: str) -> str | None:
    """Apply one anchored regex rule. Returns None when the rule is broken."""
    anchored = pattern if pattern.startswith("^") else "^" + pattern
    try:
        return re.sub(anchored, _to_python_replacement(replacement), source, count=1)
    except re.error as e:
        logger.error(f"Skipping route rule {pattern!r} -> {replacement!r}: {e}")
        return None


class Dispatcher:
    """Resolve a request route to a document, redirect or miss."""

    def __init__(
        self, index: "PageIndex", config: Config, max_hops: int = MAX_REWRITE_HOPS
    ) -> None:
        self._index = index
        self._redirects = config.redirects
        self._rewrites = config.routes
        self._max_hops = max_hops

    def dispatch(self, route: str, all: bool = False, redirect: bool = True) -> DispatchResult:
        """Dispatch a route.

        Args:
            route: Request route, possibly URL encoded.
            all: Only do exact lookups (no fallbacks).
            redirect: Produce redirects; without it only documents are resolved.

        Returns:
            DispatchResult with the document and/or a redirect target.

        Raises:
            RewriteLoopError: If site rewrites chain beyond the hop limit.
        """
        return self._dispatch(route, all, redirect, 0)

    def _lookup(self, route: str) -> Document | None:
        path = self._index.route_index.get(route)
        return self._index.get(path) if path is not None else None

    def _dispatch(self, route: str, all: bool, redirect: bool, hops: int) -> DispatchResult:
        if hops > self._max_hops:
            raise RewriteLoopError(route, self._max_hops)

        route = unquote(route)
        document = self._lookup(route)
        if document is None and len(route) > 1 and route.endswith("/"):
            document = self._lookup(route.rstrip("/"))

        if all:
            return DispatchResult(document)

        if redirect and document is not None and document.redirect:
            return DispatchResult(document, redirect=document.redirect)

        if document is not None and document.routable:
            return DispatchResult(document)

        if redirect and document is not None:
            visible = self._index.children(document.path).visible()
            first = visible.first()
            if first is not None:
                return DispatchResult(document, redirect=first.route)

        site_route = dict(self._rewrites).get(route)
        if site_route:
            return self._dispatch(site_route, all, redirect, hops + 1)

        if redirect:
            exact = dict(self._redirects).get(route)
            if exact:
                return DispatchResult(document, redirect=exact)
            for pattern, replacement in self._redirects:
                target = _apply_rule(pattern, replacement, route)
                if target is not None and target != route:
                    logger.debug(f"Redirecting {route} -> {target} ({pattern})")
                    return DispatchResult(document, redirect=target)

        for pattern, replacement in self._rewrites:
            target = _apply_rule(pattern, replacement, route)
            if target is None or target == route:
                continue
            logger.debug(f"Rewriting {route} -> {target} ({pattern})")
            result = self._dispatch(target, all, redirect, hops + 1)
            if result.document is not None or result.redirect:
                return result

        return DispatchResult(document)
