"""Resolve logical stream identifiers ("page://") to storage paths."""


from grove.storage.base import Storage


class ResourceLocator:
    """Maps stream schemes to one or more base paths.

    Usage::

        locator = ResourceLocator(storage)
        locator.add_path("page", "/srv/site/pages")
        locator.find_resource("page://")          # "/srv/site/pages"
        locator.find_resource("page://blog/post") # "/srv/site/pages/blog/post"
    """

    def __init__(self, storage: Storage) -> None:
        self._storage = storage
        self._schemes: dict[str, list[str]] = {}

    def add_path(self, scheme: str, path: str, prepend: bool = False) -> None:
        """Register a base path for a scheme.

        Args:
            scheme: Stream scheme without "://".
            path: Base path.
            prepend: Give the path priority over those already registered.
        """
        paths = self._schemes.setdefault(scheme, [])
        path = path.rstrip("/") or "/"
        if prepend:
            paths.insert(0, path)
        else:
            paths.append(path)

    def schemes(self) -> list[str]:
        return list(self._schemes)

    def find_resource(self, uri: str, first: bool = True) -> str | None | list[str]:
        """Find the concrete path(s) for a stream identifier.

        Args:
            uri: Identifier such as "page://" or "theme://templates".
            first: Return only the first existing path.

        Returns:
            The first existing path (or None), or every existing path when
            ``first`` is False.
        """
        scheme, sep, rest = uri.partition("://")
        if not sep:
            raise ValueError(f"Not a stream identifier: {uri}")

        found = []
        for base in self._schemes.get(scheme, []):
            candidate = base if not rest.strip("/") else f"{base.rstrip('/')}/{rest.strip('/')}"
            if self._storage.exists(candidate):
                if first:
                    return candidate
                found.append(candidate)

        return None if first else found
