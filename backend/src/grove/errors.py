"""Grove exception hierarchy.

Structural failures abort the index build and propagate to the caller.
Expected misses (unknown route, empty taxonomy lookup) are never raised;
they yield None or an empty collection.
"""


class PageIndexError(Exception):
    """Base for all page index errors."""

    pass


class DuplicatePathError(PageIndexError):
    """Raised when two distinct documents claim the same storage path."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Fatal error when creating page instances: duplicate path {path}")
        self.path = path


class MissingDocumentError(PageIndexError):
    """Raised when a child key has no entry in the instance map."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Page does not exist: {path}")
        self.path = path


class RewriteLoopError(PageIndexError):
    """Raised when route rewriting exceeds the hop limit."""

    def __init__(self, route: str, hops: int) -> None:
        super().__init__(f"Route rewriting for {route!r} exceeded {hops} hops")
        self.route = route
        self.hops = hops


class StorageError(PageIndexError):
    """Raised when storage cannot be listed or read."""

    pass
