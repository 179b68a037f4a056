"""FastAPI dependency injection functions."""

from functools import lru_cache

from fastapi import HTTPException, status

from grove.config import Config, ConfigError, load_settings
from grove.errors import StorageError
from grove.pages.service import PageIndex


@lru_cache
def get_settings() -> Config:
    """Get cached application settings."""
    return load_settings()


_page_index_instance: PageIndex | None = None


def get_page_index() -> PageIndex:
    """Get the page index, building it on first use.

    Raises:
        HTTPException: 503 if the site is not configured or its pages
            directory is missing.
    """
    global _page_index_instance
    if _page_index_instance is None:
        try:
            index = PageIndex(get_settings())
            index.init()
        except (ValueError, ConfigError, StorageError) as e:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=f"Page index unavailable: {e}",
            ) from e
        _page_index_instance = index
    return _page_index_instance


def _reset_page_index_instance() -> None:
    """Reset page index instance (for testing only)."""
    global _page_index_instance
    _page_index_instance = None
