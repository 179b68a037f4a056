"""Shared pytest fixtures for all tests.

Page trees are written to ``tmp_path`` as real files; every index uses an
in-memory cache backend unless a test needs the file backend.
"""

import gc
import os
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable

import pytest

from grove.cache import MemoryCacheBackend
from grove.config import Config
from grove.pages.frontmatter import build_frontmatter
from grove.pages.service import PageIndex


@pytest.fixture(autouse=True)
def cleanup_after_test():
    """Release file handles held by lingering objects after each test."""
    yield
    gc.collect()


def write_page(
    pages: Path,
    folder: str,
    header: dict[str, Any] | None = None,
    body: str = "",
    filename: str = "default.md",
    mtime: int | None = None,
) -> Path:
    """Write a content file under ``pages/folder`` and return its path."""
    directory = pages / folder
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / filename
    path.write_text(build_frontmatter(header or {}, body), encoding="utf-8")
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


def make_config(site_path: Path, /, **sections: dict[str, Any]) -> Config:
    """Config for ``site_path`` with section fields overridden.

    Table sections (home_aliases, redirects, routes) are passed as tuples of
    pairs; every other keyword names a section and maps field -> value.
    """
    config = Config(site_path=site_path)
    changes: dict[str, Any] = {}
    for name, values in sections.items():
        if name in ("home_aliases", "redirects", "routes"):
            changes[name] = tuple(values)
        else:
            changes[name] = replace(getattr(config, name), **values)
    return replace(config, **changes)


@pytest.fixture
def site(tmp_path: Path) -> Path:
    """A small site: home with a modular section, a blog, an about page,
    an empty folder and a hidden folder."""
    site = tmp_path / "site"
    pages = site / "pages"
    write_page(pages, "01.home", {"title": "Home"}, "Welcome", mtime=1_700_000_000)
    write_page(
        pages, "01.home/_hero", {"title": "Hero"}, "Big banner", "hero.md", mtime=1_700_000_100
    )
    write_page(
        pages,
        "02.blog",
        {
            "title": "Blog",
            "content": {"items": "@self.children", "order": {"by": "date", "dir": "desc"}},
        },
        filename="blog.md",
        mtime=1_700_000_000,
    )
    write_page(
        pages,
        "02.blog/hello-world",
        {
            "title": "Hello World",
            "date": "2024-01-10",
            "taxonomy": {"tag": ["python"], "category": "news"},
        },
        "First post",
        "item.md",
    )
    write_page(
        pages,
        "02.blog/second-post",
        {"title": "Second Post", "date": "2024-02-10", "taxonomy": {"tag": ["python", "web"]}},
        "Second post",
        "item.md",
    )
    write_page(
        pages,
        "02.blog/draft-post",
        {"title": "Draft", "date": "2024-03-10", "published": False},
        "Not yet",
        "item.md",
    )
    write_page(
        pages, "03.about", {"title": "About", "routes": {"aliases": ["/about-us"]}}, "About us"
    )
    (pages / "drafts").mkdir()
    write_page(pages, ".hidden", {"title": "Hidden"})
    return site


@pytest.fixture
def make_index() -> Callable[..., PageIndex]:
    """Factory for an initialised PageIndex over a site directory."""

    def factory(site: Path, config: Config | None = None, **kwargs: Any) -> PageIndex:
        kwargs.setdefault("cache_backend", MemoryCacheBackend())
        index = PageIndex(config or make_config(site), **kwargs)
        index.init()
        return index

    return factory


@pytest.fixture
def index(site: Path, make_index: Callable[..., PageIndex]) -> PageIndex:
    """Initialised index over the standard site."""
    return make_index(site)
