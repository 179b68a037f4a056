"""Index built from a delegated object store."""

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

import pytest

from conftest import make_config
from grove.cache import MemoryCacheBackend
from grove.pages.collection import DelegatedCollection
from grove.pages.service import PageIndex


@dataclass
class FakeTranslation:
    header: dict[str, Any]
    template: str = "default"
    modified: int = 100
    content: str = ""


@dataclass
class FakeEntry:
    path: str
    slug: str
    translations: dict[str | None, FakeTranslation] = field(default_factory=dict)

    def has_translation(self, language: str | None = None) -> bool:
        return language in self.translations

    def get_translation(self, language: str | None = None) -> FakeTranslation | None:
        return self.translations.get(language)


class FakeStore:
    def __init__(self, entries: list[FakeEntry], checksum: str = "v1") -> None:
        self.entries = entries
        self.checksum = checksum

    def get_index(self) -> dict[str, FakeEntry]:
        return {entry.path: entry for entry in self.entries}

    def get_cache_checksum(self) -> str:
        return self.checksum


@pytest.fixture
def store(tmp_path: Path) -> FakeStore:
    root = str(tmp_path / "pages")
    return FakeStore(
        [
            FakeEntry(root, "", {None: FakeTranslation({"title": "Root"})}),
            FakeEntry(
                f"{root}/01.blog",
                "blog",
                {
                    None: FakeTranslation({"title": "Blog"}, template="blog", modified=300),
                    "fr": FakeTranslation({"title": "Le Blog"}, template="blog"),
                },
            ),
            FakeEntry(
                f"{root}/01.blog/post",
                "post",
                {
                    None: FakeTranslation(
                        {"title": "Post", "taxonomy": {"tag": "x"}}, "item", 200, "Body"
                    )
                },
            ),
            FakeEntry(f"{root}/02.about", "about", {None: FakeTranslation({"title": "About"})}),
            FakeEntry(
                f"{root}/03.bonjour", "bonjour", {"fr": FakeTranslation({"title": "Bonjour"})}
            ),
        ]
    )


def delegated_index(tmp_path: Path, store: FakeStore, **kwargs: Any) -> PageIndex:
    kwargs.setdefault("cache_backend", MemoryCacheBackend())
    index = PageIndex(make_config(tmp_path), delegated=store, **kwargs)
    index.init()
    return index


def titles(collection) -> list[str]:
    return [document.title for document in collection]


def test_tree_from_store(tmp_path: Path, store: FakeStore):
    index = delegated_index(tmp_path, store)

    post = index.find("/blog/post")

    assert post.title == "Post"
    assert post.content == "Body"
    assert post.template == "item"
    assert post.file_path == f"{tmp_path}/pages/01.blog/post/item.md"
    assert index.find("/blog").modified == 300
    assert index.last_modified == 300
    assert list(index.taxonomy.find({"tag": "x"})) == [post.path]


def test_entries_without_translation_are_skipped(tmp_path: Path, store: FakeStore):
    index = delegated_index(tmp_path, store)

    assert index.find("/bonjour") is None
    assert titles(index.children(index.root().path)) == ["Blog", "About"]


def test_language_variant(tmp_path: Path, store: FakeStore):
    index = delegated_index(tmp_path, store, language="fr")

    assert index.find("/bonjour").title == "Bonjour"
    assert index.find("/blog").title == "Le Blog"
    assert index.find("/blog").file_path.endswith("/01.blog/blog.fr.md")
    assert index.find("/about") is None


def test_snapshot_is_tagged_flex(tmp_path: Path, store: FakeStore):
    backend = MemoryCacheBackend()
    index = delegated_index(tmp_path, store, cache_backend=backend)

    assert index.state.format_version == "flex"
    assert index.cache_id.startswith("pages-")
    assert index.cache_id in backend

    cached = delegated_index(tmp_path, store, cache_backend=backend)
    assert cached.find("/blog/post").title == "Post"


def test_checksum_drives_cache_id(tmp_path: Path, store: FakeStore):
    backend = MemoryCacheBackend()
    first = delegated_index(tmp_path, store, cache_backend=backend)
    store.checksum = "v2"

    second = delegated_index(tmp_path, store, cache_backend=backend)

    assert second.cache_id != first.cache_id
    assert len(backend) == 2


def test_collections_are_delegated(tmp_path: Path, store: FakeStore):
    index = delegated_index(tmp_path, store)
    children = index.children(index.root().path)

    assert isinstance(children, DelegatedCollection)
    with pytest.raises(NotImplementedError):
        children.order("title")

    collection = index.collection(
        {"items": "@root.children", "order": {"by": "title", "dir": "desc"}}
    )
    assert isinstance(collection, DelegatedCollection)
    assert titles(collection) == ["Blog", "About"]


def test_date_headers_are_stored_as_text(tmp_path: Path, store: FakeStore):
    store.entries[3].translations[None].header["date"] = date(2020, 1, 1)
    backend = MemoryCacheBackend()

    index = delegated_index(tmp_path, store, cache_backend=backend)

    assert index.cache_id in backend
    assert index.find("/about").header["date"] == "2020-01-01"
