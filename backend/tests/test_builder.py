"""Tree builder tests."""

import hashlib
from pathlib import Path

import pytest

from conftest import make_config, write_page
from grove.errors import DuplicatePathError
from grove.pages.builder import BuildResult, TreeBuilder
from grove.pages.producer import ContentDescriptor, DocumentProducer, FilesystemProducer
from grove.pages.sorting import SortEngine
from grove.storage import LocalStorage


def build(site: Path, **sections) -> BuildResult:
    config = make_config(site, **sections)
    root = str(config.pages_path)
    result = BuildResult(root_path=root)
    sorter = SortEngine(result.instances.get)
    producer = FilesystemProducer(LocalStorage(), root, config)
    return TreeBuilder(config, sorter).build(producer, result)


def doc(result: BuildResult, rel: str):
    return result.instances[f"{result.root_path}/{rel}" if rel else result.root_path]


class TestDiscovery:
    def test_every_folder_becomes_a_document(self, site: Path):
        result = build(site)
        rels = sorted(p[len(result.root_path) :] for p in result.instances)

        assert rels == [
            "",
            "/01.home",
            "/01.home/_hero",
            "/02.blog",
            "/02.blog/draft-post",
            "/02.blog/hello-world",
            "/02.blog/second-post",
            "/03.about",
            "/drafts",
        ]

    def test_hidden_folders_included_when_not_ignored(self, site: Path):
        result = build(site, pages={"ignore_hidden": False})

        assert f"{result.root_path}/.hidden" in result.instances

    def test_ignore_folders(self, site: Path):
        result = build(site, pages={"ignore_folders": ("drafts",)})

        assert f"{result.root_path}/drafts" not in result.instances

    def test_ignored_content_file_leaves_folder_empty(self, site: Path):
        result = build(site, pages={"ignore_files": ("default.md",)})

        about = doc(result, "03.about")
        assert about.file_path is None
        assert about.routable is False

    def test_param_separator_folders_are_skipped(self, tmp_path: Path):
        write_page(tmp_path / "pages", "a:b", {"title": "Skipped"})
        write_page(tmp_path / "pages", "kept", {"title": "Kept"})

        result = build(tmp_path)

        assert f"{result.root_path}/a:b" not in result.instances
        assert f"{result.root_path}/kept" in result.instances

    def test_root_is_not_routable(self, site: Path):
        root = doc(build(site), "")

        assert root.root is True
        assert root.routable is False
        assert root.route == ""


class TestContentSelection:
    def test_extension_priority(self, tmp_path: Path):
        pages = tmp_path / "pages"
        write_page(pages, "post", {"title": "From md"}, filename="item.md")
        write_page(pages, "post", {"title": "From markdown"}, filename="item.markdown")

        result = build(tmp_path, pages={"extensions": (".markdown", ".md")})

        assert doc(result, "post").title == "From markdown"
        assert doc(result, "post").extension == ".markdown"

    def test_active_language_file_wins(self, tmp_path: Path):
        pages = tmp_path / "pages"
        write_page(pages, "post", {"title": "English"}, filename="item.md")
        write_page(pages, "post", {"title": "Francais"}, filename="item.fr.md")

        languages = {"supported": ("en", "fr"), "default": "en", "active": "fr"}
        result = build(tmp_path, languages=languages)

        assert doc(result, "post").title == "Francais"
        assert doc(result, "post").template == "item"

    def test_files_with_dots_in_name_are_not_content(self, tmp_path: Path):
        write_page(tmp_path / "pages", "post", {"title": "x"}, filename="notes.backup.md")

        result = build(tmp_path)

        assert doc(result, "post").routable is False


class TestDerivedState:
    def test_routes_and_slugs(self, site: Path):
        result = build(site)

        assert doc(result, "02.blog").route == "/blog"
        assert doc(result, "02.blog/hello-world").route == "/blog/hello-world"
        assert doc(result, "02.blog/hello-world").raw_route == "/blog/hello-world"
        assert doc(result, "01.home").route == "/home"

    def test_header_slug_changes_route_not_raw_route(self, tmp_path: Path):
        write_page(tmp_path / "pages", "01.folder", {"slug": "pretty"})

        result = build(tmp_path)

        assert doc(result, "01.folder").route == "/pretty"
        assert doc(result, "01.folder").raw_route == "/folder"

    def test_default_route_header(self, tmp_path: Path):
        write_page(tmp_path / "pages", "section", {"routes": {"default": "/elsewhere"}})
        write_page(tmp_path / "pages", "section/child", {})

        result = build(tmp_path)

        assert doc(result, "section").route == "/elsewhere"
        assert doc(result, "section/child").route == "/elsewhere/child"

    def test_modular_children_are_not_routable(self, site: Path):
        hero = doc(build(site), "01.home/_hero")

        assert hero.modular is True
        assert hero.routable is False

    def test_folder_without_content(self, site: Path):
        drafts = doc(build(site), "drafts")

        assert drafts.routable is False
        assert drafts.visible is False

    def test_hide_empty_folders(self, tmp_path: Path):
        (tmp_path / "pages" / "01.empty").mkdir(parents=True)

        shown = build(tmp_path)
        hidden = build(tmp_path, pages={"hide_empty_folders": True})

        assert doc(shown, "01.empty").visible is True
        assert doc(hidden, "01.empty").visible is False

    def test_modular_template_includes_children_mtime(self, tmp_path: Path):
        pages = tmp_path / "pages"
        write_page(pages, "landing", {}, filename="modular.md", mtime=100)
        write_page(pages, "landing/_intro", {}, filename="text.md", mtime=500)
        write_page(pages, "plain", {}, filename="default.md", mtime=100)
        write_page(pages, "plain/child", {}, filename="default.md", mtime=500)

        result = build(tmp_path)

        assert doc(result, "landing").modified == 500
        assert doc(result, "plain").modified == 100

    def test_id_is_mtime_and_file_digest(self, tmp_path: Path):
        path = write_page(tmp_path / "pages", "post", {}, filename="item.md", mtime=1234)

        post = doc(build(tmp_path), "post")

        assert post.id == f"1234{hashlib.md5(str(path).encode()).hexdigest()}"

    def test_order_settings_are_inherited(self, site: Path):
        result = build(site)

        assert doc(result, "02.blog").order_by == "date"
        assert doc(result, "02.blog/hello-world").order_by == "date"
        assert doc(result, "02.blog/hello-world").order_dir == "desc"
        assert doc(result, "03.about").order_by == "default"

    def test_children_are_sorted_during_build(self, site: Path):
        result = build(site)
        blog = doc(result, "02.blog")

        assert [p.rsplit("/", 1)[-1] for p in result.children[blog.path]] == [
            "draft-post",
            "second-post",
            "hello-world",
        ]
        assert [p.rsplit("/", 1)[-1] for p in result.children[result.root_path]] == [
            "01.home",
            "02.blog",
            "03.about",
            "drafts",
        ]

    def test_children_info_carries_final_slug(self, tmp_path: Path):
        write_page(tmp_path / "pages", "01.folder", {"slug": "pretty"})

        result = build(tmp_path)

        root = result.root_path
        assert result.children[root] == {f"{root}/01.folder": {"slug": "pretty"}}

    def test_last_modified(self, tmp_path: Path):
        write_page(tmp_path / "pages", "a", {}, mtime=10)
        write_page(tmp_path / "pages", "b", {}, mtime=30)

        assert build(tmp_path).last_modified == 30


class DuplicateProducer(DocumentProducer):
    root_path = "/root"

    def list_children(self, path: str) -> list[str]:
        return ["/root/a", "/root/a"] if path == "/root" else []

    def get_content(self, path: str) -> ContentDescriptor | None:
        return None

    def get_modified(self, path: str) -> int:
        return 0


def test_duplicate_path_is_fatal(tmp_path: Path):
    config = make_config(tmp_path)
    result = BuildResult(root_path="/root")

    with pytest.raises(DuplicatePathError) as exc_info:
        TreeBuilder(config, SortEngine(result.instances.get)).build(DuplicateProducer(), result)

    assert exc_info.value.path == "/root/a"


def test_build_root_only(tmp_path: Path):
    config = make_config(tmp_path)
    result = TreeBuilder(config, SortEngine(lambda _: None)).build_root("/root")

    assert list(result.instances) == ["/root"]
    assert result.children == {"/root": {}}
