"""Taxonomy map tests."""

from grove.pages.document import Document
from grove.pages.taxonomy import TaxonomyMap


def slugs(found: dict[str, dict]) -> list[str]:
    return [info["slug"] for info in found.values()]


class TestSiteTaxonomy:
    def test_terms(self, index):
        terms = index.taxonomy.terms("tag")

        assert sorted(terms) == ["python", "web"]
        assert sorted(slugs(terms["python"])) == ["hello-world", "second-post"]

    def test_find_single_term(self, index):
        assert slugs(index.taxonomy.find({"category": "news"})) == ["hello-world"]

    def test_find_and(self, index):
        assert slugs(index.taxonomy.find({"tag": ["python", "web"]})) == ["second-post"]

    def test_find_or(self, index):
        found = index.taxonomy.find({"tag": ["web"], "category": ["news"]}, operation="or")

        assert sorted(slugs(found)) == ["hello-world", "second-post"]

    def test_misses_are_empty(self, index):
        assert index.taxonomy.find({"tag": "rust"}) == {}
        assert index.taxonomy.find({"author": "nobody"}) == {}
        assert index.taxonomy.find({}) == {}
        assert index.taxonomy.terms("author") == {}


class TestTaxonomyMap:
    def test_only_configured_names_are_indexed(self):
        taxonomy = TaxonomyMap(["tag"])
        taxonomy.add(
            Document(path="/p/a", slug="a", header={"taxonomy": {"tag": "x", "author": "me"}})
        )

        assert taxonomy.to_dict() == {"tag": {"x": {"/p/a": {"slug": "a"}}}}

    def test_scalar_terms_are_stringified(self):
        taxonomy = TaxonomyMap(["year"])
        taxonomy.add(Document(path="/p/a", slug="a", header={"taxonomy": {"year": 2024}}))

        assert list(taxonomy.find({"year": "2024"})) == ["/p/a"]

    def test_dict_round_trip(self):
        taxonomy = TaxonomyMap(["tag"])
        taxonomy.add(Document(path="/p/a", slug="a", header={"taxonomy": {"tag": ["x", "y"]}}))
        taxonomy.add(Document(path="/p/b", slug="b", header={"taxonomy": {"tag": ["y"]}}))

        restored = TaxonomyMap.from_dict(taxonomy.to_dict(), ["tag"])

        assert restored.to_dict() == taxonomy.to_dict()
        assert restored.names == ("tag",)
        assert list(restored.find({"tag": "y"})) == ["/p/a", "/p/b"]
