"""Tests for frontmatter utilities."""

from grove.pages.frontmatter import build_frontmatter, parse_frontmatter


class TestBuildFrontmatter:
    """Tests for build_frontmatter function."""

    def test_build_with_header_and_body(self):
        """Header is dumped as YAML between delimiters, body follows."""
        result = build_frontmatter({"title": "Hello", "taxonomy": {"tag": ["a", "b"]}}, "Body\n")

        assert result.startswith("---\n")
        assert "title: Hello" in result
        assert "tag:" in result
        assert result.endswith("---\n\nBody\n")

    def test_build_without_header_returns_body(self):
        """No header means no delimiters."""
        assert build_frontmatter({}, "Just text") == "Just text"

    def test_build_then_parse_preserves_header(self):
        header = {"title": "Hello", "order_by": "date", "visible": False}
        metadata, body = parse_frontmatter(build_frontmatter(header, "Body"))

        assert metadata == header
        assert body == "Body"


class TestParseFrontmatter:
    """Tests for parse_frontmatter function."""

    def test_parse_valid_frontmatter(self):
        """Parse content with valid frontmatter."""
        content = """---
title: Hello World
taxonomy:
  tag: [python, web]
---

# Hello

This is the content.
"""
        metadata, remaining = parse_frontmatter(content)

        assert metadata is not None
        assert metadata["title"] == "Hello World"
        assert metadata["taxonomy"] == {"tag": ["python", "web"]}
        assert remaining == "# Hello\n\nThis is the content.\n"

    def test_dates_are_converted_to_iso_strings(self):
        """YAML dates become strings so headers stay JSON serialisable."""
        content = "---\ndate: 2024-01-15\npublished_at: 2024-01-15T10:30:00+00:00\n---\n"

        metadata, _ = parse_frontmatter(content)

        assert metadata == {"date": "2024-01-15", "published_at": "2024-01-15T10:30:00+00:00"}

    def test_parse_content_without_frontmatter(self):
        """Return None metadata for content without frontmatter."""
        content = """# Just a Heading

Some content without frontmatter.
"""
        metadata, remaining = parse_frontmatter(content)

        assert metadata is None
        assert remaining == content

    def test_parse_empty_frontmatter(self):
        """An empty header block parses to an empty mapping."""
        metadata, remaining = parse_frontmatter("---\n---\nBody\n")

        assert metadata == {}
        assert remaining == "Body\n"

    def test_parse_windows_line_endings(self):
        metadata, remaining = parse_frontmatter("---\r\ntitle: Hi\r\n---\r\n\r\nBody\r\n")

        assert metadata == {"title": "Hi"}
        assert remaining == "Body\n"

    def test_parse_invalid_yaml_returns_none(self):
        """Return None for invalid YAML in frontmatter."""
        content = """---
invalid: [unclosed bracket
title: x
---

Content
"""
        metadata, remaining = parse_frontmatter(content)

        assert metadata is None
        assert remaining == content

    def test_parse_non_mapping_yaml_returns_none(self):
        content = "---\n- a\n- b\n---\nBody"

        metadata, remaining = parse_frontmatter(content)

        assert metadata is None
        assert remaining == content

    def test_parse_unclosed_frontmatter_returns_none(self):
        """Return None for frontmatter without closing delimiter."""
        content = """---
title: test

Content without closing delimiter
"""
        metadata, remaining = parse_frontmatter(content)

        assert metadata is None
        assert remaining == content

    def test_parse_frontmatter_without_blank_line_after(self):
        """Parse frontmatter that has no blank line after closing delimiter."""
        content = """---
title: x
---
# Heading immediately after
"""
        metadata, remaining = parse_frontmatter(content)

        assert metadata == {"title": "x"}
        assert remaining == "# Heading immediately after\n"

    def test_parse_frontmatter_closing_at_end_of_content(self):
        metadata, remaining = parse_frontmatter("---\ntitle: x\n---")

        assert metadata == {"title": "x"}
        assert remaining == ""
