"""Utilities for building and parsing YAML frontmatter in page files.

The frontmatter of a content file is its header: free-form metadata such as
title, date, taxonomy, ordering and routing overrides. Date and datetime
values produced by the YAML loader are converted to ISO strings so headers
stay JSON serialisable (the index snapshot is stored as JSON).
"""

from datetime import date, datetime
from typing import Any

import yaml


def build_frontmatter(header: dict[str, Any], body: str = "") -> str:
    """Build page file content from a header mapping and a body.

    Args:
        header: Header fields to serialise as YAML.
        body: Page body appended after the closing delimiter.

    Returns:
        Content starting with --- and ending with the body.
    """
    if not header:
        return body

    dumped = yaml.safe_dump(header, sort_keys=False, allow_unicode=True, default_flow_style=False)
    return f"---\n{dumped}---\n\n{body}"


def parse_frontmatter(content: str) -> tuple[dict | None, str]:
    """Parse YAML frontmatter from page file content.

    Args:
        content: Full page content that may start with frontmatter

    Returns:
        Tuple of (metadata_dict, remaining_content).
        If no valid frontmatter found, returns (None, original_content).
    """
    content = content.replace("\r\n", "\n")
    if not content.startswith("---\n"):
        return None, content

    # Find the closing delimiter
    # Start searching after the opening "---\n"
    end_pos = content.find("\n---\n", 3)
    if end_pos == -1:
        # Check for closing delimiter at end of content
        if content.rstrip().endswith("\n---"):
            end_pos = content.rstrip().rfind("\n---")
        else:
            return None, content

    # Extract the YAML content between delimiters
    yaml_content = content[4:end_pos]

    try:
        metadata = yaml.safe_load(yaml_content) if yaml_content.strip() else {}
        if not isinstance(metadata, dict):
            return None, content
    except yaml.YAMLError:
        return None, content

    # Calculate where remaining content starts
    # After closing "---\n", skip optional blank line
    remaining_start = end_pos + 5  # len("\n---\n")

    # Skip one blank line if present
    if remaining_start < len(content) and content[remaining_start] == "\n":
        remaining_start += 1

    remaining_content = content[remaining_start:]

    return normalize_header(metadata), remaining_content


def normalize_header(value: Any) -> Any:
    """Make a parsed header JSON-safe: string keys, lists, ISO dates."""
    if isinstance(value, dict):
        return {str(k): normalize_header(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize_header(v) for v in value]
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value
