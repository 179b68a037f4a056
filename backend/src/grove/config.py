# backend/src/grove/config.py
"""Configuration system for Grove.

This module handles loading settings from environment variables and INI files,
providing sensible defaults, and computing derived paths for the site
directory structure (pages, cache, templates).
"""

import hashlib
import json
import os
from configparser import ConfigParser
from dataclasses import asdict, dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any


class ConfigError(Exception):
    """Raised when configuration validation fails."""

    pass


# Schema: section -> key -> (type, default, min, max, description)
CONFIG_SCHEMA: dict[str, dict[str, tuple[type, Any, Any, Any, str]]] = {
    "pages": {
        "ignore_files": (list, (".DS_Store",), None, None, "File names skipped by the scan"),
        "ignore_folders": (list, (".git", ".idea"), None, None, "Folder names skipped by the scan"),
        "ignore_hidden": (bool, True, None, None, "Skip entries starting with a dot"),
        "hide_empty_folders": (bool, False, None, None, "Folders without content are not visible"),
        "order_by": (str, "default", None, None, "Default order field for children"),
        "order_dir": (str, "asc", None, None, "Default order direction for children"),
        "extensions": (list, (".md",), None, None, "Content file extensions, by priority"),
        "param_sep": (str, ":", None, None, "Folders containing this are skipped"),
        "intl_enabled": (bool, True, None, None, "Locale aware collation when sorting"),
        "collation_locale": (str, "", None, None, "Locale used for collation (empty = process)"),
    },
    "cache": {
        "enabled": (bool, True, None, None, "Persist the page index between builds"),
        "check_method": (str, "file", None, None, "Storage change signal (see CONFIG_CHOICES)"),
    },
    "home": {
        "alias": (str, "/home", None, None, "Route served as /"),
    },
    "languages": {
        "supported": (list, (), None, None, "Supported language codes"),
        "default": (str, "", None, None, "Default language code"),
        "active": (str, "", None, None, "Active language code"),
        "include_default_lang": (bool, True, None, None, "Prefix routes with the default language"),
    },
    "site": {
        "taxonomies": (list, ("category", "tag"), None, None, "Taxonomy names indexed"),
        "base": (str, "", None, None, "Base path prefixed to generated routes"),
    },
    "pagination": {
        "limit": (int, 10, 1, None, "Default page size for collections"),
    },
}

# Allowed values for enumerated string settings: (section, key) -> choices
CONFIG_CHOICES: dict[tuple[str, str], tuple[str, ...]] = {
    ("cache", "check_method"): ("none", "off", "folder", "hash", "file"),
    ("pages", "order_dir"): ("asc", "desc"),
}

# Sections holding ordered key -> value tables instead of typed settings
TABLE_SECTIONS: tuple[str, ...] = ("home.aliases", "redirects", "routes")


@dataclass(frozen=True)
class PagesConfig:
    """Page discovery and ordering configuration."""

    ignore_files: tuple[str, ...]
    ignore_folders: tuple[str, ...]
    ignore_hidden: bool
    hide_empty_folders: bool
    order_by: str
    order_dir: str
    extensions: tuple[str, ...]
    param_sep: str
    intl_enabled: bool
    collation_locale: str


@dataclass(frozen=True)
class CacheConfig:
    """Page index cache configuration."""

    enabled: bool
    check_method: str


@dataclass(frozen=True)
class HomeConfig:
    """Home route configuration."""

    alias: str


@dataclass(frozen=True)
class LanguagesConfig:
    """Multi-language configuration."""

    supported: tuple[str, ...]
    default: str
    active: str
    include_default_lang: bool

    @property
    def enabled(self) -> bool:
        return bool(self.supported)

    @property
    def default_language(self) -> str:
        """Default language, falling back to the first supported one."""
        if self.default:
            return self.default
        return self.supported[0] if self.supported else ""

    @property
    def active_language(self) -> str:
        return self.active or self.default_language


@dataclass(frozen=True)
class SiteConfig:
    """Site level configuration."""

    taxonomies: tuple[str, ...]
    base: str


@dataclass(frozen=True)
class PaginationConfig:
    """Collection pagination defaults."""

    limit: int


_SECTION_CLASSES: dict[str, type] = {
    "pages": PagesConfig,
    "cache": CacheConfig,
    "home": HomeConfig,
    "languages": LanguagesConfig,
    "site": SiteConfig,
    "pagination": PaginationConfig,
}


def _parse_list(raw_value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in raw_value.split(",") if item.strip())


def _load_section(
    parser: ConfigParser, section: str, schema: dict[str, tuple[type, Any, Any, Any, str]]
) -> dict[str, Any]:
    """Load and validate a configuration section.

    Args:
        parser: ConfigParser instance with loaded config
        section: Section name to load
        schema: Schema definition for the section

    Returns:
        Dictionary of validated configuration values

    Raises:
        ConfigError: If validation fails
    """
    result = {}

    for key, (typ, default, min_val, max_val, _) in schema.items():
        # Get value from parser or use default
        if parser.has_option(section, key):
            raw_value = parser.get(section, key)
            value: Any
            try:
                if typ is bool:
                    value = raw_value.lower() in ("true", "1", "yes", "on")
                elif typ is int:
                    value = int(raw_value)
                elif typ is float:
                    value = float(raw_value)
                elif typ is list:
                    value = _parse_list(raw_value)
                else:
                    value = raw_value.strip()
            except ValueError as e:
                raise ConfigError(
                    f"Invalid value for [{section}].{key}: {raw_value!r} (expected {typ.__name__})"
                ) from e
        else:
            value = default

        # Validate range for numeric types
        if typ in (int, float) and value is not None:
            if min_val is not None and value < min_val:
                raise ConfigError(
                    f"Value for [{section}].{key} is {value}, but minimum is {min_val}"
                )
            if max_val is not None and value > max_val:
                raise ConfigError(
                    f"Value for [{section}].{key} is {value}, but maximum is {max_val}"
                )

        choices = CONFIG_CHOICES.get((section, key))
        if choices is not None:
            value = value.lower()
            if value not in choices:
                raise ConfigError(
                    f"Invalid value for [{section}].{key}: {value!r} "
                    f"(expected one of {', '.join(choices)})"
                )

        result[key] = value

    return result


def _load_table(parser: ConfigParser, section: str) -> tuple[tuple[str, str], ...]:
    """Load an ordered key -> value table, preserving file order and key case."""
    if not parser.has_section(section):
        return ()
    return tuple((key, value.strip()) for key, value in parser.items(section))


def _section_defaults(section: str) -> Any:
    values = {key: default for key, (_, default, _, _, _) in CONFIG_SCHEMA[section].items()}
    return _SECTION_CLASSES[section](**values)


def _new_parser() -> ConfigParser:
    # Route patterns may contain ':' so only '=' separates keys from values
    parser = ConfigParser(delimiters=("=",), interpolation=None)
    parser.optionxform = str  # type: ignore[assignment,method-assign]
    return parser


def _load_config(config_path: Path | None = None) -> "Config":
    """Load configuration from an INI file (internal use only).

    Returns a Config with a placeholder site_path that load_settings()
    replaces with the site path from the GROVE_SITE_PATH environment variable.

    Args:
        config_path: Path to config file. If None, uses defaults from schema.

    Returns:
        Config object with all sections populated (site_path is placeholder)

    Raises:
        ConfigError: If validation fails
    """
    parser = _new_parser()

    if config_path and config_path.exists():
        parser.read(config_path, encoding="utf-8")

    sections = {
        name: _SECTION_CLASSES[name](**_load_section(parser, name, schema))
        for name, schema in CONFIG_SCHEMA.items()
    }

    return Config(
        site_path=Path("."),  # Placeholder, will be overwritten
        home_aliases=_load_table(parser, "home.aliases"),
        redirects=_load_table(parser, "redirects"),
        routes=_load_table(parser, "routes"),
        **sections,
    )


@dataclass(frozen=True)
class Config:
    """Complete application configuration."""

    site_path: Path
    pages: PagesConfig = None  # type: ignore[assignment]
    cache: CacheConfig = None  # type: ignore[assignment]
    home: HomeConfig = None  # type: ignore[assignment]
    languages: LanguagesConfig = None  # type: ignore[assignment]
    site: SiteConfig = None  # type: ignore[assignment]
    pagination: PaginationConfig = None  # type: ignore[assignment]

    # Ordered tables: locale -> home route, pattern -> replacement
    home_aliases: tuple[tuple[str, str], ...] = ()
    redirects: tuple[tuple[str, str], ...] = ()
    routes: tuple[tuple[str, str], ...] = ()

    def __post_init__(self):
        """Initialize section configs with defaults if not provided."""
        # Since frozen=True, we need to use object.__setattr__
        for section in CONFIG_SCHEMA:
            if getattr(self, section) is None:
                object.__setattr__(self, section, _section_defaults(section))

    @property
    def pages_path(self) -> Path:
        """Path to the pages directory."""
        return self.site_path / "pages"

    @property
    def cache_path(self) -> Path:
        """Path to the cache directory."""
        return self.site_path / "cache"

    @property
    def templates_path(self) -> Path:
        """Path to the templates directory (page types are scanned from here)."""
        return self.site_path / "templates"

    def page_extensions(self) -> tuple[str, ...]:
        """Content extensions in priority order, including language fallbacks.

        With languages enabled, ``.<active>.md`` precedes ``.<default>.md``
        which precedes the plain ``.md``.
        """
        extensions = self.pages.extensions
        if not self.languages.enabled:
            return extensions

        langs: list[str] = []
        for lang in (self.languages.active_language, self.languages.default_language):
            if lang and lang not in langs:
                langs.append(lang)

        result = [f".{lang}{ext}" for lang in langs for ext in extensions]
        result.extend(extensions)
        return tuple(result)

    def checksum(self) -> str:
        """Stable digest of every effective setting (site path excluded)."""
        data = asdict(self)
        data.pop("site_path", None)
        encoded = json.dumps(data, sort_keys=True, default=str)
        return hashlib.md5(encoded.encode("utf-8")).hexdigest()


@lru_cache(maxsize=1)
def load_settings() -> Config:
    """Load settings from environment variables and config file.

    Settings are cached for the lifetime of the application.
    Use load_settings.cache_clear() to reload settings.

    Returns:
        Config object populated from environment variables and config file.

    Raises:
        ValueError: If GROVE_SITE_PATH is not set.
    """
    site_path_str = os.getenv("GROVE_SITE_PATH")
    if not site_path_str:
        raise ValueError("GROVE_SITE_PATH environment variable must be set")

    site_path = Path(site_path_str)

    config_file = site_path / "config.ini"
    try:
        config_exists = config_file.exists()
    except PermissionError:
        config_exists = False
    base_config = _load_config(config_file if config_exists else None)

    languages = base_config.languages
    active_language = os.getenv("GROVE_LANGUAGE")
    if active_language:
        languages = LanguagesConfig(
            supported=languages.supported,
            default=languages.default,
            active=active_language,
            include_default_lang=languages.include_default_lang,
        )

    return Config(
        site_path=site_path,
        pages=base_config.pages,
        cache=base_config.cache,
        home=base_config.home,
        languages=languages,
        site=base_config.site,
        pagination=base_config.pagination,
        home_aliases=base_config.home_aliases,
        redirects=base_config.redirects,
        routes=base_config.routes,
    )
