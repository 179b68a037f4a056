"""API dependency tests."""

import pytest
from fastapi import HTTPException

from grove.api.deps import _reset_page_index_instance, get_page_index, get_settings
from grove.config import load_settings


@pytest.fixture(autouse=True)
def fresh_dependencies():
    """Clear cached settings and the shared index around each test."""
    load_settings.cache_clear()
    get_settings.cache_clear()
    _reset_page_index_instance()
    yield
    load_settings.cache_clear()
    get_settings.cache_clear()
    _reset_page_index_instance()


def test_get_settings_returns_config(site, monkeypatch):
    """get_settings reads the site path from the environment."""
    monkeypatch.setenv("GROVE_SITE_PATH", str(site))

    settings = get_settings()

    assert settings.site_path == site
    assert settings.pages_path == site / "pages"


def test_get_page_index_is_shared(site, monkeypatch):
    """The index is built once and reused."""
    monkeypatch.setenv("GROVE_SITE_PATH", str(site))

    index = get_page_index()

    assert index is get_page_index()
    assert index.find("/blog").title == "Blog"


def test_get_page_index_without_site_path(monkeypatch):
    """An unconfigured site answers 503."""
    monkeypatch.delenv("GROVE_SITE_PATH", raising=False)

    with pytest.raises(HTTPException) as excinfo:
        get_page_index()

    assert excinfo.value.status_code == 503


def test_get_page_index_without_pages(tmp_path, monkeypatch):
    """A site without a pages directory answers 503."""
    monkeypatch.setenv("GROVE_SITE_PATH", str(tmp_path))

    with pytest.raises(HTTPException) as excinfo:
        get_page_index()

    assert excinfo.value.status_code == 503
    assert "Pages directory not found" in excinfo.value.detail
