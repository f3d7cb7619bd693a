"""
Unit tests for content type resolution.
"""

from pathlib import Path

import pytest

from webserver.http.mime_types import DEFAULT_MIME_TYPE, get_content_type


@pytest.mark.parametrize("name,expected", [
    ("index.html", "text/html"),
    ("site.css", "text/css"),
    ("app.js", "application/javascript"),
    ("logo.png", "image/png"),
    ("photo.jpg", "image/jpeg"),
    ("photo.jpeg", "image/jpeg"),
    ("anim.gif", "image/gif"),
    ("notes.txt", "text/plain"),
])
def test_known_extensions(name: str, expected: str):
    assert get_content_type(name) == expected


def test_case_insensitive():
    """Test that extension matching ignores case."""
    assert get_content_type("INDEX.HTML") == "text/html"
    assert get_content_type("Logo.PnG") == "image/png"


@pytest.mark.parametrize("name", ["archive.tar.gz", "data.json", "README", "image.svg"])
def test_unknown_extension_is_binary(name: str):
    assert get_content_type(name) == DEFAULT_MIME_TYPE == "application/octet-stream"


def test_accepts_paths():
    assert get_content_type(Path("/srv/StaticFiles/css/site.css")) == "text/css"


def test_only_last_suffix_counts():
    assert get_content_type("page.html.bak") == DEFAULT_MIME_TYPE
