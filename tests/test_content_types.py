"""Tests for content type classification."""
from pathlib import Path

import pytest

from storesync.errors import COMPATIBILITY_URL, ErrorKind, UnsupportedContentType
from storesync.services.content_types import (
    EXTENSION_TO_MIME,
    TEXT_FALLBACK_EXTENSIONS,
    ContentClassifier,
    extension_of,
    get_fallback_extensions,
    get_mime_type,
    get_supported_extensions,
    is_extension_supported,
    is_extension_supported_with_fallback,
    normalize_extension,
)


def test_verified_table_size():
    assert len(EXTENSION_TO_MIME) == 36
    assert get_supported_extensions()[:3] == [".pdf", ".xml", ".txt"]


def test_tables_do_not_overlap():
    assert not set(EXTENSION_TO_MIME) & TEXT_FALLBACK_EXTENSIONS


def test_normalize_extension():
    assert normalize_extension("PY") == ".py"
    assert normalize_extension(".Md") == ".md"
    assert normalize_extension("") == ""


def test_extension_of():
    assert extension_of("docs/README.MD") == ".md"
    assert extension_of("archive.tar.gz") == ".gz"
    assert extension_of(".gitignore") == ""
    assert extension_of("config/.env") == ""
    assert extension_of("Makefile") == ""


def test_lookup_helpers():
    assert is_extension_supported(".pdf")
    assert not is_extension_supported(".ts")
    assert is_extension_supported_with_fallback("ts")
    assert not is_extension_supported_with_fallback(".exe")
    assert get_mime_type(Path("main.go")) == "text/x-go"
    assert get_mime_type(Path("main.rs")) is None
    assert get_fallback_extensions() == sorted(get_fallback_extensions())


class TestContentClassifier:
    @pytest.mark.parametrize(
        "name, mime_type",
        [
            ("report.pdf", "application/pdf"),
            ("notes.md", "text/markdown"),
            ("Script.PY", "text/x-python"),
            ("page.htm", "text/html"),
            ("changes.diff", "text/x-diff"),
        ],
    )
    def test_verified(self, name, mime_type):
        result = ContentClassifier.classify(name)
        assert result.mime_type == mime_type
        assert result.is_fallback is False

    @pytest.mark.parametrize("name", ["app.ts", "config.YAML", "data.json", "lib.rs"])
    def test_fallback(self, name):
        result = ContentClassifier.classify(name)
        assert result.mime_type == "text/plain"
        assert result.is_fallback is True

    @pytest.mark.parametrize("name", ["photo.jpg", "binary.exe", "Makefile", ".env", ".gitignore"])
    def test_unsupported(self, name):
        with pytest.raises(UnsupportedContentType) as exc_info:
            ContentClassifier.classify(name)
        err = exc_info.value
        assert err.kind == ErrorKind.UNSUPPORTED_CONTENT_TYPE
        assert err.path == name
        assert err.supported_count == 36
        assert len(err.supported_sample) == 10
        assert COMPATIBILITY_URL in str(err)
        assert "Unsupported file type" in str(err)
