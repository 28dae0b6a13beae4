"""Tests for smart sync remote state diffing."""
from unittest.mock import AsyncMock, MagicMock

import pytest

from storesync.models import RemoteDocumentInfo, SyncDecision
from storesync.services.remote_state import RemoteStateDiffer, extract_document_info


def _document(name, path=None, hash_value=None):
    metadata = []
    if path is not None:
        metadata.append({"key": "path", "stringValue": path})
    if hash_value is not None:
        metadata.append({"key": "hash", "stringValue": hash_value})
    return {"name": name, "customMetadata": metadata}


class TestExtractDocumentInfo:
    def test_valid_document(self):
        info = extract_document_info(_document("docs/1", "a/b.md", "abc"))
        assert info == RemoteDocumentInfo(relative_path="a/b.md", content_hash="abc", remote_id="docs/1")

    def test_ignores_other_keys(self):
        doc = _document("docs/1", "a.md", "abc")
        doc["customMetadata"].append({"key": "last_modified", "stringValue": "2026"})
        assert extract_document_info(doc).content_hash == "abc"

    @pytest.mark.parametrize(
        "document",
        [
            None,
            "not a dict",
            {"customMetadata": []},
            {"name": "docs/1"},
            {"name": "docs/1", "customMetadata": "bad"},
            {"name": "docs/1", "customMetadata": [{"key": "path", "stringValue": "a.md"}]},
            {"name": "docs/1", "customMetadata": [{"key": "hash", "stringValue": "abc"}]},
            {"name": "docs/1", "customMetadata": [
                {"key": "path", "numericValue": 3}, {"key": "hash", "stringValue": "abc"}
            ]},
        ],
    )
    def test_malformed_documents(self, document):
        assert extract_document_info(document) is None


class TestRemoteStateDiffer:
    @pytest.mark.asyncio
    async def test_fetch_known_hashes(self):
        client = MagicMock()
        client.list_documents = AsyncMock(return_value=[
            _document("docs/1", "a.md", "h1"),
            _document("docs/2", "sub/b.md", "h2"),
            _document("docs/3"),
        ])
        known = await RemoteStateDiffer(client).fetch_known_hashes("fileSearchStores/s")

        client.list_documents.assert_awaited_once_with("fileSearchStores/s")
        assert set(known) == {"a.md", "sub/b.md"}
        assert known["sub/b.md"].content_hash == "h2"

    @pytest.mark.asyncio
    async def test_listing_failure_yields_empty_map(self, caplog):
        client = MagicMock()
        client.list_documents = AsyncMock(side_effect=RuntimeError("API down"))
        with caplog.at_level("WARNING"):
            known = await RemoteStateDiffer(client).fetch_known_hashes("fileSearchStores/s")
        assert known == {}
        assert "API down" in caplog.text

    def test_decide(self):
        known = {"a.md": RemoteDocumentInfo("a.md", "h1", "docs/1")}
        assert RemoteStateDiffer.decide("a.md", "h1", known) == SyncDecision.UNCHANGED
        assert RemoteStateDiffer.decide("a.md", "h2", known) == SyncDecision.CHANGED
        assert RemoteStateDiffer.decide("b.md", "h1", known) == SyncDecision.NEW

    def test_needs_hash_comparison(self):
        known = {"a.md": RemoteDocumentInfo("a.md", "h1", "docs/1")}
        assert RemoteStateDiffer.needs_hash_comparison("a.md", known)
        assert not RemoteStateDiffer.needs_hash_comparison("b.md", known)
