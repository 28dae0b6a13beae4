"""HTTP adapter for the Gemini File Search REST API."""
from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Dict, List, Optional

import httpx

from ..errors import RemoteAPIError
from ..models import TransferRequest

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://generativelanguage.googleapis.com"
API_VERSION = "v1beta"
STORE_PAGE_SIZE = 20
DOCUMENT_PAGE_SIZE = 20


def api_key_from_env() -> Optional[str]:
    return os.getenv("STORESYNC_API_KEY") or os.getenv("GEMINI_API_KEY")


class FileSearchClient:
    """
    HTTP client for File Search stores and documents.

    Implements ITransferClient protocol. Requests are not retried unless
    max_retries is raised above 1.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_API_URL,
        timeout: int = 300,
        max_retries: int = 1,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise ValueError("api_key is required")
        if max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_retries = max_retries
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            headers={"x-goog-api-key": self._api_key},
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        if not self._client:
            raise RuntimeError("FileSearchClient not initialized. Use 'async with' context.")

        last_exception: Optional[Exception] = None

        for attempt in range(self._max_retries):
            try:
                response = await self._client.request(method, endpoint, **kwargs)

                if response.status_code >= 500 and attempt < self._max_retries - 1:
                    await asyncio.sleep(0.5 * (attempt + 1))
                    continue

                if response.status_code >= 400:
                    try:
                        error_detail = response.json()
                    except Exception:
                        error_detail = response.text
                    raise RemoteAPIError(response.status_code, method, endpoint, error_detail)

                return response
            except (httpx.RequestError, httpx.TimeoutException) as exc:
                last_exception = exc
                if attempt < self._max_retries - 1:
                    await asyncio.sleep(0.5 * (attempt + 1))
                    continue
                raise

        if last_exception:
            raise last_exception
        raise RuntimeError(f"Failed to {method} {endpoint} after {self._max_retries} attempts")

    @staticmethod
    def _json(response: httpx.Response) -> Dict[str, Any]:
        if not response.content:
            return {}
        return response.json()

    async def _paginate(self, endpoint: str, items_key: str, page_size: int) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        page_token: Optional[str] = None
        while True:
            params: Dict[str, Any] = {"pageSize": page_size}
            if page_token:
                params["pageToken"] = page_token
            data = self._json(await self._request("GET", endpoint, params=params))
            items.extend(data.get(items_key) or [])
            page_token = data.get("nextPageToken")
            if not page_token:
                return items

    # Stores

    async def create_store(self, display_name: str) -> Dict[str, Any]:
        response = await self._request(
            "POST", f"/{API_VERSION}/fileSearchStores", json={"displayName": display_name}
        )
        store = self._json(response)
        logger.info("Created store %s (%s)", store.get("name"), display_name)
        return store

    async def list_stores(self) -> List[Dict[str, Any]]:
        return await self._paginate(f"/{API_VERSION}/fileSearchStores", "fileSearchStores", STORE_PAGE_SIZE)

    async def get_store(self, name: str) -> Dict[str, Any]:
        return self._json(await self._request("GET", f"/{API_VERSION}/{name}"))

    async def delete_store(self, name: str, force: bool = False) -> None:
        params = {"force": "true"} if force else None
        await self._request("DELETE", f"/{API_VERSION}/{name}", params=params)
        logger.info("Deleted store %s", name)

    # Documents

    async def list_documents(self, store_name: str) -> List[Dict[str, Any]]:
        """List every document of a store, following pagination."""
        return await self._paginate(f"/{API_VERSION}/{store_name}/documents", "documents", DOCUMENT_PAGE_SIZE)

    async def get_document(self, name: str) -> Dict[str, Any]:
        return self._json(await self._request("GET", f"/{API_VERSION}/{name}"))

    async def delete_document(self, name: str) -> None:
        await self._request("DELETE", f"/{API_VERSION}/{name}", params={"force": "true"})

    async def upload(self, request: TransferRequest) -> Dict[str, Any]:
        """
        Upload one file into a store using the resumable upload protocol.

        Returns:
            The long-running import operation returned by the API
        """
        content = await asyncio.to_thread(request.local_path.read_bytes)

        metadata: Dict[str, Any] = {
            "displayName": request.display_name,
            "mimeType": request.content_type,
            "customMetadata": [
                {"key": key, "stringValue": value}
                for key, value in request.custom_metadata.items()
            ],
        }
        if request.chunking_config:
            metadata["chunkingConfig"] = request.chunking_config

        logger.info(
            "Uploading %s to %s (path: %s)",
            request.display_name, request.store_name, request.relative_path
        )
        start = await self._request(
            "POST",
            f"/upload/{API_VERSION}/{request.store_name}:uploadToFileSearchStore",
            json=metadata,
            headers={
                "X-Goog-Upload-Protocol": "resumable",
                "X-Goog-Upload-Command": "start",
                "X-Goog-Upload-Header-Content-Length": str(len(content)),
                "X-Goog-Upload-Header-Content-Type": request.content_type,
            },
        )
        upload_url = start.headers.get("x-goog-upload-url")
        if not upload_url:
            raise RemoteAPIError(start.status_code, "POST", "uploadToFileSearchStore", "missing upload URL")

        finish = await self._request(
            "POST",
            upload_url,
            content=content,
            headers={
                "X-Goog-Upload-Command": "upload, finalize",
                "X-Goog-Upload-Offset": "0",
            },
        )
        return self._json(finish)
