"""
IPFS Content Store
==================

Content store backed by an IPFS HTTP API (uploads) and an HTTP gateway
(reads). Works against a local Kubo node or a hosted pinning API.

Version: 0.1.0
"""

import asyncio
import json
from typing import Any

import httpx

from shared.config import ContentStoreMode
from shared.config.settings import IPFSSettings
from shared.content.client import ContentId, ContentStore, is_valid_content_id
from shared.errors import (
    ContentNotFound,
    FetchTimeout,
    StoreUnavailable,
    UploadRejected,
    UploadTimeout,
)
from shared.logging import get_logger


logger = get_logger(__name__)

# Gateway statuses meaning the store itself is down rather than the content missing
_UNAVAILABLE_STATUSES = {502, 503}

# Gateways answer 504 when no peer could provide the blocks in time
_MISSING_STATUSES = {404, 410, 504}


class IPFSContentStore(ContentStore):
    """
    IPFS HTTP API client.

    Uploads go through `/api/v0/add`. Reads go through the gateway
    (`/ipfs/{cid}`) when one is configured, otherwise `/api/v0/cat`.
    """

    def __init__(
        self,
        api_url: str,
        gateway_url: str | None = None,
        project_id: str | None = None,
        project_secret: str | None = None,
        cid_version: int = 0,
        timeout: float = 60.0,
        max_upload_bytes: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize IPFS store.

        Args:
            api_url: HTTP API base URL (e.g. https://ipfs.infura.io:5001)
            gateway_url: Gateway base URL for reads
            project_id: Basic auth user for hosted APIs
            project_secret: Basic auth password for hosted APIs
            cid_version: CID version requested on upload
            timeout: Default per-request timeout in seconds
            max_upload_bytes: Local payload size limit
            transport: Optional httpx transport (tests)
        """
        self._api_url = api_url.rstrip("/")
        self._gateway_url = gateway_url.rstrip("/") if gateway_url else None
        self._cid_version = cid_version
        self._timeout = timeout
        self._max_upload_bytes = max_upload_bytes

        auth = None
        if project_id:
            auth = httpx.BasicAuth(project_id, project_secret or "")

        self._api = httpx.AsyncClient(
            base_url=self._api_url,
            auth=auth,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )
        self._gateway = None
        if self._gateway_url:
            self._gateway = httpx.AsyncClient(
                base_url=self._gateway_url,
                timeout=httpx.Timeout(timeout),
                follow_redirects=True,
                transport=transport,
            )

        logger.debug(
            "ipfs_store_initialized",
            api_url=self._api_url,
            gateway_url=self._gateway_url,
            authenticated=auth is not None,
        )

    @classmethod
    def from_settings(cls, ipfs: IPFSSettings) -> "IPFSContentStore":
        """Build a store from IPFS settings."""
        return cls(
            api_url=ipfs.api_url,
            gateway_url=ipfs.gateway_url or None,
            project_id=ipfs.project_id or None,
            project_secret=ipfs.project_secret.get_secret_value() or None,
            cid_version=ipfs.cid_version,
            timeout=ipfs.timeout_seconds,
            max_upload_bytes=ipfs.max_upload_bytes,
        )

    @property
    def mode(self) -> ContentStoreMode:
        return ContentStoreMode.LIVE

    async def upload(self, content: bytes, timeout: float | None = None) -> ContentId:
        """Add bytes through the HTTP API and return the resulting CID."""
        if self._max_upload_bytes is not None and len(content) > self._max_upload_bytes:
            raise UploadRejected(
                "Payload exceeds the configured upload limit",
                size=len(content),
                limit=self._max_upload_bytes,
            )

        budget = timeout if timeout is not None else self._timeout
        try:
            async with asyncio.timeout(budget):
                response = await self._api.post(
                    "/api/v0/add",
                    params={"pin": "true", "cid-version": str(self._cid_version)},
                    files={"file": ("diploma", content)},
                )
        except (TimeoutError, httpx.TimeoutException) as e:
            logger.warning("ipfs_upload_timeout", timeout=budget, size=len(content))
            raise UploadTimeout("IPFS upload timed out", timeout=budget) from e
        except httpx.TransportError as e:
            logger.error("ipfs_unreachable", api_url=self._api_url, error=str(e))
            raise StoreUnavailable(
                "IPFS API unreachable", api_url=self._api_url, reason=str(e)
            ) from e

        if response.status_code in _UNAVAILABLE_STATUSES:
            raise StoreUnavailable(
                "IPFS API unavailable", status_code=response.status_code
            )
        if response.status_code == 504:
            raise UploadTimeout("IPFS API gateway timed out", status_code=504)
        if response.status_code >= 400:
            logger.warning(
                "ipfs_upload_rejected",
                status_code=response.status_code,
                body=response.text[:200],
            )
            raise UploadRejected(
                "IPFS refused the upload",
                status_code=response.status_code,
                reason=response.text[:200],
            )

        content_id = self._parse_add_response(response)
        logger.info("ipfs_content_uploaded", content_id=content_id, size=len(content))
        return content_id

    @staticmethod
    def _parse_add_response(response: httpx.Response) -> ContentId:
        """
        Extract the CID from an `add` response.

        The API streams one JSON object per line (one per file/directory);
        the last line describes the root.
        """
        lines = [line for line in response.text.splitlines() if line.strip()]
        if not lines:
            raise UploadRejected("IPFS returned an empty add response")

        try:
            last = json.loads(lines[-1])
        except ValueError as e:
            raise UploadRejected(
                "IPFS returned a malformed add response", body=lines[-1][:200]
            ) from e
        if not isinstance(last, dict):
            raise UploadRejected(
                "IPFS returned a malformed add response", body=lines[-1][:200]
            )

        content_id = last.get("Hash") or last.get("cid")
        if not content_id:
            raise UploadRejected("IPFS add response carried no hash", body=lines[-1][:200])
        return content_id

    async def fetch(self, content_id: ContentId, timeout: float | None = None) -> bytes:
        """Read bytes through the gateway, or the API when no gateway is set."""
        if not is_valid_content_id(content_id):
            raise ContentNotFound("Not a valid content id", content_id=content_id)

        budget = timeout if timeout is not None else self._timeout
        try:
            async with asyncio.timeout(budget):
                if self._gateway is not None:
                    response = await self._gateway.get(f"/ipfs/{content_id}")
                else:
                    response = await self._api.post("/api/v0/cat", params={"arg": content_id})
        except (TimeoutError, httpx.TimeoutException) as e:
            logger.warning("ipfs_fetch_timeout", content_id=content_id, timeout=budget)
            raise FetchTimeout(
                "IPFS fetch timed out", content_id=content_id, timeout=budget
            ) from e
        except httpx.TransportError as e:
            logger.error("ipfs_unreachable", content_id=content_id, error=str(e))
            raise StoreUnavailable(
                "IPFS endpoint unreachable", content_id=content_id, reason=str(e)
            ) from e

        self._raise_for_fetch_status(content_id, response)

        logger.debug("ipfs_content_fetched", content_id=content_id, size=len(response.content))
        return response.content

    @staticmethod
    def _raise_for_fetch_status(content_id: ContentId, response: httpx.Response) -> None:
        status_code = response.status_code
        if status_code < 400:
            return
        if status_code in _MISSING_STATUSES:
            raise ContentNotFound(
                "Content not reachable from this node",
                content_id=content_id,
                status_code=status_code,
            )
        if status_code in _UNAVAILABLE_STATUSES:
            raise StoreUnavailable(
                "IPFS endpoint unavailable",
                content_id=content_id,
                status_code=status_code,
            )
        # Kubo reports missing blocks as a 500 with a "not found" message
        if "not found" in response.text.lower():
            raise ContentNotFound(
                "Content not reachable from this node",
                content_id=content_id,
                status_code=status_code,
            )
        raise StoreUnavailable(
            "IPFS fetch failed",
            content_id=content_id,
            status_code=status_code,
            reason=response.text[:200],
        )

    async def health_check(self) -> dict[str, Any]:
        """Query the node version endpoint."""
        try:
            response = await self._api.post("/api/v0/version")
            response.raise_for_status()
            data = response.json()
            return {
                "status": "healthy",
                "mode": self.mode.value,
                "api_url": self._api_url,
                "gateway_url": self._gateway_url,
                "node_version": data.get("Version"),
            }
        except (httpx.HTTPError, ValueError) as e:
            return {
                "status": "unhealthy",
                "mode": self.mode.value,
                "api_url": self._api_url,
                "error": str(e),
            }

    async def close(self) -> None:
        """Close HTTP clients."""
        await self._api.aclose()
        if self._gateway is not None:
            await self._gateway.aclose()
