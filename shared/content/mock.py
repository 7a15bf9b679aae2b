"""
Mock Content Store
==================

In-memory content-addressed store for development and testing.

Version: 0.1.0
"""

import asyncio
import base64
import hashlib
from typing import Any

from shared.config import ContentStoreMode
from shared.content.client import ContentId, ContentStore
from shared.errors import (
    ContentNotFound,
    FetchTimeout,
    StoreUnavailable,
    UploadRejected,
    UploadTimeout,
)
from shared.logging import get_logger

logger = get_logger(__name__)

# CIDv1 prefix: version 1, raw codec (0x55), sha2-256 multihash (0x12, 32 bytes)
_CIDV1_RAW_SHA256_PREFIX = bytes([0x01, 0x55, 0x12, 0x20])


def compute_content_id(content: bytes) -> ContentId:
    """
    Compute the CIDv1 (raw leaf, sha2-256, base32) of a byte payload.

    Matches what IPFS assigns to a single-block raw upload.
    """
    digest = hashlib.sha256(content).digest()
    encoded = base64.b32encode(_CIDV1_RAW_SHA256_PREFIX + digest).decode("ascii")
    return "b" + encoded.lower().rstrip("=")


class MockContentStore(ContentStore):
    """
    In-memory mock content store.

    Ids are real CIDv1 values derived from the bytes, so uploads are
    deterministic. Data is stored in memory and lost on restart.
    """

    def __init__(
        self,
        max_upload_bytes: int | None = None,
        latency: float = 0.0,
    ) -> None:
        """
        Initialize mock store.

        Args:
            max_upload_bytes: Reject payloads larger than this
            latency: Simulated seconds per remote call
        """
        self._objects: dict[ContentId, bytes] = {}
        self._max_upload_bytes = max_upload_bytes
        self._latency = latency
        self._available = True
        self._uploads = 0

        logger.debug("mock_content_store_initialized")

    @property
    def mode(self) -> ContentStoreMode:
        return ContentStoreMode.MOCK

    async def _simulate_network(self) -> None:
        if not self._available:
            raise StoreUnavailable("Mock content store is offline")
        if self._latency:
            await asyncio.sleep(self._latency)

    async def upload(self, content: bytes, timeout: float | None = None) -> ContentId:
        """Store bytes under their CID."""
        if self._max_upload_bytes is not None and len(content) > self._max_upload_bytes:
            raise UploadRejected(
                "Payload exceeds the configured upload limit",
                size=len(content),
                limit=self._max_upload_bytes,
            )

        try:
            async with asyncio.timeout(timeout):
                await self._simulate_network()
        except TimeoutError as e:
            raise UploadTimeout("Mock upload timed out", timeout=timeout) from e

        content_id = compute_content_id(content)
        self._objects[content_id] = bytes(content)
        self._uploads += 1

        logger.debug("mock_content_uploaded", content_id=content_id, size=len(content))
        return content_id

    async def fetch(self, content_id: ContentId, timeout: float | None = None) -> bytes:
        """Return bytes stored under a CID."""
        try:
            async with asyncio.timeout(timeout):
                await self._simulate_network()
        except TimeoutError as e:
            raise FetchTimeout(
                "Mock fetch timed out", content_id=content_id, timeout=timeout
            ) from e

        if content_id not in self._objects:
            raise ContentNotFound(
                "Content not reachable from this node", content_id=content_id
            )
        return self._objects[content_id]

    async def health_check(self) -> dict[str, Any]:
        """Check mock store health."""
        return {
            "status": "healthy" if self._available else "unhealthy",
            "mode": self.mode.value,
            "objects": len(self._objects),
        }

    # =========================================================================
    # Test Utilities
    # =========================================================================

    def set_available(self, available: bool) -> None:
        """Simulate the store endpoint going offline or coming back."""
        self._available = available

    def forget(self, content_id: ContentId) -> None:
        """Drop content to emulate peers that no longer provide it."""
        self._objects.pop(content_id, None)

    def clear_all(self) -> None:
        """Clear all mock data (for testing)."""
        self._objects.clear()
        self._uploads = 0
        self._available = True
        logger.debug("mock_content_store_cleared")

    def get_stats(self) -> dict[str, int]:
        """Get storage statistics."""
        return {
            "objects": len(self._objects),
            "uploads": self._uploads,
        }
