"""
Content Store Interface
=======================

Abstract base class for content-addressed stores plus content id helpers.

Version: 0.1.0
"""

import re
from abc import ABC, abstractmethod
from typing import Any

from shared.config import ContentStoreMode, settings
from shared.logging import get_logger

logger = get_logger(__name__)


ContentId = str

_CIDV0_RE = re.compile(r"^Qm[1-9A-HJ-NP-Za-km-z]{44}$")
_CIDV1_BASE32_RE = re.compile(r"^b[a-z2-7]{10,}$")


def is_valid_content_id(value: str | None) -> bool:
    """
    Check that a value looks like an IPFS content id.

    Accepts CIDv0 (base58btc, "Qm...") and CIDv1 in lowercase base32
    ("bafy...", "bafk..."). This is a format check, not a multiformats parser.
    """
    if not value:
        return False
    value = value.strip()
    if len(value) > 128:
        return False
    return bool(_CIDV0_RE.match(value) or _CIDV1_BASE32_RE.match(value))


class ContentStore(ABC):
    """
    Abstract base class for content-addressed stores.

    Uploads are keyed by content hash, so identical bytes always map to the
    same id and writes need no ordering.
    """

    @property
    @abstractmethod
    def mode(self) -> ContentStoreMode:
        """Get the store mode."""
        ...

    @abstractmethod
    async def upload(self, content: bytes, timeout: float | None = None) -> ContentId:
        """
        Store bytes and return their content id.

        Args:
            content: Raw bytes to store
            timeout: Seconds to wait before giving up

        Returns:
            Content id assigned by the store

        Raises:
            StoreUnavailable: Store endpoint cannot be reached
            UploadRejected: Store refused the payload
            UploadTimeout: Upload exceeded the time budget
        """
        ...

    @abstractmethod
    async def fetch(self, content_id: ContentId, timeout: float | None = None) -> bytes:
        """
        Retrieve previously stored bytes.

        Args:
            content_id: Id returned by a previous upload
            timeout: Seconds to wait before giving up

        Returns:
            The stored bytes

        Raises:
            ContentNotFound: Nothing reachable under this id from this node
            StoreUnavailable: Store endpoint cannot be reached
            FetchTimeout: Fetch exceeded the time budget
        """
        ...

    @abstractmethod
    async def health_check(self) -> dict[str, Any]:
        """Check store health."""
        ...

    async def close(self) -> None:
        """Release network resources."""
        return None


# Global store instance
_store: ContentStore | None = None


def get_content_store() -> ContentStore:
    """
    Get the configured content store instance.

    Returns:
        ContentStore instance based on settings
    """
    global _store

    if _store is None:
        mode = settings.ipfs.mode

        if mode == ContentStoreMode.MOCK:
            from shared.content.mock import MockContentStore

            _store = MockContentStore(max_upload_bytes=settings.ipfs.max_upload_bytes)
        elif mode == ContentStoreMode.LIVE:
            from shared.content.ipfs import IPFSContentStore

            _store = IPFSContentStore.from_settings(settings.ipfs)
        else:
            raise ValueError(f"Unknown content store mode: {mode}")

        logger.info("content_store_initialized", mode=mode.value)

    return _store


def set_content_store(store: ContentStore) -> None:
    """
    Set a custom content store.

    Args:
        store: ContentStore instance
    """
    global _store
    _store = store
    logger.info("content_store_set", mode=store.mode.value)


def reset_content_store() -> None:
    """Reset the store to be re-initialized."""
    global _store
    _store = None
