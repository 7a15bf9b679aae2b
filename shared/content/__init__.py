"""
Content Store Module
====================

Content-addressed storage for diploma documents.

Supports:
- Mock (development/testing)
- IPFS HTTP API + gateway (live)

Usage:
    from shared.content import get_content_store

    store = get_content_store()

    content_id = await store.upload(b"Diploma:Alice:MIT:BSc")
    content = await store.fetch(content_id)
"""

from shared.content.client import (
    ContentId,
    ContentStore,
    get_content_store,
    is_valid_content_id,
    reset_content_store,
    set_content_store,
)
from shared.content.ipfs import IPFSContentStore
from shared.content.mock import MockContentStore, compute_content_id

__all__ = [
    # Interface
    "ContentId",
    "ContentStore",
    "get_content_store",
    "set_content_store",
    "reset_content_store",
    "is_valid_content_id",
    # Implementations
    "IPFSContentStore",
    "MockContentStore",
    "compute_content_id",
]
