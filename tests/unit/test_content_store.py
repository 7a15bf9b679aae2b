"""
Unit tests for the mock content store and content id helpers.
"""

import pytest

from shared.config import ContentStoreMode
from shared.content import MockContentStore, compute_content_id, is_valid_content_id
from shared.errors import (
    ConnectivityError,
    ContentNotFound,
    FetchTimeout,
    StoreUnavailable,
    UploadRejected,
    UploadTimeout,
)


class TestContentIds:
    """Tests for content id computation and validation."""

    def test_compute_is_deterministic(self) -> None:
        """Same bytes give the same id."""
        assert compute_content_id(b"abc") == compute_content_id(b"abc")
        assert compute_content_id(b"abc") != compute_content_id(b"abd")

    def test_compute_produces_cidv1_raw(self) -> None:
        """Ids are base32 CIDv1 with the raw codec prefix."""
        content_id = compute_content_id(b"Diploma:Alice:MIT:BSc")

        assert content_id.startswith("bafkrei")
        assert is_valid_content_id(content_id)

    @pytest.mark.parametrize(
        "value",
        [
            "QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG",
            "bafybeigdyrzt5sfp7udm7hu76uh7y26nf3efuylqabf3oclgtqy55fbzdi",
        ],
    )
    def test_valid_ids(self, value: str) -> None:
        assert is_valid_content_id(value)

    @pytest.mark.parametrize(
        "value",
        [None, "", "Qm...", "not-a-cid", "QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPb0G"],
    )
    def test_invalid_ids(self, value: str | None) -> None:
        assert not is_valid_content_id(value)


class TestMockContentStore:
    """Tests for MockContentStore."""

    @pytest.fixture
    def store(self) -> MockContentStore:
        store = MockContentStore(max_upload_bytes=1024)
        store.clear_all()
        return store

    def test_store_mode(self, store: MockContentStore) -> None:
        assert store.mode == ContentStoreMode.MOCK

    @pytest.mark.asyncio
    async def test_round_trip(self, store: MockContentStore) -> None:
        """Fetching an uploaded id returns the same bytes."""
        content_id = await store.upload(b"Diploma:Alice:MIT:BSc")

        assert await store.fetch(content_id) == b"Diploma:Alice:MIT:BSc"

    @pytest.mark.asyncio
    async def test_upload_is_deterministic(self, store: MockContentStore) -> None:
        """Uploading the same bytes twice yields one id and one object."""
        first = await store.upload(b"same bytes")
        second = await store.upload(b"same bytes")

        assert first == second
        assert store.get_stats() == {"objects": 1, "uploads": 2}

    @pytest.mark.asyncio
    async def test_fetch_unknown_id(self, store: MockContentStore) -> None:
        with pytest.raises(ContentNotFound):
            await store.fetch(compute_content_id(b"never uploaded"))

    @pytest.mark.asyncio
    async def test_forgotten_content_is_not_found(self, store: MockContentStore) -> None:
        """Content no peer provides any more is reported as not found."""
        content_id = await store.upload(b"ephemeral")
        store.forget(content_id)

        with pytest.raises(ContentNotFound) as exc_info:
            await store.fetch(content_id)
        assert exc_info.value.details["content_id"] == content_id

    @pytest.mark.asyncio
    async def test_upload_too_large(self, store: MockContentStore) -> None:
        with pytest.raises(UploadRejected):
            await store.upload(b"x" * 2048)

    @pytest.mark.asyncio
    async def test_offline_store(self, store: MockContentStore) -> None:
        """An offline store is a connectivity failure on both paths."""
        content_id = await store.upload(b"data")
        store.set_available(False)

        with pytest.raises(StoreUnavailable):
            await store.upload(b"data")
        with pytest.raises(ConnectivityError):
            await store.fetch(content_id)

    @pytest.mark.asyncio
    async def test_timeouts(self) -> None:
        """Slow calls are bounded by the caller's timeout."""
        store = MockContentStore(latency=1.0)

        with pytest.raises(UploadTimeout):
            await store.upload(b"slow", timeout=0.01)
        with pytest.raises(FetchTimeout):
            await store.fetch(compute_content_id(b"slow"), timeout=0.01)

    @pytest.mark.asyncio
    async def test_health_check(self, store: MockContentStore) -> None:
        health = await store.health_check()

        assert health["status"] == "healthy"
        assert health["mode"] == "mock"
