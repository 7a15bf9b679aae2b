"""
Test Configuration
==================

Pytest fixtures for diploma registry tests.
"""

import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment
os.environ["ENVIRONMENT"] = "testing"
os.environ["REGISTRY_MODE"] = "mock"
os.environ["IPFS_MODE"] = "mock"

from services.diploma.workflow import DiplomaWorkflow, set_workflow  # noqa: E402
from shared.content import MockContentStore  # noqa: E402
from shared.registry import LocalAccountSigner, MockRegistryClient  # noqa: E402


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


@pytest.fixture
def store() -> MockContentStore:
    """Fresh in-memory content store."""
    return MockContentStore()


@pytest.fixture
def registry() -> MockRegistryClient:
    """Fresh in-memory ledger exposing the extended interface."""
    return MockRegistryClient(confirmations=2)


@pytest.fixture
def signer() -> LocalAccountSigner:
    """Throwaway signing account."""
    return LocalAccountSigner.generate()


@pytest.fixture
def workflow(
    store: MockContentStore,
    registry: MockRegistryClient,
    signer: LocalAccountSigner,
) -> DiplomaWorkflow:
    """Workflow wired to the mocks with a signer."""
    return DiplomaWorkflow(store=store, registry=registry, signer=signer)


@pytest.fixture
def unsigned_workflow(
    store: MockContentStore,
    registry: MockRegistryClient,
) -> DiplomaWorkflow:
    """Workflow without a signer (read-only)."""
    return DiplomaWorkflow(store=store, registry=registry)


@pytest_asyncio.fixture
async def api_client(workflow: DiplomaWorkflow) -> AsyncGenerator[AsyncClient, None]:
    """Create test client for the diploma service."""
    from services.diploma.main import app

    set_workflow(workflow)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    set_workflow(None)


@pytest_asyncio.fixture
async def unsigned_api_client(
    unsigned_workflow: DiplomaWorkflow,
) -> AsyncGenerator[AsyncClient, None]:
    """Create test client whose workflow has no signer."""
    from services.diploma.main import app

    set_workflow(unsigned_workflow)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    set_workflow(None)
