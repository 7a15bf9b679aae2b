"""Tests for the diploma issue and retrieve workflow."""

import httpx
import pytest

from services.diploma.workflow import (
    DiplomaWorkflow,
    Issuance,
    IssueState,
    RetrievalStatus,
    get_workflow,
    set_workflow,
    sniff_media_type,
)
from shared.content import (
    IPFSContentStore,
    MockContentStore,
    compute_content_id,
    reset_content_store,
    set_content_store,
)
from shared.errors import (
    AuthError,
    ConfirmationTimeout,
    InvalidTransition,
    RegistryUnreachable,
    SignerUnavailable,
    StoreUnavailable,
    TransactionRejected,
    UploadRejected,
    UploadTimeout,
    ValidationRejected,
)
from shared.registry import (
    DiplomaFields,
    LocalAccountSigner,
    MockRegistryClient,
    reset_registry_client,
    set_registry_client,
)


DIPLOMA_TEXT = b"Diploma:Alice:MIT:BSc"


@pytest.fixture
def alice() -> DiplomaFields:
    """Diploma fields for the happy path."""
    return DiplomaFields(student_name="Alice", institution_name="MIT", degree="BSc")


class TestIssue:
    """Tests for the Issue flow."""

    @pytest.mark.asyncio
    async def test_issue_then_retrieve(
        self,
        workflow: DiplomaWorkflow,
        registry: MockRegistryClient,
    ) -> None:
        """The document issued is the one retrieved."""
        issuance = await workflow.issue(DIPLOMA_TEXT)

        assert issuance.state == IssueState.COMMITTED
        assert issuance.content_id == compute_content_id(DIPLOMA_TEXT)
        assert issuance.receipt is not None
        assert issuance.receipt.confirmations == 2
        assert issuance.history == [
            IssueState.IDLE,
            IssueState.UPLOADING,
            IssueState.UPLOADED,
            IssueState.SUBMITTING,
        ]
        assert await registry.read_hash() == issuance.content_id

        result = await workflow.retrieve()

        assert result.status == RetrievalStatus.RETRIEVED
        assert result.found
        assert result.content == DIPLOMA_TEXT
        assert result.content_id == issuance.content_id
        assert result.media_type == "text/plain; charset=utf-8"

    @pytest.mark.asyncio
    async def test_same_bytes_same_id(self, workflow: DiplomaWorkflow) -> None:
        first = await workflow.issue(DIPLOMA_TEXT)
        second = await workflow.issue(DIPLOMA_TEXT)

        assert first.content_id == second.content_id
        assert first.id != second.id

    @pytest.mark.asyncio
    async def test_issue_without_signer(
        self,
        unsigned_workflow: DiplomaWorkflow,
        store: MockContentStore,
        registry: MockRegistryClient,
    ) -> None:
        """Content is stored but nothing reaches the ledger."""
        issuance = await unsigned_workflow.issue(DIPLOMA_TEXT)

        assert issuance.state == IssueState.SUBMIT_FAILED
        assert isinstance(issuance.error, SignerUnavailable)
        assert isinstance(issuance.error, AuthError)
        assert issuance.retryable
        assert store.get_stats()["objects"] == 1
        assert registry.transactions == []

        with pytest.raises(SignerUnavailable):
            issuance.raise_for_state()

    @pytest.mark.asyncio
    async def test_issue_with_revoked_signer(
        self,
        workflow: DiplomaWorkflow,
        signer: LocalAccountSigner,
    ) -> None:
        signer.revoke()

        issuance = await workflow.issue(DIPLOMA_TEXT)

        assert issuance.state == IssueState.SUBMIT_FAILED
        assert isinstance(issuance.error, SignerUnavailable)

    @pytest.mark.asyncio
    async def test_upload_failure_skips_ledger(
        self,
        workflow: DiplomaWorkflow,
        store: MockContentStore,
        registry: MockRegistryClient,
    ) -> None:
        store.set_available(False)

        issuance = await workflow.issue(DIPLOMA_TEXT)

        assert issuance.state == IssueState.UPLOAD_FAILED
        assert isinstance(issuance.error, StoreUnavailable)
        assert issuance.content_id is None
        assert not issuance.retryable
        assert registry.transactions == []

    @pytest.mark.asyncio
    async def test_upload_timeout(
        self,
        registry: MockRegistryClient,
        signer: LocalAccountSigner,
    ) -> None:
        workflow = DiplomaWorkflow(
            store=MockContentStore(latency=1.0),
            registry=registry,
            signer=signer,
        )

        issuance = await workflow.issue(DIPLOMA_TEXT, upload_timeout=0.01)

        assert issuance.state == IssueState.UPLOAD_FAILED
        assert isinstance(issuance.error, UploadTimeout)

    @pytest.mark.asyncio
    async def test_malformed_add_response(
        self,
        registry: MockRegistryClient,
        signer: LocalAccountSigner,
    ) -> None:
        """A non-JSON add body ends the issuance in UPLOAD_FAILED."""
        store = IPFSContentStore(
            api_url="https://ipfs.example:5001",
            transport=httpx.MockTransport(
                lambda request: httpx.Response(200, text="<html>upstream proxy error</html>")
            ),
        )
        workflow = DiplomaWorkflow(store=store, registry=registry, signer=signer)

        issuance = await workflow.issue(DIPLOMA_TEXT)

        assert issuance.state == IssueState.UPLOAD_FAILED
        assert isinstance(issuance.error, UploadRejected)
        assert registry.transactions == []
        await store.close()

    @pytest.mark.asyncio
    async def test_rejected_then_retried_without_reupload(
        self,
        workflow: DiplomaWorkflow,
        store: MockContentStore,
        registry: MockRegistryClient,
    ) -> None:
        """A refused write is resubmitted with the same content id."""
        registry.reject_next()

        issuance = await workflow.issue(DIPLOMA_TEXT)

        assert issuance.state == IssueState.SUBMIT_FAILED
        assert isinstance(issuance.error, TransactionRejected)
        assert await registry.read_hash() is None

        retried = await workflow.retry_submit(issuance)

        assert retried is issuance
        assert issuance.state == IssueState.COMMITTED
        assert issuance.error is None
        assert store.get_stats()["uploads"] == 1
        assert await registry.read_hash() == issuance.content_id

    @pytest.mark.asyncio
    async def test_confirmation_timeout(
        self,
        workflow: DiplomaWorkflow,
        registry: MockRegistryClient,
    ) -> None:
        registry.stall_confirmations()

        issuance = await workflow.issue(DIPLOMA_TEXT, confirmation_timeout=0.01)

        assert issuance.state == IssueState.SUBMIT_FAILED
        assert isinstance(issuance.error, ConfirmationTimeout)
        assert issuance.retryable

    @pytest.mark.asyncio
    async def test_issue_with_diploma_fields(
        self,
        workflow: DiplomaWorkflow,
        registry: MockRegistryClient,
        alice: DiplomaFields,
    ) -> None:
        """issueDiploma records the fields but leaves the hash slot alone."""
        issuance = await workflow.issue(DIPLOMA_TEXT, alice)

        assert issuance.state == IssueState.COMMITTED
        assert issuance.receipt is not None
        assert issuance.receipt.method == "issueDiploma"

        [record] = registry.diplomas
        assert record.student_name == "Alice"
        assert record.institution_name == "MIT"
        assert record.degree == "BSc"
        assert record.content_id == issuance.content_id
        assert await registry.read_hash() is None

    @pytest.mark.asyncio
    async def test_blank_diploma_field(
        self,
        workflow: DiplomaWorkflow,
        registry: MockRegistryClient,
    ) -> None:
        diploma = DiplomaFields(student_name="", institution_name="MIT", degree="BSc")

        issuance = await workflow.issue(DIPLOMA_TEXT, diploma)

        assert issuance.state == IssueState.SUBMIT_FAILED
        assert isinstance(issuance.error, ValidationRejected)
        assert registry.diplomas == []

    @pytest.mark.asyncio
    async def test_duplicate_writes_append(
        self,
        workflow: DiplomaWorkflow,
        registry: MockRegistryClient,
    ) -> None:
        """Without suppression every issue is its own transaction."""
        await workflow.issue(DIPLOMA_TEXT)
        await workflow.issue(DIPLOMA_TEXT)

        assert len(registry.transactions) == 2

    @pytest.mark.asyncio
    async def test_skip_if_unchanged(
        self,
        workflow: DiplomaWorkflow,
        registry: MockRegistryClient,
    ) -> None:
        await workflow.issue(DIPLOMA_TEXT)

        issuance = await workflow.issue(DIPLOMA_TEXT, skip_if_unchanged=True)

        assert issuance.state == IssueState.COMMITTED
        assert issuance.skipped
        assert issuance.receipt is None
        assert len(registry.transactions) == 1

    @pytest.mark.asyncio
    async def test_skip_if_unchanged_writes_new_id(
        self,
        workflow: DiplomaWorkflow,
        registry: MockRegistryClient,
    ) -> None:
        await workflow.issue(DIPLOMA_TEXT)

        issuance = await workflow.issue(b"Diploma:Bob:MIT:MSc", skip_if_unchanged=True)

        assert not issuance.skipped
        assert len(registry.transactions) == 2
        assert await registry.read_hash() == issuance.content_id

    @pytest.mark.asyncio
    async def test_from_content_id(
        self,
        workflow: DiplomaWorkflow,
        registry: MockRegistryClient,
    ) -> None:
        """A stored content id can be recorded without the original bytes."""
        content_id = await workflow.store.upload(DIPLOMA_TEXT)
        issuance = Issuance.from_content_id(content_id)

        assert issuance.state == IssueState.UPLOADED

        await workflow.retry_submit(issuance)

        assert issuance.committed
        assert await registry.read_hash() == content_id

    @pytest.mark.asyncio
    async def test_retry_of_committed_issuance(self, workflow: DiplomaWorkflow) -> None:
        issuance = await workflow.issue(DIPLOMA_TEXT)

        with pytest.raises(InvalidTransition):
            await workflow.retry_submit(issuance)

    @pytest.mark.asyncio
    async def test_retry_of_failed_upload(
        self,
        workflow: DiplomaWorkflow,
        store: MockContentStore,
    ) -> None:
        store.set_available(False)
        issuance = await workflow.issue(DIPLOMA_TEXT)

        with pytest.raises(InvalidTransition):
            await workflow.retry_submit(issuance)


class TestIssuanceTransitions:
    """Tests for the Issuance state machine."""

    def test_illegal_transition(self) -> None:
        issuance = Issuance()

        with pytest.raises(InvalidTransition):
            issuance.advance(IssueState.COMMITTED)
        assert issuance.state == IssueState.IDLE
        assert issuance.history == []

    def test_terminal_states(self) -> None:
        issuance = Issuance()
        issuance.advance(IssueState.UPLOADING)
        issuance.advance(IssueState.UPLOAD_FAILED)

        for state in IssueState:
            with pytest.raises(InvalidTransition):
                issuance.advance(state)

    def test_raise_for_state_when_committed(self) -> None:
        issuance = Issuance.from_content_id(compute_content_id(DIPLOMA_TEXT))
        issuance.advance(IssueState.SUBMITTING)
        issuance.advance(IssueState.COMMITTED)

        issuance.raise_for_state()


class TestRetrieve:
    """Tests for the Retrieve flow."""

    @pytest.mark.asyncio
    async def test_nothing_issued(self, workflow: DiplomaWorkflow) -> None:
        result = await workflow.retrieve()

        assert result.status == RetrievalStatus.NOT_ISSUED
        assert not result.found
        assert result.content_id is None
        assert result.content is None

    @pytest.mark.asyncio
    async def test_retrieve_needs_no_signer(
        self,
        workflow: DiplomaWorkflow,
        unsigned_workflow: DiplomaWorkflow,
    ) -> None:
        """Reads work without any credentials."""
        await workflow.issue(DIPLOMA_TEXT)

        result = await unsigned_workflow.retrieve()

        assert result.content == DIPLOMA_TEXT

    @pytest.mark.asyncio
    async def test_content_unreachable(
        self,
        workflow: DiplomaWorkflow,
        store: MockContentStore,
    ) -> None:
        """A recorded id with no reachable content is not "never issued"."""
        issuance = await workflow.issue(DIPLOMA_TEXT)
        store.forget(issuance.content_id)

        result = await workflow.retrieve()

        assert result.status == RetrievalStatus.UNREACHABLE
        assert result.content_id == issuance.content_id
        assert result.error is not None

    @pytest.mark.asyncio
    async def test_latest_write_is_retrieved(self, workflow: DiplomaWorkflow) -> None:
        await workflow.issue(DIPLOMA_TEXT)
        await workflow.issue(b"Diploma:Bob:MIT:MSc")

        result = await workflow.retrieve()

        assert result.content == b"Diploma:Bob:MIT:MSc"

    @pytest.mark.asyncio
    async def test_ledger_offline(
        self,
        workflow: DiplomaWorkflow,
        registry: MockRegistryClient,
    ) -> None:
        registry.set_available(False)

        with pytest.raises(RegistryUnreachable):
            await workflow.retrieve()

    @pytest.mark.asyncio
    async def test_store_offline(
        self,
        workflow: DiplomaWorkflow,
        store: MockContentStore,
    ) -> None:
        """Connectivity failures propagate instead of reading as unreachable."""
        await workflow.issue(DIPLOMA_TEXT)
        store.set_available(False)

        with pytest.raises(StoreUnavailable):
            await workflow.retrieve()


class TestSniffMediaType:
    """Tests for sniff_media_type."""

    @pytest.mark.parametrize(
        ("content", "expected"),
        [
            (b"%PDF-1.7\n...", "application/pdf"),
            (b"\x89PNG\r\n\x1a\n\x00\x00", "image/png"),
            (b"\xff\xd8\xff\xe0JFIF", "image/jpeg"),
            (b"Diploma:Alice:MIT:BSc", "text/plain; charset=utf-8"),
            (b"\xfe\xff\x00\x81", "application/octet-stream"),
        ],
    )
    def test_sniff(self, content: bytes, expected: str) -> None:
        assert sniff_media_type(content) == expected


class TestGetWorkflow:
    """Tests for wiring the workflow from settings."""

    def test_mock_wiring(self) -> None:
        """Mock mode works out of the box with a throwaway signer."""
        reset_content_store()
        reset_registry_client()
        set_workflow(None)
        try:
            workflow = get_workflow()

            assert isinstance(workflow.store, MockContentStore)
            assert isinstance(workflow.registry, MockRegistryClient)
            assert workflow.registry.interface.extended
            assert workflow.signer is not None
            assert get_workflow() is workflow
        finally:
            set_workflow(None)
            reset_content_store()
            reset_registry_client()

    def test_injected_clients(
        self,
        store: MockContentStore,
        registry: MockRegistryClient,
    ) -> None:
        """Clients set explicitly are used instead of building from settings."""
        set_content_store(store)
        set_registry_client(registry)
        set_workflow(None)
        try:
            workflow = get_workflow()

            assert workflow.store is store
            assert workflow.registry is registry
        finally:
            set_workflow(None)
            reset_content_store()
            reset_registry_client()
