"""
Diploma Workflow
================

Orchestrates the two diploma flows over a content store and a registry:

- Issue: upload the document, then record its content id on the ledger
- Retrieve: read the content id from the ledger, then fetch the document

Issue state machine:

    IDLE -> UPLOADING -> UPLOADED -> SUBMITTING -> COMMITTED
                 |                        |
           UPLOAD_FAILED            SUBMIT_FAILED -> SUBMITTING (retry)

Uploads are idempotent (same bytes, same id). Ledger writes are not: every
submission appends a transaction. Nothing is retried automatically.

Version: 0.1.0
"""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from shared.config import RegistryMode, settings
from shared.content import ContentStore, get_content_store
from shared.errors import DiplomaRegistryError, InvalidTransition, NotFoundError, SignerUnavailable
from shared.logging import get_logger
from shared.registry import (
    DiplomaFields,
    LocalAccountSigner,
    RegistryClient,
    Signer,
    TransactionReceipt,
    get_registry_client,
    signer_from_settings,
)


logger = get_logger(__name__)


class IssueState(str, Enum):
    """States of one Issue flow."""

    IDLE = "idle"
    UPLOADING = "uploading"
    UPLOADED = "uploaded"
    SUBMITTING = "submitting"
    COMMITTED = "committed"
    UPLOAD_FAILED = "upload_failed"
    SUBMIT_FAILED = "submit_failed"


_TRANSITIONS: dict[IssueState, frozenset[IssueState]] = {
    IssueState.IDLE: frozenset({IssueState.UPLOADING}),
    IssueState.UPLOADING: frozenset({IssueState.UPLOADED, IssueState.UPLOAD_FAILED}),
    IssueState.UPLOADED: frozenset({IssueState.SUBMITTING}),
    IssueState.SUBMITTING: frozenset({IssueState.COMMITTED, IssueState.SUBMIT_FAILED}),
    IssueState.SUBMIT_FAILED: frozenset({IssueState.SUBMITTING}),
    IssueState.UPLOAD_FAILED: frozenset(),
    IssueState.COMMITTED: frozenset(),
}


@dataclass
class Issuance:
    """Tracked progress of one Issue flow."""

    content: bytes | None = field(default=None, repr=False)
    diploma: DiplomaFields | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    state: IssueState = IssueState.IDLE
    content_id: str | None = None
    receipt: TransactionReceipt | None = None
    error: DiplomaRegistryError | None = None
    skipped: bool = False
    history: list[IssueState] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_content_id(
        cls,
        content_id: str,
        diploma: DiplomaFields | None = None,
    ) -> "Issuance":
        """
        Resume an issuance whose content is already stored.

        Used to retry a ledger write after a failure without re-uploading.
        """
        issuance = cls(diploma=diploma)
        issuance.advance(IssueState.UPLOADING)
        issuance.content_id = content_id
        issuance.advance(IssueState.UPLOADED)
        return issuance

    @property
    def committed(self) -> bool:
        return self.state == IssueState.COMMITTED

    @property
    def retryable(self) -> bool:
        """A failed ledger write can be resubmitted with the same content id."""
        return self.state == IssueState.SUBMIT_FAILED

    def advance(self, state: IssueState) -> None:
        """Move to a new state, enforcing the transition table."""
        if state not in _TRANSITIONS[self.state]:
            raise InvalidTransition(
                f"Cannot move issuance from {self.state.value} to {state.value}",
                issuance_id=self.id,
            )
        self.history.append(self.state)
        self.state = state

    def raise_for_state(self) -> None:
        """Raise the recorded error if the flow ended in a failure state."""
        if self.error is not None and self.state in (
            IssueState.UPLOAD_FAILED,
            IssueState.SUBMIT_FAILED,
        ):
            raise self.error


class RetrievalStatus(str, Enum):
    """Outcome of a Retrieve flow."""

    RETRIEVED = "retrieved"
    NOT_ISSUED = "not_issued"
    UNREACHABLE = "unreachable"


@dataclass
class RetrievalResult:
    """What the ledger points to and whether its content could be fetched."""

    status: RetrievalStatus
    content_id: str | None = None
    content: bytes | None = field(default=None, repr=False)
    media_type: str | None = None
    error: NotFoundError | None = None

    @property
    def found(self) -> bool:
        return self.status == RetrievalStatus.RETRIEVED


def sniff_media_type(content: bytes) -> str:
    """Guess a displayable media type from leading bytes."""
    if content.startswith(b"%PDF-"):
        return "application/pdf"
    if content.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if content.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    try:
        content.decode("utf-8")
    except UnicodeDecodeError:
        return "application/octet-stream"
    return "text/plain; charset=utf-8"


class DiplomaWorkflow:
    """
    Issue and retrieve diplomas.

    The signer is supplied here explicitly. Without one the workflow can
    still read and retrieve, but every write ends in SUBMIT_FAILED with
    SignerUnavailable.
    """

    def __init__(
        self,
        store: ContentStore,
        registry: RegistryClient,
        signer: Signer | None = None,
        upload_timeout: float | None = None,
        fetch_timeout: float | None = None,
        read_timeout: float | None = None,
        confirmation_timeout: float | None = None,
    ) -> None:
        self._store = store
        self._registry = registry
        self._signer = signer
        self._upload_timeout = upload_timeout
        self._fetch_timeout = fetch_timeout
        self._read_timeout = read_timeout
        self._confirmation_timeout = confirmation_timeout

    @property
    def store(self) -> ContentStore:
        return self._store

    @property
    def registry(self) -> RegistryClient:
        return self._registry

    @property
    def signer(self) -> Signer | None:
        return self._signer

    # =========================================================================
    # Issue
    # =========================================================================

    async def issue(
        self,
        content: bytes,
        diploma: DiplomaFields | None = None,
        *,
        skip_if_unchanged: bool = False,
        upload_timeout: float | None = None,
        confirmation_timeout: float | None = None,
    ) -> Issuance:
        """
        Upload a document and record its content id.

        With `diploma` the id is written through `issueDiploma`, otherwise
        through `setHash`. Failures are recorded on the returned issuance.

        Args:
            content: Document bytes
            diploma: Optional diploma fields
            skip_if_unchanged: For `setHash` writes, skip the transaction when
                the ledger already holds this id
            upload_timeout: Seconds allowed for the upload
            confirmation_timeout: Seconds allowed for ledger confirmations

        Returns:
            The issuance in COMMITTED, UPLOAD_FAILED or SUBMIT_FAILED state
        """
        issuance = Issuance(content=content, diploma=diploma)
        log = logger.bind(issuance_id=issuance.id)

        issuance.advance(IssueState.UPLOADING)
        try:
            issuance.content_id = await self._store.upload(
                content,
                timeout=upload_timeout if upload_timeout is not None else self._upload_timeout,
            )
        except DiplomaRegistryError as e:
            issuance.error = e
            issuance.advance(IssueState.UPLOAD_FAILED)
            log.error("diploma_upload_failed", error=e.message, error_code=e.code)
            return issuance

        issuance.advance(IssueState.UPLOADED)
        log.info("diploma_uploaded", content_id=issuance.content_id, size=len(content))

        return await self._submit(
            issuance,
            skip_if_unchanged=skip_if_unchanged,
            confirmation_timeout=confirmation_timeout,
        )

    async def retry_submit(
        self,
        issuance: Issuance,
        *,
        skip_if_unchanged: bool = False,
        confirmation_timeout: float | None = None,
    ) -> Issuance:
        """
        Resubmit the ledger write of a failed issuance.

        Reuses the content id already obtained; never uploads again.

        Raises:
            InvalidTransition: The issuance is not waiting for a ledger write
        """
        if issuance.state not in (IssueState.UPLOADED, IssueState.SUBMIT_FAILED):
            raise InvalidTransition(
                f"Cannot resubmit an issuance in state {issuance.state.value}",
                issuance_id=issuance.id,
            )
        logger.info(
            "diploma_submit_retry",
            issuance_id=issuance.id,
            content_id=issuance.content_id,
        )
        return await self._submit(
            issuance,
            skip_if_unchanged=skip_if_unchanged,
            confirmation_timeout=confirmation_timeout,
        )

    async def _submit(
        self,
        issuance: Issuance,
        skip_if_unchanged: bool,
        confirmation_timeout: float | None,
    ) -> Issuance:
        log = logger.bind(issuance_id=issuance.id, content_id=issuance.content_id)
        timeout = (
            confirmation_timeout
            if confirmation_timeout is not None
            else self._confirmation_timeout
        )

        issuance.advance(IssueState.SUBMITTING)
        issuance.error = None
        try:
            if self._signer is None:
                raise SignerUnavailable("No signer configured for ledger writes")
            await self._signer.ensure_available()

            if issuance.diploma is not None:
                receipt = await self._registry.issue_diploma(
                    issuance.diploma.student_name,
                    issuance.diploma.institution_name,
                    issuance.diploma.degree,
                    issuance.content_id,
                    self._signer,
                    timeout=timeout,
                )
            else:
                if skip_if_unchanged:
                    current = await self._registry.read_hash(timeout=self._read_timeout)
                    if current == issuance.content_id:
                        issuance.skipped = True
                        issuance.advance(IssueState.COMMITTED)
                        log.info("diploma_write_skipped_unchanged")
                        return issuance
                receipt = await self._registry.write_hash(
                    issuance.content_id,
                    self._signer,
                    timeout=timeout,
                )
        except DiplomaRegistryError as e:
            issuance.error = e
            issuance.advance(IssueState.SUBMIT_FAILED)
            log.error("diploma_submit_failed", error=e.message, error_code=e.code)
            return issuance

        issuance.receipt = receipt
        issuance.advance(IssueState.COMMITTED)
        log.info(
            "diploma_committed",
            tx_hash=receipt.tx_hash,
            block_number=receipt.block_number,
            method=receipt.method,
        )
        return issuance

    # =========================================================================
    # Retrieve
    # =========================================================================

    async def retrieve(
        self,
        *,
        read_timeout: float | None = None,
        fetch_timeout: float | None = None,
    ) -> RetrievalResult:
        """
        Read the current content id and fetch its document.

        "Never issued" and "issued but unreachable" are distinct statuses.
        Connectivity and timeout failures propagate as typed errors.
        """
        content_id = await self._registry.read_hash(
            timeout=read_timeout if read_timeout is not None else self._read_timeout,
        )
        if content_id is None:
            logger.info("diploma_not_issued")
            return RetrievalResult(status=RetrievalStatus.NOT_ISSUED)

        try:
            content = await self._store.fetch(
                content_id,
                timeout=fetch_timeout if fetch_timeout is not None else self._fetch_timeout,
            )
        except NotFoundError as e:
            logger.warning("diploma_content_unreachable", content_id=content_id)
            return RetrievalResult(
                status=RetrievalStatus.UNREACHABLE,
                content_id=content_id,
                error=e,
            )

        media_type = sniff_media_type(content)
        logger.info(
            "diploma_retrieved",
            content_id=content_id,
            size=len(content),
            media_type=media_type,
        )
        return RetrievalResult(
            status=RetrievalStatus.RETRIEVED,
            content_id=content_id,
            content=content,
            media_type=media_type,
        )


# Global workflow instance
_workflow: DiplomaWorkflow | None = None


def get_workflow() -> DiplomaWorkflow:
    """
    Get the workflow wired from settings.

    In mock ledger mode without configured credentials a throwaway signer
    is generated so the service is usable out of the box.
    """
    global _workflow

    if _workflow is None:
        registry = get_registry_client()
        signer = signer_from_settings(settings.signer)
        if signer is None and registry.mode == RegistryMode.MOCK:
            signer = LocalAccountSigner.generate()
            logger.info("mock_signer_generated", address=signer.address)

        _workflow = DiplomaWorkflow(
            store=get_content_store(),
            registry=registry,
            signer=signer,
            upload_timeout=settings.ipfs.timeout_seconds,
            fetch_timeout=settings.ipfs.timeout_seconds,
            read_timeout=settings.registry.call_timeout_seconds,
            confirmation_timeout=settings.registry.confirmation_timeout_seconds,
        )

    return _workflow


def set_workflow(workflow: DiplomaWorkflow | None) -> None:
    """Replace (or with None, reset) the global workflow."""
    global _workflow
    _workflow = workflow
