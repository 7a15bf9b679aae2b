"""
Registry Client Interface
=========================

Abstract base class and models for the diploma registry contract.

Version: 0.1.0
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from shared.config import RegistryMode, settings
from shared.errors import InterfaceMismatch, SignerUnavailable, ValidationRejected
from shared.logging import get_logger
from shared.registry.schema import ISSUE_DIPLOMA, RegistryInterface
from shared.registry.signer import Signer

logger = get_logger(__name__)


class TransactionStatus(str, Enum):
    """Outcome of a mined transaction."""

    SUCCESS = "success"
    FAILED = "failed"


class TransactionReceipt(BaseModel):
    """Evidence that a state-changing call was committed."""

    tx_hash: str = Field(..., description="Transaction hash (0x-prefixed)")
    method: str = Field(..., description="Contract method invoked")
    status: TransactionStatus
    block_number: int
    confirmations: int = 0
    sender: str | None = None
    gas_used: int | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def succeeded(self) -> bool:
        return self.status == TransactionStatus.SUCCESS


class DiplomaFields(BaseModel):
    """Human-readable diploma attributes written alongside the content id."""

    student_name: str
    institution_name: str
    degree: str


class DiplomaRecord(DiplomaFields):
    """A diploma as held in the ledger's state. Immutable once issued."""

    content_id: str
    issuer: str | None = None
    tx_hash: str | None = None
    block_number: int | None = None


def validate_diploma_fields(
    student_name: str,
    institution_name: str,
    degree: str,
    content_id: str,
) -> None:
    """
    Reject blank diploma fields before any gas is spent.

    Raises:
        ValidationRejected: A field is empty or whitespace
    """
    blank = [
        name
        for name, value in (
            ("student_name", student_name),
            ("institution_name", institution_name),
            ("degree", degree),
            ("content_id", content_id),
        )
        if not value or not value.strip()
    ]
    if blank:
        raise ValidationRejected("Diploma fields must not be empty", fields=blank)


class RegistryClient(ABC):
    """
    Abstract base class for registry bindings.

    A binding is a stateless pass-through over the ledger contract: no local
    state machine and no retries beyond waiting for confirmations.
    """

    @property
    @abstractmethod
    def mode(self) -> RegistryMode:
        """Get the registry mode."""
        ...

    @property
    @abstractmethod
    def interface(self) -> RegistryInterface:
        """Contract interface this binding was validated against."""
        ...

    @abstractmethod
    async def connect(self) -> None:
        """Connect to the ledger network."""
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Disconnect from the ledger network."""
        ...

    @abstractmethod
    async def health_check(self) -> dict[str, Any]:
        """Check ledger health."""
        ...

    @abstractmethod
    async def read_hash(self, timeout: float | None = None) -> str | None:
        """
        Read the last committed content id.

        Read-only: no signing, no gas.

        Args:
            timeout: Seconds to wait before giving up

        Returns:
            The content id, or None if none was ever set

        Raises:
            RegistryUnreachable: The ledger cannot be queried
            RegistryTimeout: The call exceeded its budget
        """
        ...

    @abstractmethod
    async def write_hash(
        self,
        content_id: str,
        signer: Signer | None,
        timeout: float | None = None,
    ) -> TransactionReceipt:
        """
        Commit a new content id.

        Args:
            content_id: Id to record
            signer: Identity paying for and authorizing the write
            timeout: Seconds to wait for confirmations

        Returns:
            TransactionReceipt of the confirmed transaction

        Raises:
            SignerUnavailable: No authenticated identity
            TransactionRejected: Ledger refused the transaction
            ConfirmationTimeout: Not confirmed within the budget
        """
        ...

    @abstractmethod
    async def issue_diploma(
        self,
        student_name: str,
        institution_name: str,
        degree: str,
        content_id: str,
        signer: Signer | None,
        timeout: float | None = None,
    ) -> TransactionReceipt:
        """
        Record a diploma on the ledger.

        Same failure modes as `write_hash`, plus ValidationRejected when the
        contract's field constraints are violated.
        """
        ...

    # =========================================================================
    # Shared checks
    # =========================================================================

    async def _require_signer(self, signer: Signer | None) -> Signer:
        if signer is None:
            raise SignerUnavailable("A signer is required for state-changing calls")
        await signer.ensure_available()
        return signer

    def _require_extended(self) -> None:
        if not self.interface.supports(ISSUE_DIPLOMA.name):
            raise InterfaceMismatch(
                "Registry contract does not expose issueDiploma",
                method=ISSUE_DIPLOMA.name,
            )


def build_interface() -> RegistryInterface:
    """Build the contract interface from settings."""
    registry = settings.registry
    if registry.abi_path:
        return RegistryInterface.load(registry.abi_path, extended=registry.extended)
    return RegistryInterface.declared(extended=registry.extended)


# Global client instance
_client: RegistryClient | None = None


def get_registry_client() -> RegistryClient:
    """
    Get the configured registry client instance.

    Returns:
        RegistryClient instance based on settings
    """
    global _client

    if _client is None:
        mode = settings.registry.mode
        interface = build_interface()

        if mode == RegistryMode.MOCK:
            from shared.registry.mock import MockRegistryClient

            _client = MockRegistryClient(
                interface=interface,
                confirmations=settings.registry.confirmations,
                confirmation_timeout=settings.registry.confirmation_timeout_seconds,
            )
        elif mode == RegistryMode.LIVE:
            from shared.registry.ethereum import Web3RegistryClient

            _client = Web3RegistryClient.from_settings(settings.registry, interface)
        else:
            raise ValueError(f"Unknown registry mode: {mode}")

        logger.info(
            "registry_client_initialized",
            mode=mode.value,
            extended=interface.extended,
        )

    return _client


def set_registry_client(client: RegistryClient) -> None:
    """
    Set a custom registry client.

    Args:
        client: RegistryClient instance
    """
    global _client
    _client = client
    logger.info("registry_client_set", mode=client.mode.value)


def reset_registry_client() -> None:
    """Reset the client to be re-initialized."""
    global _client
    _client = None
