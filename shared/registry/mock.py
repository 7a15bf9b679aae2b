"""
Mock Registry Client
====================

In-memory ledger implementation for development and testing.

Version: 0.1.0
"""

import asyncio
import hashlib
import uuid
from typing import Any

from shared.config import RegistryMode
from shared.errors import (
    ConfirmationTimeout,
    RegistryTimeout,
    RegistryUnreachable,
    TransactionRejected,
)
from shared.logging import get_logger
from shared.registry.client import (
    DiplomaRecord,
    RegistryClient,
    TransactionReceipt,
    TransactionStatus,
    validate_diploma_fields,
)
from shared.registry.schema import GET_HASH, ISSUE_DIPLOMA, SET_HASH, RegistryInterface
from shared.registry.signer import Signer

logger = get_logger(__name__)


class MockRegistryClient(RegistryClient):
    """
    In-memory mock registry.

    Simulates the contract's `getHash`/`setHash`/`issueDiploma` without a
    ledger. Every write is appended as a new transaction in its own block,
    including writes of an unchanged id.

    Data is stored in memory and lost on restart.
    """

    def __init__(
        self,
        interface: RegistryInterface | None = None,
        confirmations: int = 0,
        latency: float = 0.0,
        confirmation_timeout: float = 600.0,
    ) -> None:
        """
        Initialize mock registry.

        Args:
            interface: Contract interface (defaults to the extended variant)
            confirmations: Confirmations reported on each receipt
            latency: Simulated seconds per remote call
            confirmation_timeout: Default seconds a write may take end to end
        """
        self._interface = interface or RegistryInterface.declared(extended=True)
        self._confirmations = confirmations
        self._latency = latency
        self._confirmation_timeout = confirmation_timeout

        self._connected = False
        self._available = True
        self._block_number = 1000

        # Contract state
        self._hash = ""
        self._diplomas: list[DiplomaRecord] = []

        # Ledger history
        self._transactions: list[TransactionReceipt] = []

        # Failure injection
        self._reject_reason: str | None = None
        self._stall_confirmations = False

        logger.debug("mock_registry_initialized", extended=self._interface.extended)

    @property
    def mode(self) -> RegistryMode:
        return RegistryMode.MOCK

    @property
    def interface(self) -> RegistryInterface:
        return self._interface

    async def connect(self) -> None:
        """Simulate connection."""
        if not self._available:
            raise RegistryUnreachable("Mock ledger is offline")
        self._connected = True
        logger.info("mock_registry_connected")

    async def disconnect(self) -> None:
        """Simulate disconnection."""
        self._connected = False
        logger.info("mock_registry_disconnected")

    async def health_check(self) -> dict[str, Any]:
        """Check mock ledger health."""
        return {
            "status": "healthy" if self._available else "unhealthy",
            "mode": self.mode.value,
            "connected": self._connected,
            "block_number": self._block_number,
            "transactions": len(self._transactions),
            "diplomas": len(self._diplomas),
        }

    def _generate_tx_hash(self) -> str:
        """Generate a mock transaction hash."""
        return "0x" + hashlib.sha256(uuid.uuid4().bytes).hexdigest()

    def _next_block(self) -> int:
        """Get next block number."""
        self._block_number += 1
        return self._block_number

    async def _simulate_network(self) -> None:
        if not self._available:
            raise RegistryUnreachable("Mock ledger is offline")
        if self._latency:
            await asyncio.sleep(self._latency)

    # =========================================================================
    # Contract Methods
    # =========================================================================

    async def read_hash(self, timeout: float | None = None) -> str | None:
        """Call `getHash()`."""
        try:
            async with asyncio.timeout(timeout):
                await self._simulate_network()
        except TimeoutError as e:
            raise RegistryTimeout(
                f"{GET_HASH.name} timed out", timeout=timeout
            ) from e
        return self._hash or None

    async def write_hash(
        self,
        content_id: str,
        signer: Signer | None,
        timeout: float | None = None,
    ) -> TransactionReceipt:
        """Submit `setHash(content_id)`."""
        signer = await self._require_signer(signer)

        receipt = await self._mine(SET_HASH.name, signer, timeout)
        self._hash = content_id

        logger.debug(
            "mock_hash_set",
            content_id=content_id,
            tx_hash=receipt.tx_hash,
            block_number=receipt.block_number,
        )
        return receipt

    async def issue_diploma(
        self,
        student_name: str,
        institution_name: str,
        degree: str,
        content_id: str,
        signer: Signer | None,
        timeout: float | None = None,
    ) -> TransactionReceipt:
        """Submit `issueDiploma(...)`."""
        self._require_extended()
        signer = await self._require_signer(signer)
        validate_diploma_fields(student_name, institution_name, degree, content_id)

        receipt = await self._mine(ISSUE_DIPLOMA.name, signer, timeout)
        self._diplomas.append(
            DiplomaRecord(
                student_name=student_name,
                institution_name=institution_name,
                degree=degree,
                content_id=content_id,
                issuer=signer.address,
                tx_hash=receipt.tx_hash,
                block_number=receipt.block_number,
            )
        )

        logger.info(
            "mock_diploma_issued",
            student_name=student_name,
            institution_name=institution_name,
            content_id=content_id,
            tx_hash=receipt.tx_hash,
        )
        return receipt

    async def _mine(
        self,
        method: str,
        signer: Signer,
        timeout: float | None,
    ) -> TransactionReceipt:
        """Append a transaction and wait for its simulated confirmations."""
        budget = timeout if timeout is not None else self._confirmation_timeout
        tx_hash: str | None = None
        try:
            async with asyncio.timeout(budget):
                await self._simulate_network()

                if self._reject_reason is not None:
                    reason, self._reject_reason = self._reject_reason, None
                    logger.warning("mock_transaction_rejected", method=method, reason=reason)
                    raise TransactionRejected(
                        "Ledger refused the transaction", method=method, reason=reason
                    )

                tx_hash = self._generate_tx_hash()
                block_number = self._next_block()

                if self._stall_confirmations:
                    await asyncio.Event().wait()
        except TimeoutError as e:
            if tx_hash is None:
                raise RegistryTimeout(
                    f"{method} submission timed out", method=method, timeout=budget
                ) from e
            raise ConfirmationTimeout(
                "Transaction not confirmed in time",
                method=method,
                tx_hash=tx_hash,
                timeout=budget,
            ) from e

        # Blocks mined on top of the transaction
        self._block_number += self._confirmations

        receipt = TransactionReceipt(
            tx_hash=tx_hash,
            method=method,
            status=TransactionStatus.SUCCESS,
            block_number=block_number,
            confirmations=self._confirmations,
            sender=signer.address,
            gas_used=21_000,
        )
        self._transactions.append(receipt)
        return receipt

    # =========================================================================
    # Test Utilities
    # =========================================================================

    @property
    def transactions(self) -> list[TransactionReceipt]:
        """All committed transactions, oldest first."""
        return list(self._transactions)

    @property
    def diplomas(self) -> list[DiplomaRecord]:
        """All issued diplomas, oldest first."""
        return list(self._diplomas)

    def set_available(self, available: bool) -> None:
        """Simulate the ledger endpoint going offline or coming back."""
        self._available = available

    def reject_next(self, reason: str = "insufficient funds for gas") -> None:
        """Make the next state-changing call fail with TransactionRejected."""
        self._reject_reason = reason

    def stall_confirmations(self, stalled: bool = True) -> None:
        """Keep submitted transactions unconfirmed until the caller times out."""
        self._stall_confirmations = stalled

    def clear_all(self) -> None:
        """Clear all mock data (for testing)."""
        self._hash = ""
        self._diplomas.clear()
        self._transactions.clear()
        self._block_number = 1000
        self._available = True
        self._reject_reason = None
        self._stall_confirmations = False
        logger.debug("mock_registry_cleared")

    def get_stats(self) -> dict[str, int]:
        """Get ledger statistics."""
        return {
            "transactions": len(self._transactions),
            "diplomas": len(self._diplomas),
            "block_number": self._block_number,
        }
