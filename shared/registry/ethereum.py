"""
Web3 Registry Client
====================

Registry binding over an EVM contract through web3.py's async API.

Version: 0.1.0
"""

import asyncio
from typing import Any

from hexbytes import HexBytes
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_delay, wait_fixed
from web3 import AsyncWeb3, Web3
from web3.exceptions import (
    BadFunctionCallOutput,
    ContractLogicError,
    TransactionNotFound,
    Web3Exception,
    Web3RPCError,
)
from web3.providers import AsyncHTTPProvider
from web3.providers.async_base import AsyncBaseProvider

from shared.config import RegistryMode
from shared.config.settings import RegistrySettings
from shared.errors import (
    ConfirmationTimeout,
    InterfaceMismatch,
    RegistryTimeout,
    RegistryUnreachable,
    TransactionRejected,
    ValidationRejected,
)
from shared.logging import get_logger
from shared.registry.client import (
    RegistryClient,
    TransactionReceipt,
    TransactionStatus,
    validate_diploma_fields,
)
from shared.registry.schema import GET_HASH, ISSUE_DIPLOMA, SET_HASH, RegistryInterface
from shared.registry.signer import Signer


logger = get_logger(__name__)


class _AwaitingConfirmations(Exception):
    """Internal signal: transaction not yet mined or not deep enough."""

    def __init__(self, confirmations: int) -> None:
        super().__init__(confirmations)
        self.confirmations = confirmations


class Web3RegistryClient(RegistryClient):
    """
    Registry binding for a deployed contract.

    Configured with {network endpoint, contract address, interface schema};
    the schema is validated before this object is built.
    """

    def __init__(
        self,
        rpc_url: str,
        contract_address: str,
        interface: RegistryInterface,
        chain_id: int | None = None,
        confirmations: int = 2,
        confirmation_timeout: float = 600.0,
        poll_interval: float = 2.0,
        call_timeout: float = 30.0,
        gas_limit: int = 5_500_000,
        provider: AsyncBaseProvider | None = None,
    ) -> None:
        """
        Initialize the binding.

        Args:
            rpc_url: JSON-RPC endpoint
            contract_address: Deployed registry address
            interface: Validated contract interface
            chain_id: Chain id for signing (queried when omitted)
            confirmations: Blocks required on top of the mined block
            confirmation_timeout: Default seconds to wait for confirmations
            poll_interval: Seconds between receipt polls
            call_timeout: Default seconds for reads and submission
            gas_limit: Upper bound accepted from gas estimation
            provider: Optional provider override (tests)
        """
        if not Web3.is_address(contract_address):
            raise ValueError(f"Invalid contract address: {contract_address!r}")

        self._rpc_url = rpc_url
        self._interface = interface
        self._chain_id = chain_id
        self._confirmations = confirmations
        self._confirmation_timeout = confirmation_timeout
        self._poll_interval = poll_interval
        self._call_timeout = call_timeout
        self._gas_limit = gas_limit

        self._w3 = AsyncWeb3(provider or AsyncHTTPProvider(rpc_url))
        self._address = Web3.to_checksum_address(contract_address)
        self._contract = self._w3.eth.contract(address=self._address, abi=interface.abi)

        logger.debug(
            "web3_registry_initialized",
            rpc_url=rpc_url,
            contract_address=self._address,
            extended=interface.extended,
        )

    @classmethod
    def from_settings(
        cls,
        registry: RegistrySettings,
        interface: RegistryInterface,
    ) -> "Web3RegistryClient":
        """Build a binding from registry settings."""
        if not registry.rpc_url:
            raise ValueError("REGISTRY_RPC_URL is required in live mode")
        return cls(
            rpc_url=registry.rpc_url,
            contract_address=registry.contract_address,
            interface=interface,
            chain_id=registry.chain_id,
            confirmations=registry.confirmations,
            confirmation_timeout=registry.confirmation_timeout_seconds,
            poll_interval=registry.poll_interval_seconds,
            call_timeout=registry.call_timeout_seconds,
            gas_limit=registry.gas_limit,
        )

    @property
    def mode(self) -> RegistryMode:
        return RegistryMode.LIVE

    @property
    def interface(self) -> RegistryInterface:
        return self._interface

    @property
    def contract_address(self) -> str:
        return self._address

    async def connect(self) -> None:
        """Check the endpoint answers and a contract is deployed at the address."""
        try:
            async with asyncio.timeout(self._call_timeout):
                if not await self._w3.is_connected():
                    raise RegistryUnreachable("Ledger endpoint not reachable", rpc_url=self._rpc_url)
                code = await self._w3.eth.get_code(self._address)
                if self._chain_id is None:
                    self._chain_id = await self._w3.eth.chain_id
        except TimeoutError as e:
            raise RegistryTimeout("Ledger connection timed out", rpc_url=self._rpc_url) from e
        except OSError as e:
            raise RegistryUnreachable(
                "Ledger endpoint not reachable", rpc_url=self._rpc_url, reason=str(e)
            ) from e

        if not code:
            raise InterfaceMismatch("No contract deployed at address", address=self._address)

        logger.info(
            "web3_registry_connected",
            contract_address=self._address,
            chain_id=self._chain_id,
        )

    async def disconnect(self) -> None:
        """Close the provider session."""
        if isinstance(self._w3.provider, AsyncHTTPProvider):
            await self._w3.provider.disconnect()
        logger.info("web3_registry_disconnected")

    async def health_check(self) -> dict[str, Any]:
        """Report endpoint reachability and chain head."""
        try:
            async with asyncio.timeout(self._call_timeout):
                connected = await self._w3.is_connected()
                block_number = await self._w3.eth.block_number if connected else None
        except (TimeoutError, OSError, Web3Exception) as e:
            return {
                "status": "unhealthy",
                "mode": self.mode.value,
                "contract_address": self._address,
                "error": str(e),
            }
        return {
            "status": "healthy" if connected else "unhealthy",
            "mode": self.mode.value,
            "contract_address": self._address,
            "chain_id": self._chain_id,
            "block_number": block_number,
        }

    # =========================================================================
    # Contract Methods
    # =========================================================================

    async def read_hash(self, timeout: float | None = None) -> str | None:
        """Call `getHash()` without a transaction."""
        budget = timeout if timeout is not None else self._call_timeout
        function = getattr(self._contract.functions, GET_HASH.name)
        try:
            async with asyncio.timeout(budget):
                value = await function().call()
        except TimeoutError as e:
            raise RegistryTimeout(f"{GET_HASH.name} timed out", timeout=budget) from e
        except BadFunctionCallOutput as e:
            raise InterfaceMismatch(
                f"{GET_HASH.name} returned no data; is the contract deployed?",
                address=self._address,
            ) from e
        # getHash has no require; a revert means the address holds a different contract
        except ContractLogicError as e:
            logger.warning("registry_read_reverted", address=self._address, error=str(e))
            raise InterfaceMismatch(
                f"{GET_HASH.name} reverted", address=self._address, reason=str(e)
            ) from e
        except (OSError, Web3Exception) as e:
            logger.error("registry_read_failed", error=str(e), error_type=type(e).__name__)
            raise RegistryUnreachable(
                "Ledger could not be queried", rpc_url=self._rpc_url, reason=str(e)
            ) from e

        # The contract returns an empty string until the first setHash
        return value or None

    async def write_hash(
        self,
        content_id: str,
        signer: Signer | None,
        timeout: float | None = None,
    ) -> TransactionReceipt:
        """Submit `setHash(content_id)` and wait for confirmations."""
        signer = await self._require_signer(signer)
        return await self._transact(SET_HASH.name, (content_id,), signer, timeout)

    async def issue_diploma(
        self,
        student_name: str,
        institution_name: str,
        degree: str,
        content_id: str,
        signer: Signer | None,
        timeout: float | None = None,
    ) -> TransactionReceipt:
        """Submit `issueDiploma(...)` and wait for confirmations."""
        self._require_extended()
        signer = await self._require_signer(signer)
        validate_diploma_fields(student_name, institution_name, degree, content_id)
        return await self._transact(
            ISSUE_DIPLOMA.name,
            (student_name, institution_name, degree, content_id),
            signer,
            timeout,
        )

    # =========================================================================
    # Transactions
    # =========================================================================

    async def _transact(
        self,
        method: str,
        args: tuple[str, ...],
        signer: Signer,
        timeout: float | None,
    ) -> TransactionReceipt:
        tx_hash = await self._submit(method, args, signer)
        logger.info("transaction_submitted", method=method, tx_hash=tx_hash, sender=signer.address)

        receipt = await self._wait_for_confirmations(method, tx_hash, timeout)
        if not receipt.succeeded:
            logger.warning("transaction_failed", method=method, tx_hash=tx_hash)
            raise TransactionRejected(
                "Transaction was mined but reverted",
                method=method,
                tx_hash=tx_hash,
                block_number=receipt.block_number,
            )

        logger.info(
            "transaction_confirmed",
            method=method,
            tx_hash=tx_hash,
            block_number=receipt.block_number,
            confirmations=receipt.confirmations,
        )
        return receipt

    async def _submit(self, method: str, args: tuple[str, ...], signer: Signer) -> str:
        """Build, sign and send a transaction; return its hash."""
        function = getattr(self._contract.functions, method)(*args)
        try:
            async with asyncio.timeout(self._call_timeout):
                chain_id = self._chain_id or await self._w3.eth.chain_id
                nonce = await self._w3.eth.get_transaction_count(signer.address, "pending")
                # Gas estimation runs the call, so contract reverts surface here
                transaction = await function.build_transaction(
                    {"from": signer.address, "nonce": nonce, "chainId": chain_id}
                )
                if transaction["gas"] > self._gas_limit:
                    raise TransactionRejected(
                        "Estimated gas exceeds the configured limit",
                        method=method,
                        gas=transaction["gas"],
                        gas_limit=self._gas_limit,
                    )
                raw = signer.sign_transaction(transaction)
                tx_hash = await self._w3.eth.send_raw_transaction(raw)
        except TimeoutError as e:
            raise RegistryTimeout(f"{method} submission timed out", method=method) from e
        except ContractLogicError as e:
            logger.warning("transaction_reverted", method=method, reason=str(e))
            if method == ISSUE_DIPLOMA.name:
                raise ValidationRejected(
                    "Contract rejected the diploma fields", method=method, reason=str(e)
                ) from e
            raise TransactionRejected(
                "Contract reverted the call", method=method, reason=str(e)
            ) from e
        except (Web3RPCError, ValueError) as e:
            # Insufficient funds, nonce conflicts, underpriced replacements
            logger.warning("transaction_rejected", method=method, reason=str(e))
            raise TransactionRejected(
                "Ledger refused the transaction", method=method, reason=str(e)
            ) from e
        except (OSError, Web3Exception) as e:
            raise RegistryUnreachable(
                "Ledger endpoint not reachable", rpc_url=self._rpc_url, reason=str(e)
            ) from e

        return Web3.to_hex(HexBytes(tx_hash))

    async def _wait_for_confirmations(
        self,
        method: str,
        tx_hash: str,
        timeout: float | None,
    ) -> TransactionReceipt:
        """Poll until the transaction is mined and deep enough, or time out."""
        budget = timeout if timeout is not None else self._confirmation_timeout
        try:
            async with asyncio.timeout(budget):
                async for attempt in AsyncRetrying(
                    retry=retry_if_exception_type(_AwaitingConfirmations),
                    stop=stop_after_delay(budget),
                    wait=wait_fixed(self._poll_interval),
                    reraise=True,
                ):
                    with attempt:
                        return await self._poll_receipt(method, tx_hash)
        except (TimeoutError, _AwaitingConfirmations) as e:
            logger.warning("confirmation_timeout", method=method, tx_hash=tx_hash, timeout=budget)
            raise ConfirmationTimeout(
                "Transaction not confirmed in time",
                method=method,
                tx_hash=tx_hash,
                timeout=budget,
            ) from e
        except (OSError, Web3Exception) as e:
            raise RegistryUnreachable(
                "Lost the ledger while waiting for confirmations",
                tx_hash=tx_hash,
                reason=str(e),
            ) from e

        raise ConfirmationTimeout("Transaction not confirmed in time", tx_hash=tx_hash)

    async def _poll_receipt(self, method: str, tx_hash: str) -> TransactionReceipt:
        try:
            receipt = await self._w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound as e:
            raise _AwaitingConfirmations(0) from e

        status = TransactionStatus.SUCCESS if receipt["status"] == 1 else TransactionStatus.FAILED
        head = await self._w3.eth.block_number
        confirmations = max(head - receipt["blockNumber"], 0)

        if status == TransactionStatus.SUCCESS and confirmations < self._confirmations:
            logger.debug(
                "awaiting_confirmations",
                tx_hash=tx_hash,
                confirmations=confirmations,
                required=self._confirmations,
            )
            raise _AwaitingConfirmations(confirmations)

        return TransactionReceipt(
            tx_hash=tx_hash,
            method=method,
            status=status,
            block_number=receipt["blockNumber"],
            confirmations=confirmations,
            sender=receipt.get("from"),
            gas_used=receipt.get("gasUsed"),
        )
