"""
Signers
=======

Explicit signing capability for state-changing ledger calls.

A signer is handed to the workflow at construction; nothing reads
credentials from ambient global state.

Version: 0.1.0
"""

from abc import ABC, abstractmethod
from typing import Any

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import ValidationError

from shared.config.settings import SignerSettings
from shared.errors import SignerUnavailable
from shared.logging import get_logger

logger = get_logger(__name__)

DEFAULT_DERIVATION_PATH = "m/44'/60'/0'/0/{index}"


class Signer(ABC):
    """Authenticated identity that can sign ledger transactions."""

    @property
    @abstractmethod
    def address(self) -> str:
        """Checksummed account address."""
        ...

    @abstractmethod
    async def ensure_available(self) -> None:
        """
        Verify the identity can sign right now.

        Raises:
            SignerUnavailable: No usable identity
        """
        ...

    @abstractmethod
    def sign_transaction(self, transaction: dict[str, Any]) -> bytes:
        """Sign a transaction dict and return the raw signed bytes."""
        ...


class LocalAccountSigner(Signer):
    """Signer holding a private key in process memory."""

    def __init__(self, account: LocalAccount) -> None:
        self._account = account
        self._revoked = False

    @classmethod
    def from_private_key(cls, private_key: str) -> "LocalAccountSigner":
        try:
            account = Account.from_key(private_key)
        except (ValueError, TypeError, ValidationError) as e:
            raise SignerUnavailable("Invalid signer private key") from e
        return cls(account)

    @classmethod
    def from_mnemonic(cls, mnemonic: str, account_index: int = 0) -> "LocalAccountSigner":
        Account.enable_unaudited_hdwallet_features()
        try:
            account = Account.from_mnemonic(
                mnemonic,
                account_path=DEFAULT_DERIVATION_PATH.format(index=account_index),
            )
        except (ValueError, TypeError, ValidationError) as e:
            raise SignerUnavailable("Invalid signer mnemonic") from e
        return cls(account)

    @classmethod
    def generate(cls) -> "LocalAccountSigner":
        """Create a throwaway account (development and tests)."""
        return cls(Account.create())

    @property
    def address(self) -> str:
        return self._account.address

    async def ensure_available(self) -> None:
        if self._revoked:
            raise SignerUnavailable("Signer has been revoked", address=self.address)

    def sign_transaction(self, transaction: dict[str, Any]) -> bytes:
        if self._revoked:
            raise SignerUnavailable("Signer has been revoked", address=self.address)
        signed = self._account.sign_transaction(transaction)
        return bytes(signed.raw_transaction)

    def revoke(self) -> None:
        """Withdraw signing capability, e.g. when a session ends."""
        self._revoked = True
        logger.info("signer_revoked", address=self.address)


def signer_from_settings(signer: SignerSettings) -> Signer | None:
    """
    Build a signer from configured credentials.

    Returns:
        A signer, or None when no credentials are configured (read-only use)
    """
    if not signer.configured:
        logger.info("signer_not_configured")
        return None

    private_key = signer.private_key.get_secret_value()
    if private_key:
        result = LocalAccountSigner.from_private_key(private_key)
    else:
        result = LocalAccountSigner.from_mnemonic(
            signer.mnemonic.get_secret_value(), signer.account_index
        )

    logger.info("signer_loaded", address=result.address)
    return result
