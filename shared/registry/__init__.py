"""
Registry Module
===============

Binding for the diploma registry contract.

Supports:
- Mock (development/testing)
- Live EVM network through web3.py

Usage:
    from shared.registry import get_registry_client, signer_from_settings
    from shared.config import settings

    client = get_registry_client()
    signer = signer_from_settings(settings.signer)

    receipt = await client.write_hash("bafkrei...", signer)
    content_id = await client.read_hash()
"""

from shared.registry.client import (
    DiplomaFields,
    DiplomaRecord,
    RegistryClient,
    TransactionReceipt,
    TransactionStatus,
    get_registry_client,
    reset_registry_client,
    set_registry_client,
)
from shared.registry.ethereum import Web3RegistryClient
from shared.registry.mock import MockRegistryClient
from shared.registry.schema import ContractMethod, RegistryInterface, StateMutability
from shared.registry.signer import LocalAccountSigner, Signer, signer_from_settings

__all__ = [
    # Client
    "RegistryClient",
    "get_registry_client",
    "set_registry_client",
    "reset_registry_client",
    # Models
    "DiplomaFields",
    "DiplomaRecord",
    "TransactionReceipt",
    "TransactionStatus",
    # Interface schema
    "ContractMethod",
    "RegistryInterface",
    "StateMutability",
    # Signers
    "Signer",
    "LocalAccountSigner",
    "signer_from_settings",
    # Implementations
    "MockRegistryClient",
    "Web3RegistryClient",
]
