"""
Diploma Registry Shared Library
===============================

Common utilities, configurations, and abstractions shared across services.

Modules:
    - config: Configuration management with Pydantic Settings
    - logging: Structured logging with structlog
    - errors: Typed failure taxonomy
    - content: Content-addressed store clients (mock/IPFS)
    - registry: Ledger contract bindings (mock/web3) and signers
    - models: Shared Pydantic models

Version: 0.1.0
"""

__version__ = "0.1.0"
__author__ = "Diploma Registry Team"

from shared.config import settings
from shared.logging import get_logger, setup_logging

__all__ = [
    "settings",
    "get_logger",
    "setup_logging",
    "__version__",
]
