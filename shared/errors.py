"""
Error Taxonomy
==============

Typed failures raised by the content store, the registry binding and the
diploma workflow. Every remote-call failure surfaces as one of these.

Hierarchy:
    DiplomaRegistryError
    ├── ConnectivityError      StoreUnavailable, RegistryUnreachable
    ├── NotFoundError          ContentNotFound
    ├── AuthError              SignerUnavailable
    ├── RejectionError         UploadRejected, TransactionRejected,
    │                          ValidationRejected, InterfaceMismatch
    ├── OperationTimeout       UploadTimeout, FetchTimeout,
    │                          RegistryTimeout, ConfirmationTimeout
    └── InvalidTransition

Version: 0.1.0
"""

from typing import Any


class DiplomaRegistryError(Exception):
    """Base class for all diploma registry failures."""

    code = "diploma_registry_error"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API error bodies."""
        return {
            "error": self.message,
            "error_code": self.code,
            "details": self.details or None,
        }


# =============================================================================
# Families
# =============================================================================


class ConnectivityError(DiplomaRegistryError):
    """The content store or the ledger could not be reached."""

    code = "connectivity_error"


class NotFoundError(DiplomaRegistryError):
    """A content id has no reachable data."""

    code = "not_found"


class AuthError(DiplomaRegistryError):
    """No usable signer for a state-changing call."""

    code = "auth_error"


class RejectionError(DiplomaRegistryError):
    """The ledger or the store refused the operation."""

    code = "rejected"


class OperationTimeout(DiplomaRegistryError, TimeoutError):
    """A remote operation exceeded its time budget."""

    code = "timeout"


class InvalidTransition(DiplomaRegistryError):
    """An issuance was driven through an illegal state change."""

    code = "invalid_transition"


# =============================================================================
# Content store
# =============================================================================


class StoreUnavailable(ConnectivityError):
    code = "store_unavailable"


class UploadRejected(RejectionError):
    code = "upload_rejected"


class ContentNotFound(NotFoundError):
    """
    No content is reachable under the id from the queried node.

    The content may still exist elsewhere on the network.
    """

    code = "content_not_found"


class UploadTimeout(OperationTimeout):
    code = "upload_timeout"


class FetchTimeout(OperationTimeout):
    code = "fetch_timeout"


# =============================================================================
# Registry
# =============================================================================


class RegistryUnreachable(ConnectivityError):
    code = "registry_unreachable"


class SignerUnavailable(AuthError):
    code = "signer_unavailable"


class TransactionRejected(RejectionError):
    code = "transaction_rejected"


class ValidationRejected(RejectionError):
    code = "validation_rejected"


class InterfaceMismatch(RejectionError):
    """A contract ABI does not satisfy the declared registry interface."""

    code = "interface_mismatch"


class RegistryTimeout(OperationTimeout):
    code = "registry_timeout"


class ConfirmationTimeout(OperationTimeout):
    """A transaction was submitted but not confirmed within its budget."""

    code = "confirmation_timeout"
