"""
Common Models
=============

Error and health bodies shared by every HTTP surface.

Version: 0.1.0
"""

from collections.abc import Collection
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from shared.errors import DiplomaRegistryError


class ErrorResponse(BaseModel):
    """Body returned for a failed request."""

    success: bool = False
    error: str
    error_code: str | None = None
    status_code: int
    details: dict[str, Any] | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_error(cls, error: DiplomaRegistryError, status_code: int) -> "ErrorResponse":
        return cls(
            error=error.message,
            error_code=error.code,
            status_code=status_code,
            details=error.details or None,
        )


class HealthResponse(BaseModel):
    """Service health with per-component detail."""

    status: str = "healthy"
    service: str
    version: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    components: dict[str, dict[str, Any]] = Field(default_factory=dict)

    @classmethod
    def from_components(
        cls,
        service: str,
        version: str,
        components: dict[str, dict[str, Any]],
        optional: Collection[str] = (),
    ) -> "HealthResponse":
        """
        Summarize component checks.

        The service is degraded when any component outside `optional`
        reports something other than healthy.
        """
        degraded = [
            name
            for name, component in components.items()
            if name not in optional and component.get("status") != "healthy"
        ]
        return cls(
            status="degraded" if degraded else "healthy",
            service=service,
            version=version,
            components=components,
        )
