"""
Integration exceptions.

Every error raised by the sync engine derives from ``IntegrationError`` and
carries the HTTP status the API layer reports it with.
"""

from typing import List, Optional

from fastapi import status


class IntegrationError(Exception):
    """Base exception for integration errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Integration error"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def with_prefix(self, prefix: str) -> "IntegrationError":
        """Copy of this error, attributes kept, with ``prefix`` on its message."""
        error = self.__class__.__new__(self.__class__)
        error.__dict__.update(self.__dict__)
        error.message = f"{prefix}: {self.message}"
        error.args = (error.message,)
        return error


class ConfigurationError(IntegrationError):
    """Raised when a required credential is missing, before any network call."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Integration is not configured"


class AuthorizationError(IntegrationError):
    """Raised when the provider rejects a token exchange or refresh."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Integration authorization failed"


class ApiError(IntegrationError):
    """Raised when a provider data endpoint answers with a non-2xx status."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Integration API request failed"

    def __init__(
        self,
        message: Optional[str] = None,
        provider_status: Optional[int] = None,
        response_text: str = "",
    ) -> None:
        super().__init__(message)
        self.provider_status = provider_status
        self.response_text = response_text


class ConnectivityError(IntegrationError):
    """Raised on transport-level failures (DNS, TLS, timeouts)."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Integration provider is unreachable"


class PartialSyncError(IntegrationError):
    """Aggregated, non-fatal per-category failures of a sync run."""

    status_code = status.HTTP_200_OK
    default_message = "Sync completed with errors"

    def __init__(self, errors: List[str], synced_items: int = 0) -> None:
        super().__init__(
            f"Sync completed with {len(errors)} error(s): " + "; ".join(errors)
        )
        self.errors = list(errors)
        self.synced_items = synced_items

    @classmethod
    def from_result(cls, result) -> "PartialSyncError":
        return cls(result.errors, result.synced_items)


class IntegrationNotFoundError(IntegrationError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Integration not found"


class IntegrationStateError(IntegrationError):
    """Raised when an operation is not allowed in the current state."""

    status_code = status.HTTP_409_CONFLICT
    default_message = "Operation not allowed in the current integration state"


class SyncInProgressError(IntegrationStateError):
    default_message = "A sync is already running for this integration"
