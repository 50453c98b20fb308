import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from possync.core.settings import settings
from possync.shared.exceptions import AuthorizationError, ConnectivityError

from .models import TokenResponse

logger = logging.getLogger(__name__)


class BaseTokenManager(ABC):
    """Exchanges authorization codes and refreshes tokens for one provider."""

    provider_name: str = ""
    supports_refresh: bool = False

    def __init__(self, credentials: Any, timeout: Optional[float] = None):
        self.credentials = credentials
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS

    @property
    @abstractmethod
    def client_id(self) -> Optional[str]:
        """OAuth client identifier sent on the authorization request."""
        pass

    @abstractmethod
    async def exchange_code_for_token(
        self, code: str, redirect_uri: str
    ) -> TokenResponse:
        """
        Exchange an OAuth authorization code for tokens.

        Args:
            code: Authorization code from the OAuth redirect
            redirect_uri: Redirect URI registered for the authorization request

        Returns:
            TokenResponse with the access token and account identifier

        Raises:
            ConfigurationError: If client credentials are missing
            AuthorizationError: If the provider rejects the exchange
            ConnectivityError: If the token endpoint cannot be reached
        """
        pass

    async def refresh_token(self) -> TokenResponse:
        """Refresh the access token, where the provider issues refresh tokens."""
        raise AuthorizationError(
            f"{self.provider_name} does not support refreshing access tokens"
        )

    async def revoke_token(self) -> None:
        """Revoke the stored grant. No-op for providers without a revoke endpoint."""
        return None

    async def _request_token(
        self,
        url: str,
        action: str,
        data: Optional[Dict[str, str]] = None,
        json: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
        auth: Optional[tuple[str, str]] = None,
    ) -> Dict[str, Any]:
        """POST to a token endpoint and return the decoded JSON body."""
        request_headers = {"Accept": "application/json"}
        if headers:
            request_headers.update(headers)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(
                    url,
                    data=data,
                    json=json,
                    headers=request_headers,
                    auth=auth,
                )
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as e:
                logger.warning(
                    f"{self.provider_name} token request rejected "
                    f"({e.response.status_code}): {e.response.text}"
                )
                raise AuthorizationError(f"Failed to {action}: {e.response.text}")
            except httpx.RequestError as e:
                raise ConnectivityError(f"Token request failed: {e}")
