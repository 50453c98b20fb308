import logging
from typing import List, Optional
from urllib.parse import urlencode

import httpx

from possync.core.settings import settings
from possync.shared.exceptions import ConfigurationError, ConnectivityError

from ..base.models import TokenResponse
from ..base.token_manager import BaseTokenManager
from ..models import QuickBooksCredentials

logger = logging.getLogger(__name__)

QB_AUTH_BASE = "https://appcenter.intuit.com/connect/oauth2"
QB_TOKEN_URL = "https://oauth.platform.intuit.com/oauth2/v1/tokens/bearer"
QB_REVOKE_URL = "https://developer.api.intuit.com/v2/oauth2/tokens/revoke"
QB_DEFAULT_SCOPES = ["com.intuit.quickbooks.accounting"]


def build_authorization_url(
    client_id: str,
    redirect_uri: str,
    scopes: Optional[List[str]] = None,
    state: Optional[str] = None,
) -> str:
    """
    Build the QuickBooks OAuth authorization URL.

    Scopes are space-joined and offline access is requested so the token
    endpoint issues a refresh token.
    """
    if not client_id:
        raise ConfigurationError("QuickBooks client ID is required")

    params = {
        "client_id": client_id,
        "response_type": "code",
        "scope": " ".join(scopes or QB_DEFAULT_SCOPES),
        "redirect_uri": redirect_uri,
        "access_type": "offline",
    }
    if state:
        params["state"] = state

    return f"{QB_AUTH_BASE}?{urlencode(params)}"


class QuickBooksTokenManager(BaseTokenManager):
    """Token exchange and refresh against the Intuit OAuth2 token endpoint."""

    provider_name = "QuickBooks"
    supports_refresh = True

    credentials: QuickBooksCredentials

    def __init__(
        self, credentials: QuickBooksCredentials, timeout: Optional[float] = None
    ):
        super().__init__(credentials, timeout)
        self.token_url = QB_TOKEN_URL

    @property
    def client_id(self) -> Optional[str]:
        return self.credentials.client_id or settings.QUICKBOOKS_CLIENT_ID

    @property
    def client_secret(self) -> Optional[str]:
        return self.credentials.client_secret or settings.QUICKBOOKS_CLIENT_SECRET

    async def exchange_code_for_token(
        self, code: str, redirect_uri: str, realm_id: Optional[str] = None
    ) -> TokenResponse:
        """
        Exchange an authorization code for QuickBooks tokens.

        The realm ID is not part of the token response; Intuit passes it on the
        redirect alongside the code.
        """
        if not self.client_id or not self.client_secret:
            raise ConfigurationError("QuickBooks client ID and secret are required")

        token_json = await self._request_token(
            self.token_url,
            action="exchange code",
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
            },
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            auth=(self.client_id, self.client_secret),
        )

        token_json.setdefault(
            "account_id",
            realm_id or token_json.get("realmId") or self.credentials.realm_id,
        )
        return TokenResponse(**token_json)

    async def refresh_token(self) -> TokenResponse:
        if (
            not self.client_id
            or not self.client_secret
            or not self.credentials.refresh_token
        ):
            raise ConfigurationError("QuickBooks credentials are required")

        token_json = await self._request_token(
            self.token_url,
            action="refresh token",
            data={
                "grant_type": "refresh_token",
                "refresh_token": self.credentials.refresh_token,
            },
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            auth=(self.client_id, self.client_secret),
        )

        token_json.setdefault("account_id", self.credentials.realm_id)
        return TokenResponse(**token_json)

    async def revoke_token(self) -> None:
        """
        Revoke the refresh token (or access token) so the grant is removed
        from the QuickBooks company's connected apps.
        """
        token = self.credentials.refresh_token or self.credentials.access_token
        if not token or not self.client_id or not self.client_secret:
            return

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(
                    QB_REVOKE_URL,
                    json={"token": token},
                    headers={"Accept": "application/json"},
                    auth=(self.client_id, self.client_secret),
                )
            except httpx.RequestError as e:
                raise ConnectivityError(f"Token revoke failed: {e}")

        if response.status_code != 200:
            logger.warning(
                f"QuickBooks token revoke returned {response.status_code}: "
                f"{response.text}"
            )
