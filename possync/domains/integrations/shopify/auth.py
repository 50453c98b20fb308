from typing import List, Optional
from urllib.parse import urlencode

from possync.core.settings import settings
from possync.shared.exceptions import ConfigurationError

from ..base.models import TokenResponse
from ..base.token_manager import BaseTokenManager
from ..models import ShopifyCredentials

SHOPIFY_DEFAULT_SCOPES = [
    "read_products",
    "write_products",
    "read_orders",
    "write_orders",
    "read_customers",
    "read_inventory",
]


def build_authorization_url(
    shop_domain: str,
    client_id: str,
    redirect_uri: str,
    scopes: Optional[List[str]] = None,
    state: Optional[str] = None,
) -> str:
    """
    Build the Shopify OAuth authorization URL for a shop.

    Scopes are comma-joined. Shopify issues offline tokens by default, so no
    offline-access parameter is sent.
    """
    if not shop_domain:
        raise ConfigurationError("Shopify shop domain is required")
    if not client_id:
        raise ConfigurationError("Shopify API key is required")

    params = {
        "client_id": client_id,
        "scope": ",".join(scopes or SHOPIFY_DEFAULT_SCOPES),
        "redirect_uri": redirect_uri,
    }
    if state:
        params["state"] = state

    return f"https://{shop_domain}/admin/oauth/authorize?{urlencode(params)}"


class ShopifyTokenManager(BaseTokenManager):
    """Token exchange for Shopify offline access tokens (no refresh flow)."""

    provider_name = "Shopify"
    supports_refresh = False

    credentials: ShopifyCredentials

    @property
    def client_id(self) -> Optional[str]:
        return self.api_key

    @property
    def api_key(self) -> Optional[str]:
        return self.credentials.api_key or settings.SHOPIFY_API_KEY

    @property
    def api_secret(self) -> Optional[str]:
        return self.credentials.api_secret or settings.SHOPIFY_API_SECRET

    async def exchange_code_for_token(
        self, code: str, redirect_uri: str
    ) -> TokenResponse:
        if not self.credentials.shop_domain or not self.api_key or not self.api_secret:
            raise ConfigurationError("Shopify credentials are required")

        token_json = await self._request_token(
            f"https://{self.credentials.shop_domain}/admin/oauth/access_token",
            action="exchange code",
            json={
                "client_id": self.api_key,
                "client_secret": self.api_secret,
                "code": code,
            },
            headers={"Content-Type": "application/json"},
        )

        token_json.setdefault("account_id", self.credentials.shop_domain)
        return TokenResponse(**token_json)
