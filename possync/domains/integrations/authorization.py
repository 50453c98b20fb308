from typing import List, Optional

from possync.shared.exceptions import ConfigurationError

from .models import ProviderType
from .quickbooks import auth as quickbooks_auth
from .shopify import auth as shopify_auth


def build_authorization_url(
    provider_type: ProviderType,
    client_id: str,
    redirect_uri: str,
    scopes: Optional[List[str]] = None,
    *,
    shop_domain: Optional[str] = None,
    state: Optional[str] = None,
) -> str:
    """
    Build the OAuth authorize-redirect URL for a provider.

    Pure function: no network call, deterministic for the same inputs.

    Args:
        provider_type: Provider to authorize against
        client_id: OAuth client ID (Shopify API key)
        redirect_uri: Callback URL registered with the provider
        scopes: Requested scopes, provider defaults when omitted
        shop_domain: Shop domain, required for Shopify
        state: Opaque state value echoed back on the callback

    Raises:
        ConfigurationError: If a required value is missing
    """
    if provider_type == ProviderType.QUICKBOOKS:
        return quickbooks_auth.build_authorization_url(
            client_id, redirect_uri, scopes, state=state
        )

    if provider_type == ProviderType.SHOPIFY:
        return shopify_auth.build_authorization_url(
            shop_domain or "", client_id, redirect_uri, scopes, state=state
        )

    raise ConfigurationError(f"Unsupported integration provider: {provider_type}")
