from typing import Optional

from possync.shared.exceptions import ConfigurationError

from ..models import IntegrationConfig, ProviderType
from .client import BaseProviderClient, TokensRefreshedCallback
from .token_manager import BaseTokenManager


class IntegrationFactory:
    """Factory for creating provider-specific clients and token managers."""

    def get_token_manager(self, config: IntegrationConfig) -> BaseTokenManager:
        """Get the token manager for an integration's credentials."""
        if config.provider_type == ProviderType.QUICKBOOKS:
            from ..quickbooks.auth import QuickBooksTokenManager

            return QuickBooksTokenManager(config.settings.credentials)

        if config.provider_type == ProviderType.SHOPIFY:
            from ..shopify.auth import ShopifyTokenManager

            return ShopifyTokenManager(config.settings.credentials)

        raise ConfigurationError(
            f"Unsupported integration provider: {config.provider_type}"
        )

    def get_client(
        self,
        config: IntegrationConfig,
        on_tokens_refreshed: Optional[TokensRefreshedCallback] = None,
    ) -> BaseProviderClient:
        """Get the API client for an integration."""
        token_manager = self.get_token_manager(config)

        if config.provider_type == ProviderType.QUICKBOOKS:
            from ..quickbooks.client import QuickBooksClient

            return QuickBooksClient(
                config.settings,
                token_manager,
                on_tokens_refreshed=on_tokens_refreshed,
            )

        if config.provider_type == ProviderType.SHOPIFY:
            from ..shopify.client import ShopifyClient

            return ShopifyClient(
                config.settings,
                token_manager,
                on_tokens_refreshed=on_tokens_refreshed,
            )

        raise ConfigurationError(
            f"Unsupported integration provider: {config.provider_type}"
        )
