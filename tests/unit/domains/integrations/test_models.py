"""
Tests for integration configuration models.
"""
import pytest
from pydantic import ValidationError

from possync.domains.integrations.base.models import SyncResult
from possync.domains.integrations.migrations import migrate_document
from possync.domains.integrations.models import (
    IntegrationConfig,
    ProviderType,
    QuickBooksSettings,
    ShopifySettings,
    SyncCategory,
    SyncResponse,
    default_integrations,
)


class TestProviderSettings:
    """Test suite for provider settings helpers."""

    def test_enabled_categories_follow_declared_order(self) -> None:
        settings = ShopifySettings.model_validate(
            {"sync": {"products": True, "orders": False, "inventory": True}}
        )

        assert settings.enabled_categories() == [
            SyncCategory.PRODUCTS,
            SyncCategory.CUSTOMERS,
            SyncCategory.INVENTORY,
        ]

    def test_quickbooks_defaults(self) -> None:
        settings = QuickBooksSettings()

        assert settings.environment == "sandbox"
        assert settings.enabled_categories() == [
            SyncCategory.PRODUCTS,
            SyncCategory.CUSTOMERS,
        ]
        assert settings.missing_credentials() == ["access_token", "realm_id"]

    def test_without_credentials_keeps_preferences(
        self, quickbooks_settings: QuickBooksSettings
    ) -> None:
        # Arrange
        quickbooks_settings.sync.invoices = True
        quickbooks_settings.environment = "production"

        # Act
        cleared = quickbooks_settings.without_credentials()

        # Assert
        assert cleared.credentials.model_dump() == {
            "client_id": None,
            "client_secret": None,
            "access_token": None,
            "refresh_token": None,
            "realm_id": None,
            "token_expires_at": None,
        }
        assert cleared.sync.invoices is True
        assert cleared.environment == "production"
        assert quickbooks_settings.credentials.access_token == "test-access-token"

    def test_shopify_webhook_secret_is_stored_and_cleared(self) -> None:
        # Arrange
        migrated = migrate_document(
            [
                {
                    "id": "shopify",
                    "settings": {"accessToken": "tok", "webhookSecret": "whsec"},
                }
            ]
        )
        settings = ShopifySettings.model_validate(
            migrated["integrations"][0]["settings"]
        )

        # Act
        cleared = settings.without_credentials()

        # Assert
        assert settings.credentials.webhook_secret == "whsec"
        assert settings.model_dump(by_alias=True)["credentials"]["webhookSecret"] == (
            "whsec"
        )
        assert cleared.credentials.webhook_secret is None

    def test_account_id(
        self,
        quickbooks_settings: QuickBooksSettings,
        shopify_settings: ShopifySettings,
    ) -> None:
        assert quickbooks_settings.account_id == "1234567890"
        assert shopify_settings.account_id == "test-shop.myshopify.com"


class TestIntegrationConfig:
    """Test suite for IntegrationConfig validation and merging."""

    def test_settings_variant_selected_by_provider_type(self) -> None:
        config = IntegrationConfig.model_validate(
            {
                "id": "shopify",
                "displayName": "Shopify",
                "providerType": "shopify",
                "settings": {
                    "providerType": "shopify",
                    "credentials": {"shopDomain": "a.myshopify.com"},
                },
            }
        )

        assert isinstance(config.settings, ShopifySettings)
        assert config.settings.credentials.shop_domain == "a.myshopify.com"

    def test_mismatched_settings_rejected(self) -> None:
        with pytest.raises(ValidationError):
            IntegrationConfig(
                id="quickbooks",
                display_name="QuickBooks",
                provider_type=ProviderType.QUICKBOOKS,
                settings=ShopifySettings(),
            )

    def test_connected_without_credentials_is_demoted(self) -> None:
        config = IntegrationConfig(
            id="quickbooks",
            display_name="QuickBooks",
            provider_type=ProviderType.QUICKBOOKS,
            enabled=True,
            connected=True,
            settings=QuickBooksSettings(),
        )

        assert config.connected is False
        assert config.enabled is False

    def test_merged_accepts_camel_case_keys(
        self, connected_quickbooks_config: IntegrationConfig
    ) -> None:
        # Act
        merged = connected_quickbooks_config.merged(
            {"settings": {"autoSync": True, "sync": {"invoices": True}}}
        )

        # Assert
        assert merged.settings.auto_sync is True
        assert merged.settings.sync.invoices is True
        assert merged.settings.sync.products is True
        assert merged.settings.credentials.realm_id == "1234567890"
        # The source config is untouched
        assert connected_quickbooks_config.settings.auto_sync is False

    def test_merged_ignores_identity_keys(
        self, connected_quickbooks_config: IntegrationConfig
    ) -> None:
        merged = connected_quickbooks_config.merged(
            {"id": "other", "providerType": "shopify"}
        )

        assert merged.id == "quickbooks"
        assert merged.provider_type == ProviderType.QUICKBOOKS

    def test_default_integrations(self) -> None:
        defaults = default_integrations()

        assert [c.id for c in defaults] == ["quickbooks", "shopify"]
        assert all(not c.connected and not c.enabled for c in defaults)


class TestSyncResponse:
    """Test suite for sync status reporting."""

    @pytest.mark.parametrize(
        "synced_items, errors, expected",
        [
            (5, [], "completed"),
            (0, [], "completed"),
            (3, ["Customers sync failed: rate limited"], "completed_with_errors"),
            (0, ["Products sync failed: boom"], "failed"),
        ],
    )
    def test_status(self, synced_items: int, errors: list, expected: str) -> None:
        result = SyncResult(
            success=not errors, synced_items=synced_items, errors=errors
        )

        response = SyncResponse.from_result(result)

        assert response.status == expected
        assert response.model_dump(by_alias=True)["result"]["syncedItems"] == (
            synced_items
        )
