"""
Tests for SyncOrchestrator category aggregation.
"""
import asyncio
from typing import Any, Dict, List
from unittest.mock import AsyncMock, Mock

import pytest

from possync.domains.integrations.base.sync_orchestrator import SyncOrchestrator
from possync.domains.integrations.models import IntegrationConfig, SyncCategory
from possync.shared.exceptions import ApiError


def make_client(outcomes: Dict[SyncCategory, Any]) -> Mock:
    """Client whose fetch_category returns a list or raises per category."""

    async def fetch_category(category: SyncCategory) -> List[Any]:
        outcome = outcomes[category]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    client = Mock()
    client.fetch_category = AsyncMock(side_effect=fetch_category)
    return client


class TestSyncOrchestrator:
    """Test suite for SyncOrchestrator.sync_data."""

    @pytest.mark.asyncio
    async def test_all_categories_succeed(
        self, connected_shopify_config: IntegrationConfig
    ) -> None:
        # Arrange
        client = make_client(
            {
                SyncCategory.PRODUCTS: [1, 2],
                SyncCategory.ORDERS: [1],
                SyncCategory.CUSTOMERS: [],
                SyncCategory.INVENTORY: [1, 2, 3],
            }
        )

        # Act
        result = await SyncOrchestrator().sync_data(connected_shopify_config, client)

        # Assert
        assert result.success is True
        assert result.synced_items == 6
        assert result.errors == []
        assert [c.args[0] for c in client.fetch_category.await_args_list] == [
            SyncCategory.PRODUCTS,
            SyncCategory.ORDERS,
            SyncCategory.CUSTOMERS,
            SyncCategory.INVENTORY,
        ]

    @pytest.mark.asyncio
    async def test_failed_category_does_not_stop_others(
        self, connected_quickbooks_config: IntegrationConfig
    ) -> None:
        # Arrange
        client = make_client(
            {
                SyncCategory.PRODUCTS: [{"Id": "1"}, {"Id": "2"}, {"Id": "3"}],
                SyncCategory.CUSTOMERS: Exception("rate limited"),
            }
        )

        # Act
        result = await SyncOrchestrator().sync_data(connected_quickbooks_config, client)

        # Assert
        assert result.success is False
        assert result.synced_items == 3
        assert result.errors == ["Customers sync failed: rate limited"]
        assert result.status == "completed_with_errors"

    @pytest.mark.asyncio
    async def test_integration_error_message_is_used(
        self, connected_quickbooks_config: IntegrationConfig
    ) -> None:
        client = make_client(
            {
                SyncCategory.PRODUCTS: ApiError("QuickBooks API error: Forbidden", 403),
                SyncCategory.CUSTOMERS: [1],
            }
        )

        result = await SyncOrchestrator().sync_data(connected_quickbooks_config, client)

        assert result.errors == [
            "Products sync failed: QuickBooks API error: Forbidden"
        ]
        assert result.synced_items == 1

    @pytest.mark.asyncio
    async def test_disabled_categories_are_skipped(
        self, connected_quickbooks_config: IntegrationConfig
    ) -> None:
        # Arrange
        connected_quickbooks_config.settings.sync.customers = False
        connected_quickbooks_config.settings.sync.payments = True
        client = make_client(
            {SyncCategory.PRODUCTS: [1], SyncCategory.PAYMENTS: [1, 2]}
        )

        # Act
        result = await SyncOrchestrator().sync_data(connected_quickbooks_config, client)

        # Assert
        assert result.synced_items == 3
        assert client.fetch_category.await_count == 2

    @pytest.mark.asyncio
    async def test_no_enabled_categories(
        self, connected_quickbooks_config: IntegrationConfig
    ) -> None:
        connected_quickbooks_config.settings.sync.products = False
        connected_quickbooks_config.settings.sync.customers = False
        client = make_client({})

        result = await SyncOrchestrator().sync_data(connected_quickbooks_config, client)

        assert result.success is True
        assert result.synced_items == 0
        client.fetch_category.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_sync_budget_exceeded(
        self, connected_quickbooks_config: IntegrationConfig
    ) -> None:
        # Arrange
        async def slow_fetch(category: SyncCategory) -> List[Any]:
            await asyncio.sleep(5)
            return [1]

        client = Mock()
        client.fetch_category = AsyncMock(side_effect=slow_fetch)

        # Act
        result = await SyncOrchestrator(budget_seconds=0.05).sync_data(
            connected_quickbooks_config, client
        )

        # Assert
        assert result.success is False
        assert result.synced_items == 0
        assert result.errors == [
            "Products sync failed: sync budget exceeded",
            "Customers sync failed: sync budget exceeded",
        ]

    @pytest.mark.asyncio
    async def test_zero_budget_disables_limit(
        self, connected_quickbooks_config: IntegrationConfig
    ) -> None:
        client = make_client({SyncCategory.PRODUCTS: [1], SyncCategory.CUSTOMERS: [2]})

        result = await SyncOrchestrator(budget_seconds=10).sync_data(
            connected_quickbooks_config, client, budget_seconds=0
        )

        assert result.success is True
        assert result.synced_items == 2
