"""
Tests for the QuickBooks Online API client.
"""
from unittest.mock import AsyncMock, patch

import pytest

from possync.core.settings import settings
from possync.domains.integrations.models import QuickBooksSettings, SyncCategory
from possync.domains.integrations.quickbooks.client import QuickBooksClient
from possync.domains.integrations.quickbooks.types import (
    QuickBooksCustomer,
    QuickBooksProduct,
)
from possync.shared.exceptions import ApiError
from tests.fixtures.integration_fixtures import create_http_response

BASE_URL = "https://sandbox-quickbooks.api.intuit.com/v3/company/1234567890"


def query_response(entity: str, items: list) -> dict:
    return {"QueryResponse": {entity: items, "maxResults": len(items)}}


class TestQuickBooksClient:
    """Test suite for QuickBooksClient."""

    @pytest.fixture
    def client(self, quickbooks_settings: QuickBooksSettings) -> QuickBooksClient:
        return QuickBooksClient(quickbooks_settings, page_size=2)

    def test_base_url_per_environment(
        self, quickbooks_settings: QuickBooksSettings
    ) -> None:
        assert QuickBooksClient(quickbooks_settings).base_url == BASE_URL

        quickbooks_settings.environment = "production"
        assert QuickBooksClient(quickbooks_settings).base_url == (
            "https://quickbooks.api.intuit.com/v3/company/1234567890"
        )

    @pytest.mark.asyncio
    async def test_get_products_pages_through_query_api(
        self, client: QuickBooksClient
    ) -> None:
        # Arrange
        first_page = [{"Id": "1", "Name": "Coffee"}, {"Id": "2", "Name": "Tea"}]
        responses = [
            create_http_response(query_response("Item", first_page)),
            create_http_response(query_response("Item", [{"Id": "3", "Name": "Cake"}])),
        ]

        # Act
        with patch("httpx.AsyncClient") as mock_client:
            mock_request = AsyncMock(side_effect=responses)
            mock_client.return_value.__aenter__.return_value.request = mock_request

            products = await client.get_products()

        # Assert
        assert [p.Name for p in products] == ["Coffee", "Tea", "Cake"]
        assert all(isinstance(p, QuickBooksProduct) for p in products)

        first, second = mock_request.call_args_list
        assert first.args == ("GET", f"{BASE_URL}/query")
        assert first.kwargs["params"] == {
            "minorversion": settings.QUICKBOOKS_MINOR_VERSION,
            "query": "SELECT * FROM Item STARTPOSITION 1 MAXRESULTS 2",
        }
        assert second.kwargs["params"]["query"] == (
            "SELECT * FROM Item STARTPOSITION 3 MAXRESULTS 2"
        )

    @pytest.mark.asyncio
    async def test_empty_query_response(self, client: QuickBooksClient) -> None:
        with patch("httpx.AsyncClient") as mock_client:
            mock_request = AsyncMock(
                return_value=create_http_response({"QueryResponse": {}})
            )
            mock_client.return_value.__aenter__.return_value.request = mock_request

            customers = await client.get_customers()

        assert customers == []
        assert mock_request.await_count == 1

    @pytest.mark.asyncio
    async def test_fetch_category_customers(self, client: QuickBooksClient) -> None:
        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.request = AsyncMock(
                return_value=create_http_response(
                    query_response("Customer", [{"Id": "7", "DisplayName": "Ada"}])
                )
            )

            customers = await client.fetch_category(SyncCategory.CUSTOMERS)

        assert len(customers) == 1
        assert isinstance(customers[0], QuickBooksCustomer)
        assert customers[0].DisplayName == "Ada"

    @pytest.mark.asyncio
    async def test_sync_product_posts_item(self, client: QuickBooksClient) -> None:
        # Arrange
        product = QuickBooksProduct(Name="Coffee", UnitPrice=3.5)

        # Act
        with patch("httpx.AsyncClient") as mock_client:
            mock_request = AsyncMock(
                return_value=create_http_response(
                    {"Item": {"Id": "11", "SyncToken": "0", "Name": "Coffee"}}
                )
            )
            mock_client.return_value.__aenter__.return_value.request = mock_request

            result = await client.sync_product(product)

        # Assert
        assert result.Id == "11"
        assert mock_request.call_args.args == ("POST", f"{BASE_URL}/item")
        assert mock_request.call_args.kwargs["json"] == {
            "Name": "Coffee",
            "UnitPrice": 3.5,
        }

    @pytest.mark.asyncio
    async def test_create_invoice_without_entity_in_response(
        self, client: QuickBooksClient
    ) -> None:
        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.request = AsyncMock(
                return_value=create_http_response({"Fault": {"Error": []}})
            )

            with pytest.raises(ApiError) as exc_info:
                await client.create_invoice({"Line": []})

        assert "No Invoice returned" in str(exc_info.value)
