from typing import Any, Dict, List, Optional, Sequence, Union

from possync.core.settings import settings
from possync.shared.exceptions import ConfigurationError

from ..base.client import BaseProviderClient, CategoryFetcher, QueryParams
from ..base.pagination import Page, PagedSequence
from ..models import ShopifyCredentials, ShopifySettings, SyncCategory
from .auth import ShopifyTokenManager
from .types import (
    ShopifyCustomer,
    ShopifyId,
    ShopifyInventoryLevel,
    ShopifyLocation,
    ShopifyOrder,
    ShopifyProduct,
    ShopifyShop,
)

# List endpoints that support limit + Link header pagination
SHOPIFY_PAGED_RESOURCES = ("products", "orders", "customers", "inventory_levels")


class ShopifyClient(BaseProviderClient):
    """Shopify Admin REST API client scoped to one shop domain."""

    provider_name = "Shopify"

    provider_settings: ShopifySettings
    credentials: ShopifyCredentials

    def __init__(
        self,
        provider_settings: ShopifySettings,
        token_manager: Optional[ShopifyTokenManager] = None,
        **kwargs: Any,
    ):
        super().__init__(
            provider_settings,
            token_manager or ShopifyTokenManager(provider_settings.credentials),
            **kwargs,
        )
        self.api_version = settings.SHOPIFY_API_VERSION

    @property
    def base_url(self) -> str:
        return f"https://{self.credentials.shop_domain}/admin/api/{self.api_version}"

    def _auth_headers(self) -> Dict[str, str]:
        return {"X-Shopify-Access-Token": self.credentials.access_token or ""}

    def _not_connected_message(self) -> str:
        return "Shopify is not connected. Please connect your store first."

    def fetch_paged(
        self, resource_kind: str, params: Optional[QueryParams] = None
    ) -> PagedSequence:
        """
        Page through a list endpoint.

        Follows the ``rel="next"`` URL from the Link header when Shopify sends
        one; responses without a Link header fall back to a page counter.
        """
        if resource_kind not in SHOPIFY_PAGED_RESOURCES:
            raise ConfigurationError(f"Unsupported Shopify resource: {resource_kind}")

        async def fetch_page(page_number: int, cursor: Optional[str]) -> Page:
            if cursor:
                # The next URL already carries limit and page_info
                response = await self._request(cursor)
            else:
                page_params: QueryParams = {"limit": self.page_size, **(params or {})}
                if page_number > 1:
                    page_params["page"] = page_number
                response = await self._request(
                    f"/{resource_kind}.json", params=page_params
                )

            data = response.json() if response.content else {}
            return Page(
                items=data.get(resource_kind, []),
                next_cursor=response.links.get("next", {}).get("url"),
                cursor_aware="link" in response.headers,
            )

        return PagedSequence(
            fetch_page,
            page_size=self.page_size,
            max_pages=self.max_pages,
            name=f"Shopify {resource_kind}",
        )

    def category_fetchers(self) -> Dict[SyncCategory, CategoryFetcher]:
        return {
            SyncCategory.PRODUCTS: self.get_products,
            SyncCategory.ORDERS: self.get_orders,
            SyncCategory.CUSTOMERS: self.get_customers,
            SyncCategory.INVENTORY: self.get_inventory_levels,
        }

    async def verify_connection(self) -> None:
        await self.get_shop()

    async def get_shop(self) -> ShopifyShop:
        response = await self.make_request("/shop.json")
        return ShopifyShop.model_validate(self._unwrap(response, "shop"))

    async def get_products(self) -> List[ShopifyProduct]:
        products = await self.fetch_paged("products").collect()
        return [ShopifyProduct.model_validate(p) for p in products]

    async def sync_product(
        self, product: Union[ShopifyProduct, Dict[str, Any]]
    ) -> ShopifyProduct:
        """Update the product when it has an id, create it otherwise."""
        body = (
            product
            if isinstance(product, dict)
            else product.model_dump(mode="json", exclude_none=True)
        )

        if body.get("id"):
            response = await self.make_request(
                f"/products/{body['id']}.json", method="PUT", body={"product": body}
            )
        else:
            response = await self.make_request(
                "/products.json", method="POST", body={"product": body}
            )

        return ShopifyProduct.model_validate(self._unwrap(response, "product"))

    async def get_orders(self, status: str = "any") -> List[ShopifyOrder]:
        orders = await self.fetch_paged("orders", params={"status": status}).collect()
        return [ShopifyOrder.model_validate(o) for o in orders]

    async def create_order(
        self, order: Union[ShopifyOrder, Dict[str, Any]]
    ) -> ShopifyOrder:
        body = (
            order
            if isinstance(order, dict)
            else order.model_dump(mode="json", exclude_none=True)
        )
        response = await self.make_request(
            "/orders.json", method="POST", body={"order": body}
        )
        return ShopifyOrder.model_validate(self._unwrap(response, "order"))

    async def get_customers(self) -> List[ShopifyCustomer]:
        customers = await self.fetch_paged("customers").collect()
        return [ShopifyCustomer.model_validate(c) for c in customers]

    async def get_locations(self) -> List[ShopifyLocation]:
        response = await self.make_request("/locations.json")
        locations = response.get("locations", [])
        return [ShopifyLocation.model_validate(loc) for loc in locations]

    async def get_inventory_levels(
        self, location_ids: Optional[Sequence[ShopifyId]] = None
    ) -> List[ShopifyInventoryLevel]:
        """
        Get inventory levels for the given locations.

        Shopify requires a location or inventory item filter, so when no
        locations are given every location of the shop is used.
        """
        if location_ids is None:
            location_ids = [loc.id for loc in await self.get_locations() if loc.id]
        if not location_ids:
            return []

        levels = await self.fetch_paged(
            "inventory_levels",
            params={"location_ids": ",".join(str(i) for i in location_ids)},
        ).collect()
        return [ShopifyInventoryLevel.model_validate(level) for level in levels]

    async def update_inventory_level(
        self, inventory_item_id: ShopifyId, location_id: ShopifyId, quantity: int
    ) -> ShopifyInventoryLevel:
        response = await self.make_request(
            "/inventory_levels/set.json",
            method="POST",
            body={
                "location_id": location_id,
                "inventory_item_id": inventory_item_id,
                "available": quantity,
            },
        )
        return ShopifyInventoryLevel.model_validate(
            self._unwrap(response, "inventory_level")
        )
