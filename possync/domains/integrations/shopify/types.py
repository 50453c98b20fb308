"""Shopify Admin REST API type definitions."""

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

ShopifyId = Union[int, str]


class ShopifyResource(BaseModel):
    """Base for Shopify resources; unknown fields are kept as returned."""

    model_config = ConfigDict(extra="allow")

    id: Optional[ShopifyId] = Field(None, description="Shopify resource identifier")


class ShopifyVariant(ShopifyResource):
    price: Optional[str] = Field(None, description="Variant price")
    inventory_quantity: Optional[int] = Field(None, description="Stock on hand")
    sku: Optional[str] = Field(None, description="Stock keeping unit")
    inventory_item_id: Optional[ShopifyId] = None


class ShopifyProduct(ShopifyResource):
    title: str = Field(..., description="Product title")
    variants: List[ShopifyVariant] = Field(default_factory=list)
    vendor: Optional[str] = None
    product_type: Optional[str] = None


class ShopifyCustomer(ShopifyResource):
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class ShopifyLineItem(ShopifyResource):
    title: str = Field(..., description="Line item title")
    quantity: int = Field(..., description="Quantity ordered")
    price: str = Field(..., description="Unit price")


class ShopifyOrder(ShopifyResource):
    order_number: Optional[int] = None
    total_price: Optional[str] = None
    customer: Optional[ShopifyCustomer] = None
    line_items: List[ShopifyLineItem] = Field(default_factory=list)
    created_at: Optional[str] = None
    financial_status: Optional[str] = None


class ShopifyLocation(ShopifyResource):
    name: Optional[str] = None
    active: Optional[bool] = None


class ShopifyInventoryLevel(BaseModel):
    model_config = ConfigDict(extra="allow")

    inventory_item_id: ShopifyId = Field(..., description="Inventory item ID")
    location_id: ShopifyId = Field(..., description="Location ID")
    available: Optional[int] = Field(None, description="Available quantity")


class ShopifyShop(ShopifyResource):
    name: Optional[str] = None
    domain: Optional[str] = None
    myshopify_domain: Optional[str] = None
