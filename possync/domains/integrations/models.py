"""Integration configuration models shared by the registry, service and routes."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    Discriminator,
    Field,
    Tag,
    model_validator,
)
from pydantic.alias_generators import to_snake

from .base.models import CamelModel, SyncResult


class ProviderType(str, Enum):
    """Supported integration providers."""

    QUICKBOOKS = "quickbooks"
    SHOPIFY = "shopify"


class SyncCategory(str, Enum):
    """Classes of domain data that can be synchronised independently."""

    PRODUCTS = "products"
    CUSTOMERS = "customers"
    ORDERS = "orders"
    INVENTORY = "inventory"
    INVOICES = "invoices"
    PAYMENTS = "payments"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class IntegrationState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECT_FAILED = "connect_failed"
    CONNECTED_IDLE = "connected_idle"
    CONNECTED_SYNCING = "connected_syncing"


# Credentials


class QuickBooksCredentials(CamelModel):
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    realm_id: Optional[str] = None
    token_expires_at: Optional[datetime] = None


class ShopifyCredentials(CamelModel):
    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    access_token: Optional[str] = None
    shop_domain: Optional[str] = None
    # Stored for the webhook receiver; the sync engine never reads it
    webhook_secret: Optional[str] = None


# Sync category toggles; field order is the order categories are synced in


class QuickBooksSyncOptions(CamelModel):
    products: bool = True
    customers: bool = True
    invoices: bool = False
    payments: bool = False


class ShopifySyncOptions(CamelModel):
    products: bool = True
    orders: bool = True
    customers: bool = True
    inventory: bool = True


class BaseProviderSettings(CamelModel):
    """Fields and helpers common to every provider settings variant."""

    REQUIRED_CREDENTIALS: ClassVar[tuple[str, ...]] = ()
    ACCOUNT_FIELD: ClassVar[str] = ""

    auto_sync: bool = False
    sync_interval: int = Field(60, ge=1, description="Minutes between auto syncs")

    def enabled_categories(self) -> List[SyncCategory]:
        """Enabled sync categories, in declared order."""
        sync = getattr(self, "sync")
        return [
            SyncCategory(name)
            for name in type(sync).model_fields
            if getattr(sync, name)
        ]

    def has_required_credentials(self) -> bool:
        credentials = getattr(self, "credentials")
        return all(getattr(credentials, name) for name in self.REQUIRED_CREDENTIALS)

    def missing_credentials(self) -> List[str]:
        credentials = getattr(self, "credentials")
        return [
            name for name in self.REQUIRED_CREDENTIALS if not getattr(credentials, name)
        ]

    @property
    def account_id(self) -> Optional[str]:
        return getattr(getattr(self, "credentials"), self.ACCOUNT_FIELD)

    def without_credentials(self):
        """Copy with every credential field cleared and preferences kept."""
        credentials = getattr(self, "credentials")
        return self.model_copy(update={"credentials": type(credentials)()})


class QuickBooksSettings(BaseProviderSettings):
    REQUIRED_CREDENTIALS: ClassVar[tuple[str, ...]] = ("access_token", "realm_id")
    ACCOUNT_FIELD: ClassVar[str] = "realm_id"

    provider_type: Literal["quickbooks"] = "quickbooks"
    credentials: QuickBooksCredentials = Field(default_factory=QuickBooksCredentials)
    environment: Literal["sandbox", "production"] = "sandbox"
    sync: QuickBooksSyncOptions = Field(default_factory=QuickBooksSyncOptions)


class ShopifySettings(BaseProviderSettings):
    REQUIRED_CREDENTIALS: ClassVar[tuple[str, ...]] = ("access_token", "shop_domain")
    ACCOUNT_FIELD: ClassVar[str] = "shop_domain"

    provider_type: Literal["shopify"] = "shopify"
    credentials: ShopifyCredentials = Field(default_factory=ShopifyCredentials)
    sync: ShopifySyncOptions = Field(default_factory=ShopifySyncOptions)


def _settings_tag(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        tag = value.get("providerType", value.get("provider_type"))
    else:
        tag = getattr(value, "provider_type", None)
    return tag.value if isinstance(tag, Enum) else tag


ProviderSettings = Annotated[
    Union[
        Annotated[QuickBooksSettings, Tag(ProviderType.QUICKBOOKS.value)],
        Annotated[ShopifySettings, Tag(ProviderType.SHOPIFY.value)],
    ],
    Discriminator(_settings_tag),
]


def _snake_keys(value: Any) -> Any:
    if isinstance(value, BaseModel):
        value = value.model_dump(exclude_unset=True)
    if isinstance(value, dict):
        return {to_snake(key): _snake_keys(item) for key, item in value.items()}
    return value


def deep_merge(base: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    """Merge nested dicts; values in ``updates`` win."""
    merged = dict(base)
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class IntegrationConfig(CamelModel):
    """Persisted configuration and state of one provider integration."""

    id: str = Field(..., description="Stable provider key")
    display_name: str = Field(..., description="Human-readable provider name")
    provider_type: ProviderType
    enabled: bool = False
    connected: bool = False
    connected_at: Optional[datetime] = None
    last_sync: Optional[datetime] = None
    last_sync_result: Optional[SyncResult] = None
    settings: ProviderSettings

    @model_validator(mode="after")
    def _check_invariants(self) -> "IntegrationConfig":
        if self.settings.provider_type != self.provider_type.value:
            raise ValueError(
                f"Settings for '{self.settings.provider_type}' cannot be attached "
                f"to a '{self.provider_type.value}' integration"
            )
        # Stored state that breaks the connection invariants is demoted
        if self.connected and not self.settings.has_required_credentials():
            self.connected = False
            self.connected_at = None
        if self.enabled and not self.connected:
            self.enabled = False
        return self

    def merged(self, partial: Dict[str, Any]) -> "IntegrationConfig":
        """
        Validated copy with ``partial`` deep-merged over this config.

        Keys may be camelCase or snake_case. The id and provider type of an
        integration never change, so those keys are ignored.
        """
        updates = _snake_keys(partial)
        updates.pop("id", None)
        updates.pop("provider_type", None)
        return IntegrationConfig.model_validate(
            deep_merge(self.model_dump(), updates)
        )


def default_integrations() -> List[IntegrationConfig]:
    """Seed configuration, one entry per supported provider."""
    return [
        IntegrationConfig(
            id=ProviderType.QUICKBOOKS.value,
            display_name="QuickBooks",
            provider_type=ProviderType.QUICKBOOKS,
            settings=QuickBooksSettings(),
        ),
        IntegrationConfig(
            id=ProviderType.SHOPIFY.value,
            display_name="Shopify",
            provider_type=ProviderType.SHOPIFY,
            settings=ShopifySettings(),
        ),
    ]


# API request / response models


class ConnectRequest(BaseModel):
    """Credentials and settings submitted when connecting an integration."""

    credentials: Dict[str, Any] = Field(
        default_factory=dict, description="Provider credential fields"
    )
    settings: Dict[str, Any] = Field(
        default_factory=dict, description="Optional settings overrides"
    )


class ToggleRequest(BaseModel):
    enabled: bool = Field(..., description="Whether the integration is enabled")


class SyncResponse(CamelModel):
    """Sync result plus the status shown to the user."""

    status: Literal["completed", "completed_with_errors", "failed"]
    result: SyncResult

    @classmethod
    def from_result(cls, result: SyncResult) -> "SyncResponse":
        return cls(status=result.status, result=result)


class AuthorizationUrlResponse(CamelModel):
    """Response model for OAuth authorization URL generation."""

    auth_url: str = Field(..., description="Provider OAuth authorization URL")
    expires_at: datetime = Field(..., description="When the state token expires")
    integration_id: str = Field(..., description="Integration ID")


class StateTokenPayload(BaseModel):
    """JWT payload for OAuth state token."""

    integration_id: str = Field(..., description="Integration ID")
    redirect_uri: str = Field(..., description="Redirect URI used for the request")
    shop_domain: Optional[str] = Field(None, description="Shopify shop domain")
    csrf_token: str = Field(..., description="CSRF protection token")
    issued_at: datetime = Field(..., description="Token issue time")
    expires_at: datetime = Field(..., description="Token expiry time")
