from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    JWT_SECRET: str | None = None
    LOG_LEVEL: str = "INFO"

    # Application URLs
    FRONTEND_URL: str | None = None

    # Persisted integration state
    INTEGRATIONS_STORE_PATH: str = "data/integrations.json"

    # QuickBooks OAuth configuration
    QUICKBOOKS_CLIENT_ID: str | None = None
    QUICKBOOKS_CLIENT_SECRET: str | None = None
    QUICKBOOKS_REDIRECT_URI: str | None = None
    QUICKBOOKS_SCOPES: str = "com.intuit.quickbooks.accounting"
    QUICKBOOKS_MINOR_VERSION: int = 70

    # Shopify OAuth configuration
    SHOPIFY_API_KEY: str | None = None
    SHOPIFY_API_SECRET: str | None = None
    SHOPIFY_REDIRECT_URI: str | None = None
    SHOPIFY_SCOPES: str = (
        "read_products,write_products,read_orders,write_orders,"
        "read_customers,read_inventory"
    )
    SHOPIFY_API_VERSION: str = "2024-01"

    # Sync behaviour
    HTTP_TIMEOUT_SECONDS: float = 30.0
    SYNC_BUDGET_SECONDS: float = 300.0  # 5 minutes
    PAGE_SIZE: int = 250
    MAX_PAGES: int = 10

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    @property
    def quickbooks_scopes(self) -> list[str]:
        return self.QUICKBOOKS_SCOPES.split()

    @property
    def shopify_scopes(self) -> list[str]:
        return [s.strip() for s in self.SHOPIFY_SCOPES.split(",") if s.strip()]


settings = Settings()
