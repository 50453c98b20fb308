from datetime import timedelta
from typing import Any, Dict, List, Optional, Union

from possync.core.settings import settings
from possync.shared.exceptions import ConfigurationError

from ..base.client import BaseProviderClient, CategoryFetcher, QueryParams
from ..base.models import TokenResponse, utc_now
from ..base.pagination import Page, PagedSequence
from ..models import QuickBooksCredentials, QuickBooksSettings, SyncCategory
from .auth import QuickBooksTokenManager
from .types import (
    QuickBooksCompanyInfo,
    QuickBooksCustomer,
    QuickBooksEntity,
    QuickBooksInvoice,
    QuickBooksPayment,
    QuickBooksProduct,
)

QB_API_BASE_SANDBOX = "https://sandbox-quickbooks.api.intuit.com"
QB_API_BASE_PRODUCTION = "https://quickbooks.api.intuit.com"

# Entities readable through the query endpoint
QB_QUERY_ENTITIES = ("Item", "Customer", "Invoice", "Payment")


class QuickBooksClient(BaseProviderClient):
    """QuickBooks Online accounting API client scoped to one company realm."""

    provider_name = "QuickBooks"

    provider_settings: QuickBooksSettings
    credentials: QuickBooksCredentials

    def __init__(
        self,
        provider_settings: QuickBooksSettings,
        token_manager: Optional[QuickBooksTokenManager] = None,
        **kwargs: Any,
    ):
        super().__init__(
            provider_settings,
            token_manager or QuickBooksTokenManager(provider_settings.credentials),
            **kwargs,
        )
        self.api_base = (
            QB_API_BASE_PRODUCTION
            if provider_settings.environment == "production"
            else QB_API_BASE_SANDBOX
        )

    @property
    def base_url(self) -> str:
        return f"{self.api_base}/v3/company/{self.credentials.realm_id}"

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.credentials.access_token}"}

    def _default_params(self) -> QueryParams:
        return {"minorversion": settings.QUICKBOOKS_MINOR_VERSION}

    def _apply_tokens(self, token_response: TokenResponse) -> None:
        super()._apply_tokens(token_response)
        if token_response.expires_in:
            self.credentials.token_expires_at = utc_now() + timedelta(
                seconds=token_response.expires_in
            )

    def fetch_paged(self, resource_kind: str) -> PagedSequence:
        """
        Page through a query-API entity using STARTPOSITION / MAXRESULTS.

        The query API has no cursor, so paging stops on a short page or at
        ``max_pages``.
        """
        if resource_kind not in QB_QUERY_ENTITIES:
            raise ConfigurationError(
                f"Unsupported QuickBooks resource: {resource_kind}"
            )

        async def fetch_page(page_number: int, cursor: Optional[str]) -> Page:
            start_position = (page_number - 1) * self.page_size + 1
            query = (
                f"SELECT * FROM {resource_kind} "
                f"STARTPOSITION {start_position} MAXRESULTS {self.page_size}"
            )
            response = await self.make_request("/query", params={"query": query})
            query_response = response.get("QueryResponse") or {}
            return Page(items=query_response.get(resource_kind, []))

        return PagedSequence(
            fetch_page,
            page_size=self.page_size,
            max_pages=self.max_pages,
            name=f"QuickBooks {resource_kind}",
        )

    def category_fetchers(self) -> Dict[SyncCategory, CategoryFetcher]:
        return {
            SyncCategory.PRODUCTS: self.get_products,
            SyncCategory.CUSTOMERS: self.get_customers,
            SyncCategory.INVOICES: self.get_invoices,
            SyncCategory.PAYMENTS: self.get_payments,
        }

    async def verify_connection(self) -> None:
        await self.get_company_info()

    async def get_company_info(self) -> QuickBooksCompanyInfo:
        response = await self.make_request(
            f"/companyinfo/{self.credentials.realm_id}"
        )
        return QuickBooksCompanyInfo.model_validate(
            self._unwrap(response, "CompanyInfo")
        )

    async def get_products(self) -> List[QuickBooksProduct]:
        """Get products/items from QuickBooks."""
        items = await self.fetch_paged("Item").collect()
        return [QuickBooksProduct.model_validate(item) for item in items]

    async def sync_product(
        self, product: Union[QuickBooksProduct, Dict[str, Any]]
    ) -> QuickBooksProduct:
        """Create or update an item; updates require Id and SyncToken."""
        response = await self._post_entity("/item", product, "Item")
        return QuickBooksProduct.model_validate(response)

    async def get_customers(self) -> List[QuickBooksCustomer]:
        customers = await self.fetch_paged("Customer").collect()
        return [QuickBooksCustomer.model_validate(c) for c in customers]

    async def sync_customer(
        self, customer: Union[QuickBooksCustomer, Dict[str, Any]]
    ) -> QuickBooksCustomer:
        response = await self._post_entity("/customer", customer, "Customer")
        return QuickBooksCustomer.model_validate(response)

    async def get_invoices(self) -> List[QuickBooksInvoice]:
        invoices = await self.fetch_paged("Invoice").collect()
        return [QuickBooksInvoice.model_validate(i) for i in invoices]

    async def create_invoice(
        self, invoice: Union[QuickBooksInvoice, Dict[str, Any]]
    ) -> QuickBooksInvoice:
        response = await self._post_entity("/invoice", invoice, "Invoice")
        return QuickBooksInvoice.model_validate(response)

    async def get_payments(self) -> List[QuickBooksPayment]:
        payments = await self.fetch_paged("Payment").collect()
        return [QuickBooksPayment.model_validate(p) for p in payments]

    async def _post_entity(
        self,
        endpoint: str,
        entity: Union[QuickBooksEntity, Dict[str, Any]],
        response_key: str,
    ) -> Dict[str, Any]:
        body = (
            entity
            if isinstance(entity, dict)
            else entity.model_dump(mode="json", exclude_none=True)
        )
        response = await self.make_request(endpoint, method="POST", body=body)
        return self._unwrap(response, response_key)
