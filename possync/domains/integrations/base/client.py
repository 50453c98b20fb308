import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from possync.core.settings import settings
from possync.shared.exceptions import (
    ApiError,
    AuthorizationError,
    ConfigurationError,
    ConnectivityError,
)

from ..models import BaseProviderSettings, SyncCategory
from .models import TokenResponse
from .pagination import PagedSequence
from .token_manager import BaseTokenManager

logger = logging.getLogger(__name__)

TokensRefreshedCallback = Callable[[TokenResponse], Awaitable[None]]
CategoryFetcher = Callable[[], Awaitable[List[Any]]]

JsonBody = Dict[str, Any]
QueryParams = Dict[str, str | int]


class BaseProviderClient(ABC):
    """
    Authenticated access to one provider's REST API.

    Requests carry the stored access token. An expired-auth response (401) is
    handled by refreshing once and retrying once when the provider supports
    refresh; any failure after that propagates as ApiError.
    """

    provider_name: str = ""

    def __init__(
        self,
        provider_settings: BaseProviderSettings,
        token_manager: BaseTokenManager,
        on_tokens_refreshed: Optional[TokensRefreshedCallback] = None,
        timeout: Optional[float] = None,
        page_size: Optional[int] = None,
        max_pages: Optional[int] = None,
    ):
        self.provider_settings = provider_settings
        self.credentials = getattr(provider_settings, "credentials")
        self.token_manager = token_manager
        self.on_tokens_refreshed = on_tokens_refreshed
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS
        self.page_size = page_size or settings.PAGE_SIZE
        self.max_pages = max_pages or settings.MAX_PAGES

    @property
    @abstractmethod
    def base_url(self) -> str:
        """Root URL that relative endpoints are appended to."""
        ...

    @abstractmethod
    def _auth_headers(self) -> Dict[str, str]:
        """Headers carrying the access credential."""
        ...

    @abstractmethod
    def fetch_paged(self, resource_kind: str) -> PagedSequence:
        """Lazy, restartable sequence over a list endpoint."""
        ...

    @abstractmethod
    def category_fetchers(self) -> Dict[SyncCategory, CategoryFetcher]:
        """Fetch operation for each sync category this provider supports."""
        ...

    @abstractmethod
    async def verify_connection(self) -> None:
        """Cheap read-only request; raises when the connection does not work."""
        ...

    def _default_params(self) -> QueryParams:
        return {}

    def _not_connected_message(self) -> str:
        return (
            f"{self.provider_name} is not connected. "
            "Please connect your account first."
        )

    async def make_request(
        self,
        endpoint: str,
        method: str = "GET",
        body: Optional[JsonBody] = None,
        params: Optional[QueryParams] = None,
    ) -> Any:
        """
        Make an authenticated request and return the decoded JSON body.

        Args:
            endpoint: Path relative to ``base_url`` or an absolute URL
            method: HTTP method
            body: JSON body
            params: Query parameters

        Returns:
            Decoded JSON response ({} for an empty body)

        Raises:
            ConfigurationError: If the integration has no connection credentials
            ApiError: For non-2xx responses, including a 401 after one retry
            ConnectivityError: For transport failures
        """
        response = await self._request(endpoint, method, body, params)
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            raise ApiError(
                f"{self.provider_name} returned a response that is not JSON",
                provider_status=response.status_code,
                response_text=response.text,
            )

    async def _request(
        self,
        endpoint: str,
        method: str = "GET",
        body: Optional[JsonBody] = None,
        params: Optional[QueryParams] = None,
    ) -> httpx.Response:
        if not self.provider_settings.has_required_credentials():
            raise ConfigurationError(self._not_connected_message())

        url = self._build_url(endpoint)
        request_params = {**self._default_params(), **(params or {})}

        response = await self._send(method, url, body, request_params)

        if response.status_code == 401 and self.token_manager.supports_refresh:
            logger.info(
                f"{self.provider_name} access token rejected, refreshing once"
            )
            await self._refresh_tokens()
            response = await self._send(method, url, body, request_params)

        if not response.is_success:
            raise ApiError(
                f"{self.provider_name} API error: {response.text}",
                provider_status=response.status_code,
                response_text=response.text,
            )

        return response

    async def _send(
        self,
        method: str,
        url: str,
        body: Optional[JsonBody],
        params: QueryParams,
    ) -> httpx.Response:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            **self._auth_headers(),
        }

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                return await client.request(
                    method,
                    url,
                    headers=headers,
                    params=params or None,
                    json=body,
                )
            except httpx.RequestError as e:
                raise ConnectivityError(
                    f"{self.provider_name} API request error: {str(e)}"
                )

    async def _refresh_tokens(self) -> None:
        try:
            token_response = await self.token_manager.refresh_token()
        except (ConfigurationError, AuthorizationError, ConnectivityError) as e:
            raise ApiError(
                f"{self.provider_name} API error: token refresh failed: {e.message}",
                provider_status=401,
            ) from e

        self._apply_tokens(token_response)

        if self.on_tokens_refreshed:
            await self.on_tokens_refreshed(token_response)

    def _apply_tokens(self, token_response: TokenResponse) -> None:
        self.credentials.access_token = token_response.access_token
        if token_response.refresh_token:
            self.credentials.refresh_token = token_response.refresh_token

    def _unwrap(self, response: Any, key: str) -> Any:
        if not isinstance(response, dict) or key not in response:
            raise ApiError(
                f"No {key} returned from {self.provider_name} API",
                response_text=str(response),
            )
        return response[key]

    def _build_url(self, endpoint: str) -> str:
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        return f"{self.base_url}{endpoint}"

    async def fetch_category(self, category: SyncCategory) -> List[Any]:
        """Fetch every item of one sync category."""
        fetcher = self.category_fetchers().get(category)
        if fetcher is None:
            raise ConfigurationError(
                f"{self.provider_name} does not support syncing {category.value}"
            )
        return await fetcher()

    async def test_connection(self) -> bool:
        """Check the provider is reachable. Never raises; failures give False."""
        try:
            await self.verify_connection()
            return True
        except Exception as e:
            logger.warning(f"{self.provider_name} connection test failed: {e}")
            return False
