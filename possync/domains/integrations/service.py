import logging
import secrets
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Any, AsyncIterator, Dict, List, Optional

import jwt
from pydantic import ValidationError

from possync.core.settings import settings
from possync.shared.exceptions import (
    AuthorizationError,
    ConfigurationError,
    IntegrationError,
    PartialSyncError,
)

from .authorization import build_authorization_url
from .base.client import TokensRefreshedCallback
from .base.factory import IntegrationFactory
from .base.models import SyncResult, TokenResponse, utc_now
from .base.sync_orchestrator import SyncOrchestrator
from .models import (
    AuthorizationUrlResponse,
    IntegrationConfig,
    IntegrationState,
    ProviderType,
    StateTokenPayload,
)
from .registry import IntegrationRegistry

logger = logging.getLogger(__name__)

STATE_TOKEN_TTL = timedelta(minutes=30)


def credentials_from_token(
    provider_type: ProviderType, token: TokenResponse
) -> Dict[str, Any]:
    """Credential fields to store for a token endpoint response."""
    credentials: Dict[str, Any] = {"access_token": token.access_token}

    if provider_type == ProviderType.QUICKBOOKS:
        if token.refresh_token:
            credentials["refresh_token"] = token.refresh_token
        if token.account_id:
            credentials["realm_id"] = token.account_id
        if token.expires_in:
            credentials["token_expires_at"] = utc_now() + timedelta(
                seconds=token.expires_in
            )
    elif token.account_id:
        credentials["shop_domain"] = token.account_id

    return credentials


class IntegrationService:
    """Connects, authorizes, syncs and disconnects provider integrations."""

    def __init__(
        self,
        registry: IntegrationRegistry,
        factory: Optional[IntegrationFactory] = None,
        orchestrator: Optional[SyncOrchestrator] = None,
    ):
        self.registry = registry
        self.factory = factory or IntegrationFactory()
        self.orchestrator = orchestrator or SyncOrchestrator()

    def list(self) -> List[IntegrationConfig]:
        return self.registry.list()

    def get(self, integration_id: str) -> IntegrationConfig:
        return self.registry.get(integration_id)

    def state(self, integration_id: str) -> IntegrationState:
        return self.registry.state(integration_id)

    async def connect(
        self,
        integration_id: str,
        credentials: Optional[Dict[str, Any]] = None,
        settings_overrides: Optional[Dict[str, Any]] = None,
    ) -> IntegrationConfig:
        """
        Connect an integration with credentials the user already holds.

        Args:
            integration_id: Provider key of the integration
            credentials: Credential fields, camelCase or snake_case
            settings_overrides: Optional settings to merge, e.g. sync toggles

        Returns:
            The connected IntegrationConfig

        Raises:
            ConfigurationError: If a required credential is missing
            IntegrationError: If the provider rejects the credentials; the
                message reads "Failed to connect <name>: <cause>"
        """
        config = self.registry.get(integration_id)
        async with self._connect_attempt(config):
            return await self._establish(
                config, credentials or {}, settings_overrides or {}
            )

    async def start_authorization(
        self,
        integration_id: str,
        redirect_uri: Optional[str] = None,
        shop_domain: Optional[str] = None,
        scopes: Optional[List[str]] = None,
    ) -> AuthorizationUrlResponse:
        """
        Build the provider authorization URL for the OAuth redirect flow.

        The URL carries a signed state token that expires after 30 minutes
        and is checked again by ``complete_authorization``.

        Raises:
            ConfigurationError: If the client ID, redirect URI or (Shopify)
                shop domain is not configured
        """
        config = self.registry.get(integration_id)
        token_manager = self.factory.get_token_manager(config)

        redirect_uri = redirect_uri or self._default_redirect_uri(config.provider_type)
        if not redirect_uri:
            raise ConfigurationError(
                f"{config.display_name} redirect URI is not configured"
            )

        if config.provider_type == ProviderType.SHOPIFY:
            shop_domain = shop_domain or config.settings.account_id
        else:
            shop_domain = None

        expires_at = utc_now() + STATE_TOKEN_TTL
        state = self._generate_state_token(
            integration_id, redirect_uri, shop_domain, expires_at
        )

        auth_url = build_authorization_url(
            config.provider_type,
            token_manager.client_id or "",
            redirect_uri,
            scopes or self._default_scopes(config.provider_type),
            shop_domain=shop_domain,
            state=state,
        )

        logger.info(f"Started authorization for {integration_id}")
        return AuthorizationUrlResponse(
            auth_url=auth_url,
            expires_at=expires_at,
            integration_id=integration_id,
        )

    async def complete_authorization(
        self,
        integration_id: str,
        code: str,
        state: str,
        realm_id: Optional[str] = None,
        shop_domain: Optional[str] = None,
    ) -> IntegrationConfig:
        """
        Finish the OAuth redirect flow and connect the integration.

        Args:
            integration_id: Provider key of the integration
            code: Authorization code from the callback
            state: State token issued by ``start_authorization``
            realm_id: QuickBooks company ID from the callback
            shop_domain: Shopify shop domain from the callback

        Raises:
            AuthorizationError: If the state token is invalid or expired, or
                the provider rejects the code
        """
        if not code or not state:
            raise AuthorizationError("Missing required OAuth parameters")

        payload = self._validate_state_token(state)
        if payload.integration_id != integration_id:
            raise AuthorizationError("OAuth state does not belong to this integration")
        if shop_domain and payload.shop_domain and shop_domain != payload.shop_domain:
            raise AuthorizationError("Shop domain does not match the OAuth request")

        config = self.registry.get(integration_id)
        async with self._connect_attempt(config):
            credentials: Dict[str, Any] = {}
            if config.provider_type == ProviderType.SHOPIFY:
                credentials["shop_domain"] = shop_domain or payload.shop_domain

            candidate = self._candidate(
                config, {"settings": {"credentials": credentials}}
            )
            token_manager = self.factory.get_token_manager(candidate)

            if config.provider_type == ProviderType.QUICKBOOKS:
                token = await token_manager.exchange_code_for_token(
                    code, payload.redirect_uri, realm_id=realm_id
                )
            else:
                token = await token_manager.exchange_code_for_token(
                    code, payload.redirect_uri
                )

            credentials.update(credentials_from_token(config.provider_type, token))
            return await self._establish(config, credentials, {})

    async def sync(
        self, integration_id: str, raise_on_errors: bool = False
    ) -> SyncResult:
        """
        Run a sync of every enabled category and record the result.

        Args:
            integration_id: Provider key of the integration
            raise_on_errors: Raise PartialSyncError instead of returning a
                result that has errors

        Raises:
            IntegrationStateError: If the integration is not connected
            SyncInProgressError: If a sync of the integration is running
        """
        async with self.registry.sync_guard(integration_id) as config:
            client = self.factory.get_client(
                config, on_tokens_refreshed=self._token_persister(config)
            )
            result = await self.orchestrator.sync_data(config, client)
            await self.registry.record_sync(integration_id, result)

        if raise_on_errors and result.errors:
            raise PartialSyncError.from_result(result)
        return result

    async def disconnect(self, integration_id: str) -> IntegrationConfig:
        """
        Disconnect an integration, clearing its credentials.

        The provider grant is revoked afterwards on a best-effort basis.
        """
        config = self.registry.get(integration_id)
        disconnected = await self.registry.disconnect(integration_id)

        if config.connected:
            try:
                await self.factory.get_token_manager(config).revoke_token()
            except Exception as e:
                logger.warning(
                    f"Failed to revoke {config.display_name} authorization: {e}"
                )

        logger.info(f"Disconnected {integration_id}")
        return disconnected

    async def toggle(self, integration_id: str, enabled: bool) -> IntegrationConfig:
        return await self.registry.toggle(integration_id, enabled)

    @asynccontextmanager
    async def _connect_attempt(self, config: IntegrationConfig) -> AsyncIterator[None]:
        self.registry.mark_connecting(config.id)
        try:
            yield
        except IntegrationError as e:
            self.registry.mark_connect_failed(config.id, e.message)
            logger.warning(f"Failed to connect {config.id}: {e.message}")
            raise e.with_prefix(f"Failed to connect {config.display_name}") from e
        except Exception as e:
            self.registry.mark_connect_failed(config.id, str(e))
            logger.exception(f"Unexpected error connecting {config.id}")
            raise IntegrationError(
                f"Failed to connect {config.display_name}: {e}"
            ) from e

    async def _establish(
        self,
        config: IntegrationConfig,
        credentials: Dict[str, Any],
        settings_overrides: Dict[str, Any],
    ) -> IntegrationConfig:
        candidate = self._candidate(
            config, {"settings": {**settings_overrides, "credentials": credentials}}
        )

        missing = candidate.settings.missing_credentials()
        if missing:
            raise ConfigurationError(f"missing {', '.join(missing)}")

        client = self.factory.get_client(candidate)
        await client.verify_connection()

        # Verification may have refreshed tokens in place
        return await self.registry.connect(
            config.id, candidate.settings.model_dump()
        )

    def _candidate(
        self, config: IntegrationConfig, partial: Dict[str, Any]
    ) -> IntegrationConfig:
        try:
            return config.merged(partial)
        except ValidationError as e:
            raise ConfigurationError(f"invalid settings: {e}") from e

    def _token_persister(self, config: IntegrationConfig) -> TokensRefreshedCallback:
        async def persist(token: TokenResponse) -> None:
            await self.registry.update(
                config.id,
                {
                    "settings": {
                        "credentials": credentials_from_token(
                            config.provider_type, token
                        )
                    }
                },
            )
            logger.info(f"Stored refreshed tokens for {config.id}")

        return persist

    def _default_redirect_uri(self, provider_type: ProviderType) -> Optional[str]:
        if provider_type == ProviderType.QUICKBOOKS:
            return settings.QUICKBOOKS_REDIRECT_URI
        return settings.SHOPIFY_REDIRECT_URI

    def _default_scopes(self, provider_type: ProviderType) -> List[str]:
        if provider_type == ProviderType.QUICKBOOKS:
            return settings.quickbooks_scopes
        return settings.shopify_scopes

    def _generate_state_token(
        self,
        integration_id: str,
        redirect_uri: str,
        shop_domain: Optional[str],
        expires_at: datetime,
    ) -> str:
        """Generate JWT state token for OAuth flow."""
        if not settings.JWT_SECRET:
            raise ConfigurationError("JWT secret not configured")

        payload = StateTokenPayload(
            integration_id=integration_id,
            redirect_uri=redirect_uri,
            shop_domain=shop_domain,
            csrf_token=secrets.token_urlsafe(32),
            issued_at=utc_now(),
            expires_at=expires_at,
        )

        return jwt.encode(
            payload.model_dump(mode="json"),
            settings.JWT_SECRET,
            algorithm="HS256",
        )

    def _validate_state_token(self, token: str) -> StateTokenPayload:
        """Validate and decode JWT state token."""
        if not settings.JWT_SECRET:
            raise ConfigurationError("JWT secret not configured")

        try:
            payload = jwt.decode(token, settings.JWT_SECRET, algorithms=["HS256"])
        except jwt.InvalidTokenError as e:
            raise AuthorizationError(f"Invalid OAuth state token: {e}")

        try:
            state_payload = StateTokenPayload(**payload)
        except ValidationError as e:
            raise AuthorizationError(f"Invalid OAuth state token: {e}")

        if utc_now() > state_payload.expires_at:
            raise AuthorizationError("OAuth session expired")

        return state_payload
