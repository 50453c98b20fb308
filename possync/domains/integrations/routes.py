import logging
from typing import List, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import RedirectResponse

from possync.core.settings import settings
from possync.shared.exceptions import IntegrationError

from .dependencies import get_integration_service
from .models import (
    AuthorizationUrlResponse,
    ConnectRequest,
    IntegrationConfig,
    SyncResponse,
    ToggleRequest,
)
from .service import IntegrationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/integrations", tags=["integrations"])


@router.get("", response_model=List[IntegrationConfig])
async def list_integrations(
    service: IntegrationService = Depends(get_integration_service),
) -> List[IntegrationConfig]:
    """List every integration, one per supported provider."""
    return service.list()


@router.get("/{integration_id}", response_model=IntegrationConfig)
async def get_integration(
    integration_id: str,
    service: IntegrationService = Depends(get_integration_service),
) -> IntegrationConfig:
    return service.get(integration_id)


@router.post("/{integration_id}/connect", response_model=IntegrationConfig)
async def connect_integration(
    integration_id: str,
    request: ConnectRequest,
    service: IntegrationService = Depends(get_integration_service),
) -> IntegrationConfig:
    """
    Connect an integration with credentials the user already holds.

    The credentials are verified against the provider before anything is
    stored.

    Raises:
        HTTP 400: If a required credential is missing
        HTTP 401/502/503: If the provider rejects the credentials or is
            unreachable
    """
    return await service.connect(integration_id, request.credentials, request.settings)


@router.post("/{integration_id}/sync", response_model=SyncResponse)
async def sync_integration(
    integration_id: str,
    service: IntegrationService = Depends(get_integration_service),
) -> SyncResponse:
    """
    Sync every enabled category of a connected integration.

    Failed categories do not fail the request; they are listed in
    ``result.errors`` and reflected in ``status``.

    Raises:
        HTTP 409: If the integration is not connected or already syncing
    """
    result = await service.sync(integration_id)
    logger.info(f"Sync of {integration_id} finished with status {result.status}")
    return SyncResponse.from_result(result)


@router.post("/{integration_id}/disconnect", response_model=IntegrationConfig)
async def disconnect_integration(
    integration_id: str,
    service: IntegrationService = Depends(get_integration_service),
) -> IntegrationConfig:
    return await service.disconnect(integration_id)


@router.post("/{integration_id}/toggle", response_model=IntegrationConfig)
async def toggle_integration(
    integration_id: str,
    request: ToggleRequest,
    service: IntegrationService = Depends(get_integration_service),
) -> IntegrationConfig:
    """Enable or disable a connected integration."""
    return await service.toggle(integration_id, request.enabled)


@router.post(
    "/{integration_id}/authorize",
    response_model=AuthorizationUrlResponse,
    status_code=status.HTTP_200_OK,
)
async def start_authorization(
    integration_id: str,
    redirect_uri: Optional[str] = Query(None, description="OAuth redirect URI"),
    shop_domain: Optional[str] = Query(None, description="Shopify shop domain"),
    service: IntegrationService = Depends(get_integration_service),
) -> AuthorizationUrlResponse:
    """
    Start the OAuth connection flow.

    Returns the provider authorization URL the frontend redirects the user
    to. The URL carries a signed state token that expires in 30 minutes.
    """
    return await service.start_authorization(
        integration_id, redirect_uri=redirect_uri, shop_domain=shop_domain
    )


@router.get("/{integration_id}/callback")
async def oauth_callback(
    integration_id: str,
    code: Optional[str] = Query(None, description="OAuth authorization code"),
    state: Optional[str] = Query(None, description="JWT state token"),
    realm_id: Optional[str] = Query(
        None, alias="realmId", description="QuickBooks company ID"
    ),
    shop: Optional[str] = Query(None, description="Shopify shop domain"),
    error: Optional[str] = Query(None, description="OAuth error code"),
    error_description: Optional[str] = Query(
        None, description="OAuth error description"
    ),
    service: IntegrationService = Depends(get_integration_service),
) -> RedirectResponse:
    """
    Handle the provider redirect after the user authorized the app.

    **Redirect Behavior**:
    - Success: `/integrations?connected={integration_id}`
    - Error: `/integrations?error={error_type}&message={description}`
    """
    if error:
        return _frontend_redirect(
            {"error": "oauth_failed", "message": error_description or error}
        )

    if not code or not state:
        return _frontend_redirect(
            {"error": "invalid_callback", "message": "Missing required parameters"}
        )

    try:
        await service.complete_authorization(
            integration_id, code, state, realm_id=realm_id, shop_domain=shop
        )
    except IntegrationError as e:
        logger.warning(f"OAuth callback for {integration_id} failed: {e.message}")
        return _frontend_redirect({"error": "connection_failed", "message": e.message})

    return _frontend_redirect({"connected": integration_id})


def _frontend_redirect(params: dict) -> RedirectResponse:
    return RedirectResponse(
        url=f"{settings.FRONTEND_URL or ''}/integrations?{urlencode(params)}",
        status_code=status.HTTP_302_FOUND,
    )
