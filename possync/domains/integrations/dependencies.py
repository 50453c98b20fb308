from fastapi import Request

from .service import IntegrationService


async def get_integration_service(request: Request) -> IntegrationService:
    """Integration service dependency for FastAPI dependency injection."""
    return request.app.state.integration_service
