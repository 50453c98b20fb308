import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from possync.core.settings import settings
from possync.core.storage import IntegrationStore
from possync.domains.integrations.registry import IntegrationRegistry
from possync.domains.integrations.routes import router as integrations_router
from possync.domains.integrations.service import IntegrationService
from possync.shared.exceptions import IntegrationError

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    registry = IntegrationRegistry(IntegrationStore(settings.INTEGRATIONS_STORE_PATH))
    registry.load()
    app.state.integration_service = IntegrationService(registry)
    logger.info(f"Loaded integrations from {settings.INTEGRATIONS_STORE_PATH}")
    yield


app = FastAPI(
    title="POS Sync API",
    description="API for syncing point-of-sale data with QuickBooks and Shopify",
    version="0.1.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL] if settings.FRONTEND_URL else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(IntegrationError)
async def integration_error_handler(
    request: Request, exc: IntegrationError
) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Include routers
app.include_router(integrations_router, prefix="/api/v1")


@app.get("/")
async def root() -> dict[str, str]:
    return {"message": "POS Sync API is running"}


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy"}
