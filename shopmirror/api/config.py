from fastapi import APIRouter
from pydantic import BaseModel

from shopmirror import __version__
from shopmirror.core.config import get_settings

router = APIRouter(prefix="/api", tags=["config"])


class HealthResponse(BaseModel):
    status: str
    version: str


class ConfigResponse(BaseModel):
    shopify_store_domain: str
    shopify_api_version: str
    shopify_pagination: str
    shopify_page_size: int
    shopify_min_request_interval: float
    tz: str
    sync_minute: int
    debug: bool


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="ok", version=__version__)


@router.get("/config", response_model=ConfigResponse)
async def get_config() -> ConfigResponse:
    """Get current configuration (excluding secrets)."""
    settings = get_settings()
    return ConfigResponse(
        shopify_store_domain=settings.shopify_store_domain,
        shopify_api_version=settings.shopify_api_version,
        shopify_pagination=settings.shopify_pagination,
        shopify_page_size=settings.shopify_page_size,
        shopify_min_request_interval=settings.shopify_min_request_interval,
        tz=settings.tz,
        sync_minute=settings.sync_minute,
        debug=settings.debug,
    )
