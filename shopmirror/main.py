import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from shopmirror import __version__
from shopmirror.core.config import get_settings
from shopmirror.core.database import init_db
from shopmirror.api import config, mirror, sync
from shopmirror.services.scheduler import start_scheduler, stop_scheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown events."""
    # Startup
    logging.basicConfig(level=logging.DEBUG if get_settings().debug else logging.INFO)
    await init_db()
    start_scheduler()
    yield
    # Shutdown
    stop_scheduler()


# Create FastAPI application
app = FastAPI(
    title="Shopify Mirror",
    description="Read-only mirror of Shopify orders, products and customers",
    version=__version__,
    lifespan=lifespan,
)

# Include routers
app.include_router(config.router)
app.include_router(mirror.router)
app.include_router(sync.router)
