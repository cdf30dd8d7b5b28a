"""FastAPI application entry point."""

import asyncio
import contextlib
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fulfillment.api.routes import router
from fulfillment.config import get_settings
from fulfillment.services.container import close_container, get_container
from fulfillment.utils.logging import get_logger, setup_logging

# Setup logging first
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info("application_starting")

    services = await get_container()
    sweep_task: asyncio.Task | None = None
    if services.sweeper.settings.sweep_enabled:
        sweep_task = asyncio.create_task(services.sweeper.run())

    yield

    logger.info("application_shutting_down")
    if sweep_task is not None:
        sweep_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweep_task
    await close_container()


app = FastAPI(
    title="Catering Order Fulfillment",
    description="Order workflow, pricing and equipment-loan tracking",
    version="0.1.0",
    lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "service": "catering-fulfillment"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "message": "Catering Order Fulfillment API",
        "docs": "/docs",
        "health": "/health",
    }


app.include_router(router, prefix="/api/v1", tags=["api"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "fulfillment.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.environment == "development",
    )
