"""FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from fare_check import __version__
from fare_check.api import router
from fare_check.api.dependencies import get_pricing_client, reset_dependencies
from fare_check.logging_config import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    if get_pricing_client.cache_info().currsize:
        await get_pricing_client().aclose()
    reset_dependencies()


def create_app() -> FastAPI:
    """Create and configure FastAPI application instance."""
    configure_logging()
    app = FastAPI(title="Fare Check MCP Server", version=__version__, lifespan=lifespan)
    app.include_router(router)

    @app.get("/health", tags=["health"])
    async def healthcheck() -> dict[str, str]:
        """Simple endpoint to verify that the service is alive."""
        return {"status": "ok"}

    return app


app = create_app()
