"""
Retail Analytics Engine - Main Application

FastAPI server for sales metrics, catalog pattern discovery, and product
grouping.
"""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import datasets, discovery, grouping, metrics
from config import get_settings
from core.logging_config import api_logger as logger


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()

    # Startup
    os.makedirs(settings.upload_dir, exist_ok=True)
    logger.info(f"{settings.app_name} v{settings.app_version} starting")
    logger.info(f"Upload directory: {settings.upload_dir}")
    logger.info(f"Data directory: {settings.data.data_dir}")

    yield

    # Shutdown
    logger.info("Shutting down")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Retail analytics: derived sales metrics, catalog pattern discovery, and variant grouping",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(datasets.router, prefix="/api/v1", tags=["Datasets"])
    app.include_router(metrics.router, prefix="/api/v1", tags=["Metrics"])
    app.include_router(discovery.router, prefix="/api/v1", tags=["Discovery"])
    app.include_router(grouping.router, prefix="/api/v1", tags=["Grouping"])

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "app": settings.app_name,
            "version": settings.app_version
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
