"""
FastAPI Application Factory

Creates and configures the API application around one
ReconciliationService.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from salesrecon.config import get_settings
from salesrecon.config.logging import configure_logging
from salesrecon.service import ReconciliationService
from .errors import register_error_handlers
from .middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from .routes import (
    backup_router,
    config_router,
    health_router,
    history_router,
    imports_router,
    products_router,
)

logger = structlog.get_logger(__name__)


def create_app(service: Optional[ReconciliationService] = None) -> FastAPI:
    """
    Create and configure FastAPI application.
    
    Args:
        service: Pre-built service (tests); when omitted one is built from
            settings and loaded from the store at startup
    
    Returns:
        Configured FastAPI app instance
    """
    settings = get_settings()
    
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging()
        logger.info("Starting sales reconciliation API", environment=settings.app_env)
        if getattr(app.state, "service", None) is None:
            app.state.service = ReconciliationService.from_settings(settings)
            app.state.service.load()
        yield
        logger.info("Shutting down...")
        app.state.service.save()
    
    app = FastAPI(
        title="Sales Reconciliation API",
        description="Sales, refund and shipment reconciliation with derived product metrics",
        version=settings.version,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )
    app.state.service = service
    
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    
    register_error_handlers(app)
    
    app.include_router(health_router, prefix="/api/v1", tags=["Health"])
    app.include_router(products_router, prefix="/api/v1/products", tags=["Products"])
    app.include_router(imports_router, prefix="/api/v1/imports", tags=["Imports"])
    app.include_router(history_router, prefix="/api/v1/history", tags=["History"])
    app.include_router(config_router, prefix="/api/v1/config", tags=["Configuration"])
    app.include_router(backup_router, prefix="/api/v1", tags=["Backup"])
    
    @app.get("/api/v1/info")
    async def api_info():
        """API information endpoint."""
        return {
            "name": "Sales Reconciliation API",
            "version": settings.version,
            "environment": settings.app_env,
            "documentation": "/docs",
        }
    
    return app
