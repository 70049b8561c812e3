"""
API Routes Module
"""
from .backup import router as backup_router
from .config import router as config_router
from .health import router as health_router
from .history import router as history_router
from .imports import router as imports_router
from .products import router as products_router

__all__ = [
    "backup_router",
    "config_router",
    "health_router",
    "history_router",
    "imports_router",
    "products_router",
]
