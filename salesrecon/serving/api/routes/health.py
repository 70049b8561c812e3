"""
Health Check Endpoints
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from salesrecon.config import get_settings
from salesrecon.service import ReconciliationService
from ..dependencies import get_service

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    environment: str
    timestamp: datetime
    checks: Dict[str, Any]


def _check_store(service: ReconciliationService) -> Dict[str, Any]:
    try:
        service.store.load("configuration")
    except Exception as e:
        return {"status": "unhealthy", "error": str(e)}
    return {"status": "healthy", "backend": type(service.store).__name__}


@router.get("/health", response_model=HealthResponse)
async def health_check(service: ReconciliationService = Depends(get_service)) -> HealthResponse:
    """
    Health check.
    
    Checks:
    - State store reachable
    - Loaded state sizes
    """
    settings = get_settings()
    store = _check_store(service)
    return HealthResponse(
        status="healthy" if store["status"] == "healthy" else "degraded",
        version=settings.version,
        environment=settings.app_env,
        timestamp=datetime.now(timezone.utc),
        checks={
            "store": store,
            "state": {
                "products": len(service.catalog),
                "price_logs": len(service.price_logs),
                "refund_logs": len(service.refund_logs),
                "open_sessions": sum(1 for s in service.sessions.values() if s.is_open),
            },
        },
    )


@router.get("/health/live")
async def liveness_check() -> Dict[str, str]:
    """Returns 200 if the application is running."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(response: Response, service: ReconciliationService = Depends(get_service)) -> Dict[str, str]:
    """Returns 200 once the state store answers."""
    store = _check_store(service)
    if store["status"] != "healthy":
        response.status_code = 503
        return {"status": "not_ready", "reason": store.get("error", "store_unavailable")}
    return {"status": "ready"}
