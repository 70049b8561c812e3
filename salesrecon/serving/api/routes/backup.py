"""
Backup / Restore Endpoints
"""

from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends

from salesrecon.domain.models import CamelModel
from salesrecon.service import ReconciliationService
from ..dependencies import get_service

router = APIRouter()


class RestoreResponse(CamelModel):
    products: int
    price_logs: int
    refund_logs: int
    changed_skus: List[str]
    anchor: Optional[date] = None


@router.get("/backup")
async def export_backup(service: ReconciliationService = Depends(get_service)) -> Dict[str, Any]:
    """Whole engine state as one bundle."""
    return service.export_backup()


@router.post("/restore", response_model=RestoreResponse)
async def restore_backup(
    bundle: Any = Body(...),
    service: ReconciliationService = Depends(get_service),
) -> RestoreResponse:
    """Replace the state with a bundle; a malformed bundle changes nothing (422)."""
    result = service.restore_backup(bundle)
    return RestoreResponse(
        products=len(service.catalog),
        price_logs=len(service.price_logs),
        refund_logs=len(service.refund_logs),
        changed_skus=result.changed_skus,
        anchor=result.anchor,
    )
