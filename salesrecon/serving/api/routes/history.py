"""
History Endpoints

Raw log arrays for downstream consumers.
"""

from typing import Dict, List

from fastapi import APIRouter, Depends

from salesrecon.domain.models import PriceLog, RefundLog, ShipmentLog
from salesrecon.service import ReconciliationService
from ..dependencies import get_service

router = APIRouter()


@router.get("/prices", response_model=List[PriceLog])
async def all_price_logs(service: ReconciliationService = Depends(get_service)) -> List[PriceLog]:
    return service.price_logs


@router.get("/prices/{sku}", response_model=List[PriceLog])
async def price_history(sku: str, service: ReconciliationService = Depends(get_service)) -> List[PriceLog]:
    service.get_product(sku)
    return service.price_history(sku)


@router.get("/refunds", response_model=List[RefundLog])
async def all_refund_logs(service: ReconciliationService = Depends(get_service)) -> List[RefundLog]:
    return service.refund_logs


@router.get("/refunds/{sku}", response_model=List[RefundLog])
async def refund_history(sku: str, service: ReconciliationService = Depends(get_service)) -> List[RefundLog]:
    return service.refund_history(sku)


@router.get("/shipments", response_model=List[ShipmentLog])
async def shipment_logs(service: ReconciliationService = Depends(get_service)) -> List[ShipmentLog]:
    return service.shipment_logs


@router.get("/aliases")
async def learned_aliases(service: ReconciliationService = Depends(get_service)) -> Dict[str, str]:
    return service.learned_aliases


@router.delete("")
async def reset_history(service: ReconciliationService = Depends(get_service)) -> Dict[str, int]:
    """Clear price and refund logs; derived metrics drop to their no-data values."""
    result = service.reset_history()
    return {"products": len(result.products), "changed": len(result.changed_skus)}
