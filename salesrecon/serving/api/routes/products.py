"""
Products API Endpoints

Derived product metrics and manual overrides.
"""

from collections import Counter
from datetime import date
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from salesrecon.domain.models import CamelModel, Product, ProductStatus
from salesrecon.service import ReconciliationService
from ..dependencies import get_service

router = APIRouter()


class ProductListResponse(CamelModel):
    """Paginated product list"""
    items: List[Product]
    total: int
    page: int
    page_size: int


class CatalogSummary(CamelModel):
    total_products: int
    by_status: Dict[str, int]
    total_stock: int
    total_incoming: int


class OverrideRequest(CamelModel):
    cost_price: Optional[float] = None
    floor_price: Optional[float] = None
    ceiling_price: Optional[float] = None


class RecalculationResponse(CamelModel):
    changed_skus: List[str]
    anchor: Optional[date] = None


@router.get("", response_model=ProductListResponse)
async def list_products(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    status: Optional[ProductStatus] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    service: ReconciliationService = Depends(get_service),
) -> ProductListResponse:
    """List products with filtering and search."""
    products = service.products
    if status:
        products = [p for p in products if p.status == status]
    if category:
        products = [p for p in products if p.category.lower() == category.lower()]
    if search:
        needle = search.lower()
        products = [p for p in products if needle in p.sku.lower() or needle in p.name.lower()]
    
    offset = (page - 1) * page_size
    return ProductListResponse(
        items=products[offset:offset + page_size],
        total=len(products),
        page=page,
        page_size=page_size,
    )


@router.get("/summary", response_model=CatalogSummary)
async def catalog_summary(service: ReconciliationService = Depends(get_service)) -> CatalogSummary:
    products = service.products
    statuses = Counter(p.status.value for p in products)
    return CatalogSummary(
        total_products=len(products),
        by_status={s.value: statuses.get(s.value, 0) for s in ProductStatus},
        total_stock=sum(p.stock_level for p in products),
        total_incoming=sum(p.incoming_stock for p in products),
    )


@router.post("/recalculate", response_model=RecalculationResponse)
async def recalculate(service: ReconciliationService = Depends(get_service)) -> RecalculationResponse:
    result = service.recalculate()
    return RecalculationResponse(changed_skus=result.changed_skus, anchor=result.anchor)


@router.get("/{sku}", response_model=Product)
async def get_product(sku: str, service: ReconciliationService = Depends(get_service)) -> Product:
    return service.get_product(sku)


@router.patch("/{sku}/overrides", response_model=Product)
async def set_overrides(
    sku: str,
    request: OverrideRequest,
    service: ReconciliationService = Depends(get_service),
) -> Product:
    """Manual cost (locked against imports) and floor / ceiling prices."""
    return service.set_manual_overrides(
        sku,
        cost_price=request.cost_price,
        floor_price=request.floor_price,
        ceiling_price=request.ceiling_price,
    )
