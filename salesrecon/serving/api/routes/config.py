"""
Engine Configuration Endpoints
"""

from typing import Literal, Optional, Union

from fastapi import APIRouter, Depends

from salesrecon.domain.models import LOOKBACK_ALL_DAYS, CamelModel, EngineConfig, PlatformRule, StatusThresholds
from salesrecon.service import ReconciliationService
from ..dependencies import get_service

router = APIRouter()


class ConfigUpdate(CamelModel):
    """Partial configuration update; omitted fields are left as they are"""
    lookback_days: Optional[Union[int, Literal["ALL"]]] = None
    thresholds: Optional[StatusThresholds] = None
    default_rule: Optional[PlatformRule] = None
    gross_up_factor: Optional[float] = None
    include_incoming_stock: Optional[bool] = None
    week_anchor_weekday: Optional[int] = None
    exclude_platforms_from_optimal_price: Optional[bool] = None
    fee_outlier_ratio: Optional[float] = None


@router.get("", response_model=EngineConfig)
async def get_config(service: ReconciliationService = Depends(get_service)) -> EngineConfig:
    return service.config


@router.patch("", response_model=EngineConfig)
async def update_config(
    update: ConfigUpdate,
    service: ReconciliationService = Depends(get_service),
) -> EngineConfig:
    """Apply changes and recalculate every product."""
    changes = update.model_dump(exclude_unset=True)
    if changes.get("lookback_days") == "ALL":
        changes["lookback_days"] = LOOKBACK_ALL_DAYS
    return service.update_config(**changes)


@router.put("/platforms/{name}", response_model=EngineConfig)
async def set_platform_rule(
    name: str,
    rule: PlatformRule,
    service: ReconciliationService = Depends(get_service),
) -> EngineConfig:
    return service.set_platform_rule(name, rule)
