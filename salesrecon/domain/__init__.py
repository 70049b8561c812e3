"""
Domain Module
"""
from .models import (
    ChannelData,
    EngineConfig,
    FeeBounds,
    FeeCategory,
    PlatformRule,
    PlatformRuleBook,
    PriceLog,
    Product,
    ProductStatus,
    Recommendation,
    RefundLog,
    ShipmentDetail,
    ShipmentLog,
    StatusThresholds,
    normalize_sku,
)

__all__ = [
    "ChannelData",
    "EngineConfig",
    "FeeBounds",
    "FeeCategory",
    "PlatformRule",
    "PlatformRuleBook",
    "PriceLog",
    "Product",
    "ProductStatus",
    "Recommendation",
    "RefundLog",
    "ShipmentDetail",
    "ShipmentLog",
    "StatusThresholds",
    "normalize_sku",
]
