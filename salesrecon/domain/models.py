"""
Domain Models

Persisted records of the reconciliation engine. Every model serialises to
camelCase JSON (the format of the persisted store and of backup bundles)
and accepts either camelCase or snake_case on input.
"""

from datetime import date
from enum import Enum
from typing import Dict, Iterable, List, Optional, Set

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from salesrecon.config import AnalyticsSettings

RUNWAY_SENTINEL_DAYS = 999.0
DEFAULT_PLATFORM = "General"
LOOKBACK_ALL_DAYS = 9999  # "ALL" lookback: every logged day


def normalize_sku(value: object) -> str:
    """Canonical comparison form for SKUs and aliases"""
    return str(value).strip().upper()


class CamelModel(BaseModel):
    """Base model with camelCase wire names"""
    
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
    
    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class ProductStatus(str, Enum):
    """Stock health classification"""
    CRITICAL = "Critical"
    WARNING = "Warning"
    HEALTHY = "Healthy"
    OVERSTOCK = "Overstock"


class Recommendation(str, Enum):
    """Pricing action suggested by the stock status"""
    INCREASE = "Increase Price"
    DECREASE = "Decrease Price"
    MAINTAIN = "Maintain"


class FeeCategory(str, Enum):
    """Per-unit fee categories carried by sales rows and products"""
    SELLING = "selling_fee"
    ADS = "ads_fee"
    POSTAGE = "postage"
    EXTRA_FREIGHT = "extra_freight"  # income, not cost
    OTHER = "other_fee"
    SUBSCRIPTION = "subscription_fee"
    FULFILLMENT = "fulfillment_fee"


COST_FEE_CATEGORIES = [c for c in FeeCategory if c is not FeeCategory.EXTRA_FREIGHT]


class FeeBounds(CamelModel):
    min: float
    max: float


class ChannelData(CamelModel):
    """Where a product is sold, by whom, and under which platform SKU"""
    platform: str
    manager: str = "Unassigned"
    velocity: float = 0.0
    price: Optional[float] = None  # gross
    alias_string: str = Field(
        default="",
        validation_alias=AliasChoices("aliasString", "alias_string", "skuAlias"),
        serialization_alias="aliasString",
    )
    
    @property
    def aliases(self) -> List[str]:
        return [a.strip() for a in self.alias_string.split(",") if a.strip()]
    
    def with_alias(self, alias: str) -> "ChannelData":
        if normalize_sku(alias) in {normalize_sku(a) for a in self.aliases}:
            return self
        joined = ", ".join(self.aliases + [alias])
        return self.model_copy(update={"alias_string": joined})


class ShipmentDetail(CamelModel):
    container_id: str
    status: str = "To Be Shipped"
    quantity: int = 0
    eta: Optional[date] = None
    customs_date: Optional[date] = None


class Product(CamelModel):
    """Canonical catalog entry"""
    sku: str
    name: str = ""
    category: str = "Uncategorized"
    subcategory: Optional[str] = None
    brand: Optional[str] = None
    
    stock_level: int = 0
    incoming_stock: int = 0
    lead_time_days: int = 30
    shipments: List[ShipmentDetail] = Field(default_factory=list)
    channels: List[ChannelData] = Field(default_factory=list)
    
    # Costs and per-unit fees
    cost_price: float = 0.0
    cost_locked: bool = False
    selling_fee: float = 0.0
    ads_fee: float = 0.0
    postage: float = 0.0
    extra_freight: float = 0.0
    other_fee: float = 0.0
    subscription_fee: float = 0.0
    fulfillment_fee: float = 0.0
    fee_bounds: Dict[str, FeeBounds] = Field(default_factory=dict)
    
    # Manual bounds
    floor_price: Optional[float] = None
    ceiling_price: Optional[float] = None
    
    # Derived
    current_price: float = 0.0
    old_price: float = 0.0
    average_daily_sales: float = 0.0
    previous_daily_sales: float = 0.0
    return_rate: float = 0.0
    total_refunded: float = 0.0
    optimal_price: Optional[float] = None
    days_remaining: float = RUNWAY_SENTINEL_DAYS
    status: ProductStatus = ProductStatus.HEALTHY
    recommendation: Recommendation = Recommendation.MAINTAIN
    
    last_updated: Optional[date] = None
    
    def channel(self, platform: str) -> Optional[ChannelData]:
        for channel in self.channels:
            if channel.platform == platform:
                return channel
        return None
    
    def fee(self, category: FeeCategory) -> float:
        return getattr(self, category.value)


class PriceLog(CamelModel):
    """One observed sale or one aggregated sales bucket"""
    
    model_config = ConfigDict(frozen=True)
    
    id: str
    sku: str
    date: date
    price: float
    velocity: float
    margin: float = 0.0
    profit: Optional[float] = None
    platform: str = DEFAULT_PLATFORM
    order_id: Optional[str] = None
    
    @property
    def is_order_level(self) -> bool:
        return bool(self.order_id)


class RefundLog(CamelModel):
    model_config = ConfigDict(frozen=True)
    
    id: str
    sku: str
    date: date
    amount: float
    quantity: float = 1
    platform: Optional[str] = None
    reason: Optional[str] = None
    order_id: Optional[str] = None


class ShipmentLog(CamelModel):
    """Container line: quantity of one SKU travelling in one container"""
    
    model_config = ConfigDict(frozen=True)
    
    container_id: str
    sku: str
    quantity: int
    status: str = "To Be Shipped"
    eta: Optional[date] = None
    customs_date: Optional[date] = None
    
    def detail(self) -> ShipmentDetail:
        return ShipmentDetail(
            container_id=self.container_id,
            status=self.status,
            quantity=self.quantity,
            eta=self.eta,
            customs_date=self.customs_date,
        )


class PlatformRule(CamelModel):
    markup: float = 0.0
    commission: float = 0.0
    manager: str = "Unassigned"
    color: str = "#374151"
    is_excluded: bool = False


class PlatformRuleBook:
    """
    Platform name -> rule lookup with a defined default.
    
    Lookups are exact first, then case-insensitive; anything else gets the
    default rule, so callers never deal with a missing entry.
    """
    
    def __init__(self, rules: Dict[str, PlatformRule], default: Optional[PlatformRule] = None):
        self._rules = dict(rules)
        self._folded = {name.strip().lower(): name for name in self._rules}
        self.default = default or PlatformRule()
    
    def find(self, platform: Optional[str]) -> Optional[str]:
        """Return the registered name matching ``platform``, if any"""
        if not platform:
            return None
        if platform in self._rules:
            return platform
        return self._folded.get(platform.strip().lower())
    
    def get(self, platform: Optional[str]) -> PlatformRule:
        name = self.find(platform)
        return self._rules[name] if name else self.default
    
    def is_excluded(self, platform: Optional[str]) -> bool:
        return self.get(platform).is_excluded
    
    def excluded_platforms(self) -> Set[str]:
        return {name for name, rule in self._rules.items() if rule.is_excluded}
    
    def discover(self, platforms: Iterable[str]) -> Dict[str, PlatformRule]:
        """
        Rules for platforms seen for the first time.
        
        A new platform inherits from the first registered rule whose name it
        contains ("Amazon FBA" inherits "Amazon"), else from the default.
        """
        discovered: Dict[str, PlatformRule] = {}
        for platform in platforms:
            if not platform or self.find(platform) or platform in discovered:
                continue
            parent = next((rule for name, rule in self._rules.items() if name in platform), None)
            discovered[platform] = (parent or self.default).model_copy()
        return discovered
    
    def as_dict(self) -> Dict[str, PlatformRule]:
        return dict(self._rules)


class StatusThresholds(CamelModel):
    critical_multiplier: float = 1.0
    warning_multiplier: float = 1.5
    overstock_days: float = 120.0


class EngineConfig(CamelModel):
    """User-editable configuration persisted with the catalog"""
    lookback_days: int = Field(default=30, ge=1)
    thresholds: StatusThresholds = Field(default_factory=StatusThresholds)
    platform_rules: Dict[str, PlatformRule] = Field(default_factory=dict)
    default_rule: PlatformRule = Field(default_factory=PlatformRule)
    gross_up_factor: float = Field(default=1.0, gt=0)
    include_incoming_stock: bool = False
    week_anchor_weekday: int = Field(default=4, ge=0, le=6)
    default_lead_time_days: int = 30
    exclude_platforms_from_optimal_price: bool = True
    fee_outlier_ratio: float = 3.0
    
    @classmethod
    def from_settings(cls, analytics: AnalyticsSettings) -> "EngineConfig":
        return cls(
            lookback_days=analytics.lookback_days,
            thresholds=StatusThresholds(
                critical_multiplier=analytics.critical_multiplier,
                warning_multiplier=analytics.warning_multiplier,
                overstock_days=analytics.overstock_days,
            ),
            gross_up_factor=analytics.gross_up_factor,
            include_incoming_stock=analytics.include_incoming_stock,
            week_anchor_weekday=analytics.week_anchor_weekday,
            default_lead_time_days=analytics.default_lead_time_days,
            exclude_platforms_from_optimal_price=analytics.exclude_platforms_from_optimal_price,
            fee_outlier_ratio=analytics.fee_outlier_ratio,
        )
    
    def rule_book(self) -> PlatformRuleBook:
        return PlatformRuleBook(self.platform_rules, self.default_rule)
