"""
Typed report rows.

Each row type is built from a record keyed by canonical field names (the
row reader maps report headers onto these names). ``from_record`` raises
RowValidationError for rows that must be skipped.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Mapping, Optional

from salesrecon.domain.models import DEFAULT_PLATFORM, FeeCategory
from salesrecon.exceptions import RowValidationError
from .parsers import clean_text, is_blank, parse_date, parse_number, parse_optional_date, parse_percent


def _required_sku(record: Mapping[str, Any]) -> str:
    sku = clean_text(record.get("sku"))
    if not sku:
        raise RowValidationError("Row is missing a SKU", details={"field": "sku"})
    return sku


def _required_date(record: Mapping[str, Any], key: str) -> date:
    try:
        return parse_date(record.get(key))
    except ValueError as e:
        raise RowValidationError(str(e), details={"field": key}) from e


def combine_platform(level1: str, level2: str) -> str:
    """
    Platform label from the two platform columns ERP exports carry.
    
    Level 2 (e.g. fulfilment channel) wins when present; a short level-2 tag
    that does not already name the level-1 platform is prefixed with it.
    """
    if level2 and level2 != "-" and level2.lower() != "unknown":
        if level1 and level1.lower() not in level2.lower() and len(level2) < 5:
            return f"{level1} {level2}"
        return level2
    return level1 or DEFAULT_PLATFORM


@dataclass
class SalesRow:
    """One sales line (an order line or a pre-aggregated daily line)"""
    sku: str
    order_date: date
    quantity: float = 0.0
    revenue: float = 0.0
    platform: str = DEFAULT_PLATFORM
    manager: str = ""
    category: str = ""
    subcategory: str = ""
    unit_cost: float = 0.0
    fees: Dict[FeeCategory, float] = field(default_factory=dict)
    profit: Optional[float] = None
    margin_percent: Optional[float] = None
    order_id: Optional[str] = None
    logistics_service: str = ""
    
    def fee(self, category: FeeCategory) -> float:
        return self.fees.get(category, 0.0)
    
    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "SalesRow":
        sku = _required_sku(record)
        order_date = _required_date(record, "order_time")
        platform = combine_platform(
            clean_text(record.get("platform")),
            clean_text(record.get("platform_detail")),
        )
        fees = {
            category: parse_number(record.get(category.value))
            for category in FeeCategory
            if not is_blank(record.get(category.value))
        }
        return cls(
            sku=sku,
            order_date=order_date,
            quantity=parse_number(record.get("quantity")),
            revenue=parse_number(record.get("revenue")),
            platform=platform,
            manager=clean_text(record.get("manager")),
            category=clean_text(record.get("category")),
            subcategory=clean_text(record.get("subcategory")),
            unit_cost=parse_number(record.get("unit_cost")),
            fees=fees,
            profit=None if is_blank(record.get("profit")) else parse_number(record.get("profit")),
            margin_percent=None if is_blank(record.get("margin_percent")) else parse_percent(record.get("margin_percent")),
            order_id=clean_text(record.get("order_id")) or None,
            logistics_service=clean_text(record.get("logistics_service")),
        )


@dataclass
class RefundRow:
    sku: str
    refund_date: date
    amount: float
    quantity: float = 1.0
    platform: Optional[str] = None
    reason: Optional[str] = None
    
    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "RefundRow":
        quantity = parse_number(record.get("quantity"), default=1.0)
        return cls(
            sku=_required_sku(record),
            refund_date=_required_date(record, "refund_time"),
            amount=parse_number(record.get("amount")),
            quantity=quantity or 1.0,
            platform=clean_text(record.get("platform")) or None,
            reason=clean_text(record.get("reason")) or None,
        )


@dataclass
class ShipmentRow:
    container_id: str
    sku: str
    quantity: int
    status: str = "To Be Shipped"
    eta: Optional[date] = None
    customs_date: Optional[date] = None
    
    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "ShipmentRow":
        container_id = clean_text(record.get("container_id"))
        if not container_id:
            raise RowValidationError("Row is missing a container id", details={"field": "container_id"})
        return cls(
            container_id=container_id,
            sku=_required_sku(record),
            quantity=int(parse_number(record.get("quantity"))),
            status=clean_text(record.get("status")) or "To Be Shipped",
            eta=parse_optional_date(record.get("eta")),
            customs_date=parse_optional_date(record.get("customs_date")),
        )


@dataclass
class CatalogRow:
    sku: str
    name: str = ""
    stock_level: Optional[int] = None
    cost_price: Optional[float] = None
    lead_time_days: Optional[int] = None
    category: str = ""
    subcategory: str = ""
    brand: str = ""
    
    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "CatalogRow":
        def optional_number(key: str) -> Optional[float]:
            value = record.get(key)
            return None if is_blank(value) else parse_number(value)
        
        stock = optional_number("stock_level")
        lead_time = optional_number("lead_time_days")
        return cls(
            sku=_required_sku(record),
            name=clean_text(record.get("name")),
            stock_level=None if stock is None else int(stock),
            cost_price=optional_number("cost_price"),
            lead_time_days=None if lead_time is None else int(lead_time),
            category=clean_text(record.get("category")),
            subcategory=clean_text(record.get("subcategory")),
            brand=clean_text(record.get("brand")),
        )


@dataclass
class MappingRow:
    """A platform SKU linked to a master SKU"""
    sku: str
    alias: str
    
    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "MappingRow":
        alias = clean_text(record.get("alias"))
        if not alias:
            raise RowValidationError("Row is missing a platform SKU", details={"field": "alias"})
        return cls(sku=_required_sku(record), alias=alias)
