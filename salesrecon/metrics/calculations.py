"""
Metric primitives.

Every helper degrades to a defined fallback instead of raising on a zero
denominator or producing NaN.
"""

import math
from typing import Iterable, Optional, Tuple

from salesrecon.domain.models import (
    RUNWAY_SENTINEL_DAYS,
    ProductStatus,
    Recommendation,
    StatusThresholds,
)


def safe_div(numerator: float, denominator: float, fallback: float = 0.0) -> float:
    """numerator / denominator, or ``fallback`` for a zero denominator or NaN result"""
    if not denominator:
        return fallback
    result = numerator / denominator
    return fallback if math.isnan(result) else result


def net_margin(
    price: float,
    cogs: float = 0.0,
    selling_fee: float = 0.0,
    ads_fee: float = 0.0,
    postage: float = 0.0,
    extra_freight: float = 0.0,
    other_fee: float = 0.0,
    subscription_fee: float = 0.0,
    fulfillment_fee: float = 0.0,
) -> float:
    """
    Net margin percent of a unit sold at ``price``.
    
    Extra freight charged to the customer counts as income; every other fee
    is a cost. Returns 0 for a non-positive price.
    """
    if price <= 0:
        return 0.0
    income = price + extra_freight
    costs = cogs + selling_fee + ads_fee + postage + other_fee + subscription_fee + fulfillment_fee
    return (income - costs) / price * 100


def daily_profit(price: float, margin: float, velocity: float) -> float:
    return price * (margin / 100) * velocity


def optimal_price(entries: Iterable[Tuple[float, float, float]]) -> Optional[float]:
    """
    Observed price with the highest daily profit.
    
    ``entries`` are (price, margin %, velocity) in history order; the first
    entry wins ties. None when there are no entries.
    """
    best_price: Optional[float] = None
    best_profit = -math.inf
    for price, margin, velocity in entries:
        profit = daily_profit(price, margin, velocity)
        if math.isnan(profit):
            continue
        if profit > best_profit:
            best_profit = profit
            best_price = price
    return best_price


def runway_days(stock: float, daily_sales: float) -> float:
    """Days of stock left; 0 without stock, the sentinel without sales"""
    if stock <= 0:
        return 0.0
    if daily_sales <= 0:
        return RUNWAY_SENTINEL_DAYS
    return stock / daily_sales


def classify_status(
    stock_level: float,
    runway: float,
    lead_time_days: float,
    thresholds: StatusThresholds,
) -> ProductStatus:
    """First matching rule wins; the lead-time boundaries are exclusive"""
    if stock_level <= 0:
        return ProductStatus.CRITICAL
    if runway < lead_time_days * thresholds.critical_multiplier:
        return ProductStatus.CRITICAL
    if runway > thresholds.overstock_days:
        return ProductStatus.OVERSTOCK
    if runway < lead_time_days * thresholds.warning_multiplier:
        return ProductStatus.WARNING
    return ProductStatus.HEALTHY


def recommend(status: ProductStatus) -> Recommendation:
    if status in (ProductStatus.CRITICAL, ProductStatus.WARNING):
        return Recommendation.INCREASE
    if status == ProductStatus.OVERSTOCK:
        return Recommendation.DECREASE
    return Recommendation.MAINTAIN
