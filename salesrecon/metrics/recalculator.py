"""
Metrics Recalculator

Pure derivation of every product's operating metrics from the catalog and
the raw logs. Windows are anchored to the latest logged sale (data time),
so restoring an old backup reproduces the figures it was taken with.

Safe to run any number of times: nothing is accumulated between runs and
the inputs are never mutated.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Set

import structlog

from salesrecon.aggregation.periods import FRIDAY, week_bounds
from salesrecon.domain.models import (
    EngineConfig,
    PriceLog,
    Product,
    RefundLog,
    ShipmentLog,
    StatusThresholds,
    normalize_sku,
)
from .calculations import classify_status, optimal_price, recommend, runway_days, safe_div

logger = structlog.get_logger(__name__)


@dataclass
class RecalcResult:
    products: List[Product]
    changed_skus: List[str] = field(default_factory=list)
    anchor: Optional[date] = None


def _group_by_sku(logs: Iterable) -> Dict[str, list]:
    grouped: Dict[str, list] = defaultdict(list)
    for log in logs:
        grouped[normalize_sku(log.sku)].append(log)
    return grouped


def weighted_price(logs: Iterable[PriceLog]) -> Optional[float]:
    """Velocity-weighted price; None when the logs carry no units"""
    revenue = 0.0
    units = 0.0
    for log in logs:
        revenue += log.price * log.velocity
        units += log.velocity
    if units <= 0:
        return None
    return revenue / units


def recalculate(
    catalog: Sequence[Product],
    price_logs: Sequence[PriceLog],
    refund_logs: Sequence[RefundLog],
    lookback_days: int,
    excluded_platforms: Iterable[str] = (),
    thresholds: Optional[StatusThresholds] = None,
    shipment_logs: Optional[Sequence[ShipmentLog]] = None,
    include_incoming_stock: bool = False,
    exclude_platforms_from_optimal_price: bool = True,
    week_anchor_weekday: int = FRIDAY,
) -> RecalcResult:
    """
    Derive velocity, return rate, runway, status, recommendation, optimal
    price and weekly prices for every product.

    Args:
        catalog: Current products
        price_logs: All price logs, in history order
        refund_logs: All refund logs
        lookback_days: Window length L; current window is [anchor-L, anchor],
            previous window is [anchor-2L, anchor-L)
        excluded_platforms: Platforms left out of velocity and prices
        thresholds: Status thresholds
        shipment_logs: When given, incoming stock is recomputed from them
        include_incoming_stock: Count incoming stock in the runway
        exclude_platforms_from_optimal_price: Skip excluded platforms in the
            optimal price scan as well
        week_anchor_weekday: First weekday of the weekly price periods

    Returns:
        RecalcResult with new product instances and the SKUs that changed
    """
    thresholds = thresholds or StatusThresholds()
    lookback = max(int(lookback_days), 1)
    excluded: Set[str] = {p.strip().lower() for p in excluded_platforms}

    def included(log: PriceLog) -> bool:
        return (log.platform or "").strip().lower() not in excluded

    anchor = max((log.date for log in price_logs), default=None)
    logs_by_sku = _group_by_sku(price_logs)
    refunds_by_sku = _group_by_sku(refund_logs)
    incoming_by_sku: Optional[Dict[str, int]] = None
    if shipment_logs is not None:
        incoming_by_sku = defaultdict(int)
        for shipment in shipment_logs:
            incoming_by_sku[normalize_sku(shipment.sku)] += shipment.quantity

    if anchor is not None:
        current_start = anchor - timedelta(days=lookback)
        previous_start = anchor - timedelta(days=2 * lookback)
        this_week = week_bounds(anchor, week_anchor_weekday)
        last_week = (this_week[0] - timedelta(days=7), this_week[0] - timedelta(days=1))

    products: List[Product] = []
    changed: List[str] = []

    for product in catalog:
        key = normalize_sku(product.sku)
        logs = logs_by_sku.get(key, [])
        sales_logs = [log for log in logs if included(log)]
        updates: Dict[str, object] = {}

        if anchor is None:
            average = previous = 0.0
            refunded_qty = refunded_amount = 0.0
            updates["optimal_price"] = None
        else:
            average = sum(
                log.velocity for log in sales_logs if current_start <= log.date <= anchor
            ) / lookback
            previous = sum(
                log.velocity for log in sales_logs if previous_start <= log.date < current_start
            ) / lookback

            window_refunds = [
                r for r in refunds_by_sku.get(key, []) if current_start <= r.date <= anchor
            ]
            refunded_qty = sum(r.quantity for r in window_refunds)
            refunded_amount = sum(r.amount for r in window_refunds)

            scan = sales_logs if exclude_platforms_from_optimal_price else logs
            updates["optimal_price"] = optimal_price(
                (log.price, log.margin, log.velocity) for log in scan
            )

            current_price = weighted_price(
                log for log in sales_logs if this_week[0] <= log.date <= this_week[1]
            )
            old_price = weighted_price(
                log for log in sales_logs if last_week[0] <= log.date <= last_week[1]
            )
            if current_price is not None:
                updates["current_price"] = round(current_price, 2)
            if old_price is not None:
                updates["old_price"] = round(old_price, 2)

        return_rate = safe_div(refunded_qty, average * lookback) * 100

        incoming = product.incoming_stock
        if incoming_by_sku is not None:
            incoming = incoming_by_sku.get(key, 0)
        effective_stock = product.stock_level + (incoming if include_incoming_stock else 0)
        runway = runway_days(effective_stock, average)
        status = classify_status(product.stock_level, runway, product.lead_time_days, thresholds)

        updates.update({
            "average_daily_sales": round(average, 2),
            "previous_daily_sales": round(previous, 2),
            "return_rate": round(return_rate, 2),
            "total_refunded": round(refunded_amount, 2),
            "incoming_stock": incoming,
            "days_remaining": round(runway, 1),
            "status": status,
            "recommendation": recommend(status),
        })

        updated = product.model_copy(update=updates)
        if updated != product:
            changed.append(product.sku)
        products.append(updated)

    logger.info(
        "Metrics recalculated",
        products=len(products),
        changed=len(changed),
        anchor=anchor.isoformat() if anchor else None,
        lookback_days=lookback,
    )
    return RecalcResult(products=products, changed_skus=changed, anchor=anchor)


def recalculate_with_config(
    catalog: Sequence[Product],
    price_logs: Sequence[PriceLog],
    refund_logs: Sequence[RefundLog],
    config: EngineConfig,
    shipment_logs: Optional[Sequence[ShipmentLog]] = None,
) -> RecalcResult:
    """recalculate() with every parameter taken from the engine configuration"""
    return recalculate(
        catalog,
        price_logs,
        refund_logs,
        lookback_days=config.lookback_days,
        excluded_platforms=config.rule_book().excluded_platforms(),
        thresholds=config.thresholds,
        shipment_logs=shipment_logs,
        include_incoming_stock=config.include_incoming_stock,
        exclude_platforms_from_optimal_price=config.exclude_platforms_from_optimal_price,
        week_anchor_weekday=config.week_anchor_weekday,
    )
