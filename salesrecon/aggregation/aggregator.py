"""
Transaction Aggregator

Groups resolved sales rows into running totals:
- Per canonical SKU (global totals, excluded platforms left out)
- Per (SKU, platform) channel sub-totals, every platform included
- Per (SKU, week) sub-totals on anchor-weekday periods
- Per-unit fee bounds for outlier flagging
- Daily / per-order history buckets that become price logs

Unit values are quantity-weighted and derived at read time, never stored.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

import structlog

from salesrecon.domain.models import (
    DEFAULT_PLATFORM,
    ChannelData,
    EngineConfig,
    FeeBounds,
    FeeCategory,
    PlatformRuleBook,
    PriceLog,
    Product,
    normalize_sku,
)
from salesrecon.history.merger import price_log_id
from salesrecon.ingestion.rows import SalesRow
from salesrecon.metrics.calculations import net_margin
from .periods import period_index, span_days

logger = structlog.get_logger(__name__)

NON_SALE_REVENUE = 0.001


@dataclass
class AggregationBucket:
    """Running sums from which weighted unit values are derived"""
    quantity: float = 0.0
    revenue: float = 0.0
    cost_volume: float = 0.0
    fees: Dict[FeeCategory, float] = field(default_factory=dict)
    profit: float = 0.0
    profit_revenue: float = 0.0
    margin_volume: float = 0.0
    margin_quantity: float = 0.0
    has_profit: bool = False
    rows: int = 0

    def add(self, row: SalesRow) -> None:
        self.rows += 1
        self.quantity += row.quantity
        self.revenue += row.revenue
        self.cost_volume += row.unit_cost * row.quantity
        for category, amount in row.fees.items():
            self.fees[category] = self.fees.get(category, 0.0) + amount

        if row.profit is not None:
            self.has_profit = True
            self.profit += row.profit
            self.profit_revenue += row.revenue
        elif row.margin_percent is not None:
            self.profit += row.revenue * row.margin_percent / 100
            self.profit_revenue += row.revenue

        if row.margin_percent is not None:
            weight = abs(row.quantity)
            self.margin_volume += row.margin_percent * weight
            self.margin_quantity += weight

    def weighted_average(self, total: float) -> Optional[float]:
        """total / quantity; None for a bucket without units"""
        if self.quantity <= 0:
            return None
        return total / self.quantity

    @property
    def unit_price(self) -> Optional[float]:
        return self.weighted_average(self.revenue)

    @property
    def unit_cost(self) -> Optional[float]:
        return self.weighted_average(self.cost_volume)

    def unit_fee(self, category: FeeCategory) -> Optional[float]:
        if category not in self.fees:
            return None
        return self.weighted_average(self.fees[category])

    def margin(self) -> Optional[float]:
        """
        Margin percent of the bucket.

        Reported profit over revenue when a profit figure exists, else the
        quantity-weighted margin column, else the net margin of the
        bucket's own unit price, cost and fees.
        """
        if self.has_profit and self.profit_revenue > 0:
            return self.profit / self.profit_revenue * 100
        if self.margin_quantity > 0:
            return self.margin_volume / self.margin_quantity
        price = self.unit_price
        if price is None:
            return None
        fees = {c.value: self.unit_fee(c) or 0.0 for c in FeeCategory}
        return net_margin(price, cogs=self.unit_cost or 0.0, **fees)


@dataclass
class HistoryBucket:
    sku: str
    date: date
    platform: str
    order_id: Optional[str] = None
    totals: AggregationBucket = field(default_factory=AggregationBucket)

    def to_price_log(self) -> Optional[PriceLog]:
        price = self.totals.unit_price
        if price is None:
            return None
        margin = self.totals.margin()
        return PriceLog(
            id=price_log_id(self.sku, self.date, self.platform, self.order_id),
            sku=self.sku,
            date=self.date,
            price=price,
            velocity=self.totals.quantity,
            margin=round(margin, 4) if margin is not None else 0.0,
            profit=round(self.totals.profit, 4) if self.totals.has_profit else None,
            platform=self.platform,
            order_id=self.order_id,
        )


@dataclass
class AggregationResult:
    """Everything one import says about one canonical SKU"""
    sku: str
    totals: AggregationBucket = field(default_factory=AggregationBucket)
    channels: Dict[str, AggregationBucket] = field(default_factory=dict)
    weekly: Dict[int, AggregationBucket] = field(default_factory=dict)
    fee_bounds: Dict[FeeCategory, FeeBounds] = field(default_factory=dict)
    aliases: Set[str] = field(default_factory=set)
    channel_aliases: Dict[str, Set[str]] = field(default_factory=dict)
    managers: Dict[str, str] = field(default_factory=dict)
    category: str = ""
    subcategory: str = ""
    dates: Set[date] = field(default_factory=set)

    def track_fee_bounds(self, row: SalesRow) -> None:
        if row.quantity <= 0:
            return
        for category, amount in row.fees.items():
            per_unit = amount / row.quantity
            bounds = self.fee_bounds.get(category)
            if bounds is None:
                self.fee_bounds[category] = FeeBounds(min=per_unit, max=per_unit)
            else:
                self.fee_bounds[category] = FeeBounds(
                    min=min(bounds.min, per_unit),
                    max=max(bounds.max, per_unit),
                )

    def gross_price(self, gross_up_factor: float = 1.0) -> Optional[float]:
        price = self.totals.unit_price
        return None if price is None else price * gross_up_factor

    def weekly_price(self, index: int) -> Optional[float]:
        bucket = self.weekly.get(index)
        return bucket.unit_price if bucket else None

    def fee_outliers(self, ratio: float = 3.0) -> List[FeeCategory]:
        """Categories whose per-unit max exceeds ``ratio`` x the weighted average"""
        flagged = []
        for category, bounds in self.fee_bounds.items():
            average = self.totals.unit_fee(category)
            if average and average > 0 and bounds.max > ratio * average:
                flagged.append(category)
        return flagged


class UpsertOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"


@dataclass
class AggregationOutput:
    """Per-SKU results plus the history entries and counters of one import"""
    results: Dict[str, AggregationResult]
    history: List[PriceLog]
    period_days: int
    latest_date: Optional[date]
    discovered_platforms: Set[str]
    rows_total: int = 0
    rows_aggregated: int = 0
    skipped_non_sale: int = 0
    skipped_blank_sku: int = 0


class TransactionAggregator:
    """
    Aggregates one import's sales rows.

    Example:
        aggregator = TransactionAggregator(config)
        output = aggregator.aggregate(rows, resolution_map)
        for sku, result in output.results.items():
            product, outcome = aggregator.upsert_product(catalog.get(sku), result, output.period_days)
    """

    def __init__(self, config: EngineConfig, rule_book: Optional[PlatformRuleBook] = None):
        self.config = config
        self.rule_book = rule_book or config.rule_book()

    def aggregate(
        self,
        rows: Iterable[SalesRow],
        resolution_map: Optional[Mapping[str, str]] = None,
    ) -> AggregationOutput:
        """
        Group rows by the canonical SKU they resolve to.

        ``resolution_map`` maps normalised import SKUs to target SKUs; SKUs
        absent from it stand for themselves.
        """
        resolution_map = resolution_map or {}
        rows = list(rows)
        sales = [r for r in rows if r.sku.strip() and r.revenue > NON_SALE_REVENUE]
        skipped_blank = sum(1 for r in rows if not r.sku.strip())
        skipped_non_sale = len(rows) - len(sales) - skipped_blank

        latest = max((r.order_date for r in sales), default=None)
        anchor_weekday = self.config.week_anchor_weekday

        results: Dict[str, AggregationResult] = {}
        history: Dict[Tuple, HistoryBucket] = {}
        discovered: Set[str] = set()

        for row in sales:
            import_key = normalize_sku(row.sku)
            sku = resolution_map.get(import_key, row.sku.strip())
            platform = row.platform or DEFAULT_PLATFORM
            discovered.add(platform)

            result = results.get(sku)
            if result is None:
                result = results[sku] = AggregationResult(sku=sku)

            if import_key != normalize_sku(sku):
                result.aliases.add(row.sku.strip())
                result.channel_aliases.setdefault(platform, set()).add(row.sku.strip())
            if row.manager:
                result.managers[platform] = row.manager
            result.dates.add(row.order_date)

            result.channels.setdefault(platform, AggregationBucket()).add(row)

            if not self.rule_book.is_excluded(platform):
                result.totals.add(row)
                result.track_fee_bounds(row)
                week = period_index(row.order_date, latest, anchor_weekday)
                result.weekly.setdefault(week, AggregationBucket()).add(row)
                if row.category:
                    result.category = row.category
                if row.subcategory:
                    result.subcategory = row.subcategory

            if row.order_id:
                key = (sku, row.order_id)
            else:
                key = (sku, row.order_date, platform.lower())
            bucket = history.get(key)
            if bucket is None:
                bucket = history[key] = HistoryBucket(
                    sku=sku, date=row.order_date, platform=platform, order_id=row.order_id,
                )
            bucket.totals.add(row)

        logs = [log for log in (b.to_price_log() for b in history.values()) if log is not None]
        period_days = span_days(r.order_date for r in sales)

        logger.info(
            "Sales aggregated",
            rows=len(rows),
            skus=len(results),
            history_entries=len(logs),
            period_days=period_days,
            skipped_non_sale=skipped_non_sale,
            skipped_blank_sku=skipped_blank,
        )

        return AggregationOutput(
            results=results,
            history=logs,
            period_days=period_days,
            latest_date=latest,
            discovered_platforms=discovered,
            rows_total=len(rows),
            rows_aggregated=len(sales),
            skipped_non_sale=skipped_non_sale,
            skipped_blank_sku=skipped_blank,
        )

    def new_product(self, sku: str) -> Product:
        return Product(sku=sku, name=sku, lead_time_days=self.config.default_lead_time_days)

    def upsert_product(
        self,
        product: Optional[Product],
        result: AggregationResult,
        period_days: int,
    ) -> Tuple[Product, UpsertOutcome]:
        """
        Fold an aggregation result into a catalog entry.

        Creates the product when ``product`` is None. Derived metrics are
        left to the recalculator.
        """
        outcome = UpsertOutcome.UPDATED
        if product is None:
            product = self.new_product(result.sku)
            outcome = UpsertOutcome.CREATED

        gross = self.config.gross_up_factor
        channels = list(product.channels)
        for platform, bucket in result.channels.items():
            velocity = bucket.quantity / period_days if period_days else 0.0
            unit_price = bucket.unit_price
            price = unit_price * gross if unit_price is not None else None

            index = next((i for i, c in enumerate(channels) if c.platform == platform), None)
            if index is None:
                channel = ChannelData(
                    platform=platform,
                    manager=result.managers.get(platform) or self.rule_book.get(platform).manager,
                    velocity=velocity,
                    price=price,
                )
            else:
                current = channels[index]
                channel = current.model_copy(update={
                    "velocity": velocity,
                    "price": price if price is not None else current.price,
                })
            for alias in sorted(result.channel_aliases.get(platform, ())):
                channel = channel.with_alias(alias)

            if index is None:
                channels.append(channel)
            else:
                channels[index] = channel

        updates: Dict[str, object] = {"channels": channels}
        for category in FeeCategory:
            unit_fee = result.totals.unit_fee(category)
            if unit_fee:
                updates[category.value] = unit_fee

        unit_cost = result.totals.unit_cost
        if unit_cost and not product.cost_locked:
            updates["cost_price"] = unit_cost

        if result.fee_bounds:
            bounds = dict(product.fee_bounds)
            bounds.update({c.value: b for c, b in result.fee_bounds.items()})
            updates["fee_bounds"] = bounds

        if result.category:
            updates["category"] = result.category
        if result.subcategory:
            updates["subcategory"] = result.subcategory
        if result.dates:
            updates["last_updated"] = max(result.dates)

        return product.model_copy(update=updates), outcome
