"""
Reconciliation Service

Single owner of the engine state (catalog, price/refund/shipment logs,
learned aliases and configuration). Every mutation goes through this
object, is computed on copies and swapped in one step, then persisted.

Sales imports are two-phase:
    session = service.begin_sales_import(rows)
    for candidate in session.candidates:
        service.decide(session.id, candidate.import_sku, approve=True)
    report = service.commit_import(session.id)
"""

import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

import structlog
from pydantic import TypeAdapter

from salesrecon.aggregation import TransactionAggregator, UpsertOutcome
from salesrecon.aggregation.aggregator import NON_SALE_REVENUE
from salesrecon.config import Settings, get_settings
from salesrecon.domain.models import (
    ChannelData,
    EngineConfig,
    PlatformRule,
    PriceLog,
    Product,
    RefundLog,
    ShipmentLog,
    normalize_sku,
)
from salesrecon.exceptions import ImportStateError, ReconError, UnknownProductError
from salesrecon.history import (
    ContainerSummary,
    MergeStats,
    merge_price_logs,
    merge_refund_logs,
    merge_shipment_logs,
    refund_id,
)
from salesrecon.ingestion.rows import CatalogRow, MappingRow, RefundRow, SalesRow, ShipmentRow
from salesrecon.metrics import RecalcResult, recalculate_with_config
from salesrecon.resolution import MappingReviewer, Resolution, ResolutionStatus, ReviewCandidate, SkuResolver
from salesrecon.storage import StateStore, build_bundle, create_store, parse_bundle
from salesrecon.storage.store import (
    CATALOG_KEY,
    CONFIGURATION_KEY,
    LEARNED_ALIASES_KEY,
    PRICE_LOGS_KEY,
    REFUND_LOGS_KEY,
    SHIPMENT_LOGS_KEY,
)

logger = structlog.get_logger(__name__)

_products = TypeAdapter(List[Product])
_price_logs = TypeAdapter(List[PriceLog])
_refund_logs = TypeAdapter(List[RefundLog])
_shipment_logs = TypeAdapter(List[ShipmentLog])


class ImportStatus(str, Enum):
    REVIEW = "review"  # candidates still pending
    READY = "ready"
    COMMITTED = "committed"
    CANCELLED = "cancelled"


class MappingMode(str, Enum):
    MERGE = "merge"  # keep the aliases already stored for the platform
    REPLACE = "replace"


@dataclass
class ImportSession:
    """A sales import between detection and commit"""
    id: str
    rows: List[SalesRow]
    resolutions: List[Resolution]
    reviewer: MappingReviewer
    status: ImportStatus = ImportStatus.READY
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def candidates(self) -> List[ReviewCandidate]:
        return self.reviewer.candidates

    @property
    def is_open(self) -> bool:
        return self.status in (ImportStatus.REVIEW, ImportStatus.READY)

    def refresh_status(self) -> None:
        if self.is_open:
            self.status = ImportStatus.REVIEW if self.reviewer.pending else ImportStatus.READY

    def resolution_counts(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in ResolutionStatus}
        for resolution in self.resolutions:
            counts[resolution.status.value] += 1
        return counts


@dataclass
class ImportReport:
    """Outcome of a committed sales import"""
    session_id: str
    created: List[str]
    updated: List[str]
    merge: MergeStats
    period_days: int
    rows_total: int
    rows_aggregated: int
    skipped_non_sale: int
    skipped_blank_sku: int
    learned_aliases: Dict[str, str]
    discovered_platforms: List[str]
    fee_outliers: Dict[str, List[str]]
    resolution_counts: Dict[str, int]


@dataclass
class RefundImportReport:
    merge: MergeStats
    total_amount: float
    unknown_skus: List[str]


@dataclass
class ShipmentImportReport:
    merge: MergeStats
    containers: List[ContainerSummary]
    updated: List[str]
    unknown_skus: List[str]


@dataclass
class CatalogImportReport:
    created: List[str]
    updated: List[str]


@dataclass
class MappingImportReport:
    platform: str
    mode: str
    updated: List[str]
    learned: Dict[str, str]
    unknown_skus: List[str]


class RecalculationScheduler:
    """
    Coalesces recalculation triggers.

    Outside a deferred block every request runs immediately; inside one,
    requests are collected and a single pass runs when the outermost block
    exits.
    """

    def __init__(self, run: Callable[[], Any]):
        self._run = run
        self._reasons: List[str] = []
        self._depth = 0
        self.runs = 0

    @property
    def pending(self) -> List[str]:
        return list(self._reasons)

    def request(self, reason: str) -> None:
        self._reasons.append(reason)
        if self._depth == 0:
            self.flush()

    def clear(self) -> None:
        self._reasons.clear()

    def flush(self) -> None:
        if not self._reasons:
            return
        reasons, self._reasons = self._reasons, []
        self._run()
        self.runs += 1
        logger.debug("Recalculation flushed", reasons=reasons, coalesced=len(reasons))

    @contextmanager
    def deferred(self) -> Iterator["RecalculationScheduler"]:
        self._depth += 1
        try:
            yield self
        finally:
            self._depth -= 1
            if self._depth == 0:
                self.flush()


class ReconciliationService:
    """
    Owner of catalog, logs, learned aliases and engine configuration.

    Example:
        service = ReconciliationService.from_settings(get_settings())
        service.load()
        with service.batch():
            service.import_refunds(refund_rows)
            service.update_config(lookback_days=14)
    """

    def __init__(self, store: StateStore, config: Optional[EngineConfig] = None):
        self.store = store
        self.config = config or EngineConfig()
        self.catalog: Dict[str, Product] = {}
        self.price_logs: List[PriceLog] = []
        self.refund_logs: List[RefundLog] = []
        self.shipment_logs: List[ShipmentLog] = []
        self.learned_aliases: Dict[str, str] = {}
        self.sessions: Dict[str, ImportSession] = {}
        self.scheduler = RecalculationScheduler(self._recalculate_and_save)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ReconciliationService":
        settings = settings or get_settings()
        return cls(create_store(settings), EngineConfig.from_settings(settings.analytics))

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Read the whole state from the store; absent keys keep their defaults"""
        state = self.store.load_all()
        if state[CONFIGURATION_KEY] is not None:
            self.config = EngineConfig.model_validate(state[CONFIGURATION_KEY])
        self.catalog = {
            normalize_sku(p.sku): p for p in _products.validate_python(state[CATALOG_KEY] or [])
        }
        self.price_logs = _price_logs.validate_python(state[PRICE_LOGS_KEY] or [])
        self.refund_logs = _refund_logs.validate_python(state[REFUND_LOGS_KEY] or [])
        self.shipment_logs = _shipment_logs.validate_python(state[SHIPMENT_LOGS_KEY] or [])
        self.learned_aliases = dict(state[LEARNED_ALIASES_KEY] or {})
        logger.info(
            "State loaded",
            products=len(self.catalog),
            price_logs=len(self.price_logs),
            refund_logs=len(self.refund_logs),
            shipment_logs=len(self.shipment_logs),
            learned_aliases=len(self.learned_aliases),
        )

    def _serialise(self, key: str) -> Any:
        if key == CATALOG_KEY:
            return [p.to_json() for p in self.catalog.values()]
        if key == PRICE_LOGS_KEY:
            return [log.to_json() for log in self.price_logs]
        if key == REFUND_LOGS_KEY:
            return [log.to_json() for log in self.refund_logs]
        if key == SHIPMENT_LOGS_KEY:
            return [log.to_json() for log in self.shipment_logs]
        if key == LEARNED_ALIASES_KEY:
            return dict(self.learned_aliases)
        if key == CONFIGURATION_KEY:
            return self.config.to_json()
        raise KeyError(key)

    def save(self, *keys: str) -> None:
        """Persist the given keys, or everything when none are named"""
        keys = keys or (
            CATALOG_KEY,
            PRICE_LOGS_KEY,
            REFUND_LOGS_KEY,
            SHIPMENT_LOGS_KEY,
            LEARNED_ALIASES_KEY,
            CONFIGURATION_KEY,
        )
        self.store.save_many({key: self._serialise(key) for key in keys})

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def products(self) -> List[Product]:
        return list(self.catalog.values())

    def get_product(self, sku: str) -> Product:
        try:
            return self.catalog[normalize_sku(sku)]
        except KeyError:
            raise UnknownProductError(f"Unknown SKU: {sku}", details={"sku": sku}) from None

    def price_history(self, sku: str) -> List[PriceLog]:
        key = normalize_sku(sku)
        return [log for log in self.price_logs if normalize_sku(log.sku) == key]

    def refund_history(self, sku: str) -> List[RefundLog]:
        key = normalize_sku(sku)
        return [log for log in self.refund_logs if normalize_sku(log.sku) == key]

    def _resolver(self) -> SkuResolver:
        return SkuResolver(self.catalog.values(), self.learned_aliases)

    def _certain_sku(self, resolver: SkuResolver, import_sku: str) -> Optional[str]:
        resolution = resolver.resolve(import_sku)
        return resolution.canonical_sku if resolution.is_certain else None

    # ------------------------------------------------------------------
    # Recalculation
    # ------------------------------------------------------------------

    def _compute_metrics(
        self,
        catalog: Dict[str, Product],
        price_logs: List[PriceLog],
        refund_logs: List[RefundLog],
        shipment_logs: List[ShipmentLog],
        config: EngineConfig,
    ) -> RecalcResult:
        return recalculate_with_config(
            list(catalog.values()),
            price_logs,
            refund_logs,
            config,
            shipment_logs=shipment_logs or None,
        )

    def _recalculate_and_save(self) -> RecalcResult:
        result = self._compute_metrics(
            self.catalog, self.price_logs, self.refund_logs, self.shipment_logs, self.config
        )
        self.catalog = {normalize_sku(p.sku): p for p in result.products}
        if result.changed_skus:
            self.save(CATALOG_KEY)
        return result

    def recalculate(self) -> RecalcResult:
        """Run a full metrics pass now, flushing anything deferred"""
        self.scheduler.clear()
        return self._recalculate_and_save()

    @contextmanager
    def batch(self) -> Iterator[None]:
        """Defer recalculation until the block exits; triggers inside run once"""
        with self.scheduler.deferred():
            yield

    # ------------------------------------------------------------------
    # Sales import (two-phase)
    # ------------------------------------------------------------------

    def begin_sales_import(self, rows: Iterable[SalesRow]) -> ImportSession:
        """Resolve every import SKU and open a session; heuristic matches await review"""
        rows = list(rows)
        resolver = self._resolver()
        reviewer = MappingReviewer()
        resolutions: Dict[str, Resolution] = {}

        for row in rows:
            if not row.sku.strip() or row.revenue <= NON_SALE_REVENUE:
                continue
            key = normalize_sku(row.sku)
            resolution = resolutions.get(key)
            if resolution is None:
                resolution = resolutions[key] = resolver.resolve(row.sku)
            reviewer.observe(resolution, revenue=row.revenue)

        session = ImportSession(
            id=uuid.uuid4().hex,
            rows=rows,
            resolutions=list(resolutions.values()),
            reviewer=reviewer,
        )
        session.refresh_status()
        self.sessions[session.id] = session

        logger.info(
            "Sales import opened",
            session_id=session.id,
            rows=len(rows),
            candidates=len(reviewer.candidates),
            **session.resolution_counts(),
        )
        return session

    def get_session(self, session_id: str) -> ImportSession:
        try:
            return self.sessions[session_id]
        except KeyError:
            raise ImportStateError(f"Unknown import session: {session_id}") from None

    def _open_session(self, session_id: str) -> ImportSession:
        session = self.get_session(session_id)
        if not session.is_open:
            raise ImportStateError(
                f"Import session is {session.status.value}",
                details={"session_id": session_id, "status": session.status.value},
            )
        return session

    def decide(self, session_id: str, import_sku: str, approve: bool) -> ReviewCandidate:
        session = self._open_session(session_id)
        try:
            candidate = session.reviewer.decide(import_sku, approve)
        except KeyError:
            raise ImportStateError(
                f"No review candidate for {import_sku!r}",
                details={"session_id": session_id, "import_sku": import_sku},
            ) from None
        session.refresh_status()
        return candidate

    def cancel_import(self, session_id: str) -> ImportSession:
        """Discard a session; nothing it detected reaches the state and the id is forgotten"""
        session = self._open_session(session_id)
        session.status = ImportStatus.CANCELLED
        session.reviewer.closed = True
        del self.sessions[session_id]
        logger.info("Sales import cancelled", session_id=session_id)
        return session

    def commit_import(self, session_id: str) -> ImportReport:
        """
        Aggregate, merge and recalculate a reviewed session.

        Raises:
            ReviewPendingError: if a candidate is still pending
            ImportStateError: if the session is already committed or cancelled
        """
        session = self._open_session(session_id)
        mapping = session.reviewer.resolution_map(session.resolutions)

        # Platforms seen for the first time inherit a rule before aggregation
        platforms = {row.platform for row in session.rows if row.platform}
        rule_book = self.config.rule_book()
        discovered = rule_book.discover(platforms)
        config = self.config
        if discovered:
            config = config.model_copy(update={"platform_rules": {**config.platform_rules, **discovered}})

        aggregator = TransactionAggregator(config)
        output = aggregator.aggregate(session.rows, mapping)

        catalog = dict(self.catalog)
        created: List[str] = []
        updated: List[str] = []
        fee_outliers: Dict[str, List[str]] = {}
        for sku, result in output.results.items():
            key = normalize_sku(sku)
            product, outcome = aggregator.upsert_product(catalog.get(key), result, output.period_days)
            catalog[key] = product
            (created if outcome == UpsertOutcome.CREATED else updated).append(product.sku)
            flagged = result.fee_outliers(config.fee_outlier_ratio)
            if flagged:
                fee_outliers[product.sku] = [c.value for c in flagged]

        price_logs, merge_stats = merge_price_logs(self.price_logs, output.history)
        approved = session.reviewer.approved_aliases()
        aliases = {**self.learned_aliases, **approved}

        metrics = self._compute_metrics(catalog, price_logs, self.refund_logs, self.shipment_logs, config)

        # Swap
        self.catalog = {normalize_sku(p.sku): p for p in metrics.products}
        self.price_logs = price_logs
        self.learned_aliases = aliases
        self.config = config
        session.status = ImportStatus.COMMITTED
        session.reviewer.closed = True
        del self.sessions[session_id]
        self.save(CATALOG_KEY, PRICE_LOGS_KEY, LEARNED_ALIASES_KEY, CONFIGURATION_KEY)

        report = ImportReport(
            session_id=session.id,
            created=created,
            updated=updated,
            merge=merge_stats,
            period_days=output.period_days,
            rows_total=output.rows_total,
            rows_aggregated=output.rows_aggregated,
            skipped_non_sale=output.skipped_non_sale,
            skipped_blank_sku=output.skipped_blank_sku,
            learned_aliases=approved,
            discovered_platforms=sorted(discovered),
            fee_outliers=fee_outliers,
            resolution_counts=session.resolution_counts(),
        )
        logger.info(
            "Sales import committed",
            session_id=session.id,
            created=len(created),
            updated=len(updated),
            learned_aliases=len(approved),
            **merge_stats.as_dict(),
        )
        return report

    # ------------------------------------------------------------------
    # Refunds, shipments, catalog
    # ------------------------------------------------------------------

    def import_refunds(self, rows: Iterable[RefundRow]) -> RefundImportReport:
        """Append unseen refunds; re-importing the same report adds nothing"""
        resolver = self._resolver()
        incoming: List[RefundLog] = []
        unknown = set()
        total = 0.0
        for row in rows:
            sku = self._certain_sku(resolver, row.sku)
            if sku is None:
                unknown.add(row.sku)
                sku = row.sku
            incoming.append(RefundLog(
                id=refund_id(row.sku, row.refund_date, row.amount, row.quantity, row.reason),
                sku=sku,
                date=row.refund_date,
                amount=row.amount,
                quantity=row.quantity,
                platform=row.platform,
                reason=row.reason,
            ))
            total += row.amount

        self.refund_logs, stats = merge_refund_logs(self.refund_logs, incoming)
        self.save(REFUND_LOGS_KEY)
        self.scheduler.request("refunds")
        return RefundImportReport(merge=stats, total_amount=round(total, 2), unknown_skus=sorted(unknown))

    def import_shipments(self, rows: Iterable[ShipmentRow], as_of: Optional[date] = None) -> ShipmentImportReport:
        """
        Upsert container lines and refresh each product's inbound view.

        Incoming stock is the sum of the product's container quantities;
        lead time becomes the days until the nearest ETA on or after ``as_of``.
        """
        as_of = as_of or date.today()
        resolver = self._resolver()
        incoming: List[ShipmentLog] = []
        unknown = set()
        for row in rows:
            sku = self._certain_sku(resolver, row.sku)
            if sku is None:
                unknown.add(row.sku)
                continue
            incoming.append(ShipmentLog(
                container_id=row.container_id,
                sku=sku,
                quantity=row.quantity,
                status=row.status,
                eta=row.eta,
                customs_date=row.customs_date,
            ))

        merged = merge_shipment_logs(self.shipment_logs, incoming)
        touched = {normalize_sku(log.sku) for log in incoming}

        catalog = dict(self.catalog)
        for key in list(touched):
            product = catalog.get(key)
            if product is None:
                touched.discard(key)
                continue
            logs = [log for log in merged.logs if normalize_sku(log.sku) == key]
            updates: Dict[str, Any] = {
                "shipments": [log.detail() for log in logs],
                "incoming_stock": sum(log.quantity for log in logs),
            }
            future = [log.eta for log in logs if log.eta and log.eta >= as_of]
            if future:
                updates["lead_time_days"] = (min(future) - as_of).days
            catalog[key] = product.model_copy(update=updates)

        self.catalog = catalog
        self.shipment_logs = merged.logs
        self.save(SHIPMENT_LOGS_KEY, CATALOG_KEY)
        self.scheduler.request("shipments")
        return ShipmentImportReport(
            merge=merged.stats,
            containers=merged.containers,
            updated=sorted(catalog[key].sku for key in touched),
            unknown_skus=sorted(unknown),
        )

    def import_catalog(self, rows: Iterable[CatalogRow]) -> CatalogImportReport:
        """Create or update products from a catalog / inventory report"""
        catalog = dict(self.catalog)
        created: List[str] = []
        updated: List[str] = []
        for row in rows:
            key = normalize_sku(row.sku)
            product = catalog.get(key)
            if product is None:
                product = Product(sku=row.sku, name=row.sku, lead_time_days=self.config.default_lead_time_days)
                created.append(row.sku)
            else:
                updated.append(product.sku)

            updates: Dict[str, Any] = {}
            for name in ("name", "category", "subcategory", "brand"):
                value = getattr(row, name)
                if value:
                    updates[name] = value
            if row.stock_level is not None:
                updates["stock_level"] = row.stock_level
            if row.lead_time_days is not None:
                updates["lead_time_days"] = row.lead_time_days
            if row.cost_price is not None and not product.cost_locked:
                updates["cost_price"] = row.cost_price
            catalog[key] = product.model_copy(update=updates)

        self.catalog = catalog
        self.save(CATALOG_KEY)
        self.scheduler.request("catalog")
        logger.info("Catalog imported", created=len(created), updated=len(updated))
        return CatalogImportReport(created=created, updated=updated)

    def import_mappings(
        self,
        rows: Iterable[MappingRow],
        platform: str,
        mode: str = MappingMode.MERGE.value,
    ) -> MappingImportReport:
        """
        Link platform SKUs to master SKUs for one platform.

        In ``replace`` mode the platform's alias string is cleared on every
        product before the report is applied. Each alias that differs from
        its master SKU is also learned, so later sales imports resolve it
        with certainty.
        """
        mode = MappingMode(mode)
        platform = platform.strip()
        wanted: Dict[str, List[str]] = {}
        unknown = set()
        for row in rows:
            key = normalize_sku(row.sku)
            if key not in self.catalog:
                unknown.add(row.sku)
                continue
            wanted.setdefault(key, []).append(row.alias)

        catalog: Dict[str, Product] = {}
        learned: Dict[str, str] = {}
        for key, product in self.catalog.items():
            channels = list(product.channels)
            if mode is MappingMode.REPLACE:
                channels = [
                    c.model_copy(update={"alias_string": ""}) if c.platform == platform else c
                    for c in channels
                ]
            for alias in wanted.get(key, []):
                index = next((i for i, c in enumerate(channels) if c.platform == platform), None)
                if index is None:
                    channels.append(ChannelData(platform=platform))
                    index = len(channels) - 1
                channels[index] = channels[index].with_alias(alias)
                if normalize_sku(alias) != key:
                    learned[normalize_sku(alias)] = product.sku
            catalog[key] = product.model_copy(update={"channels": channels})

        self.catalog = catalog
        self.learned_aliases = {**self.learned_aliases, **learned}
        self.save(CATALOG_KEY, LEARNED_ALIASES_KEY)
        logger.info(
            "Mappings imported",
            platform=platform,
            mode=mode.value,
            products=len(wanted),
            learned=len(learned),
            unknown=len(unknown),
        )
        return MappingImportReport(
            platform=platform,
            mode=mode.value,
            updated=sorted(self.catalog[key].sku for key in wanted),
            learned=learned,
            unknown_skus=sorted(unknown),
        )

    # ------------------------------------------------------------------
    # Overrides and configuration
    # ------------------------------------------------------------------

    def set_manual_overrides(
        self,
        sku: str,
        cost_price: Optional[float] = None,
        floor_price: Optional[float] = None,
        ceiling_price: Optional[float] = None,
    ) -> Product:
        """
        Hand-authored values. A manual cost is locked so later sales imports
        do not overwrite it.
        """
        product = self.get_product(sku)
        floor = floor_price if floor_price is not None else product.floor_price
        ceiling = ceiling_price if ceiling_price is not None else product.ceiling_price
        if floor is not None and ceiling is not None and floor > ceiling:
            raise ReconError(
                "Floor price cannot exceed ceiling price",
                details={"sku": product.sku, "floor_price": floor, "ceiling_price": ceiling},
            )

        updates: Dict[str, Any] = {"floor_price": floor, "ceiling_price": ceiling}
        if cost_price is not None:
            updates["cost_price"] = cost_price
            updates["cost_locked"] = True
        product = product.model_copy(update=updates)
        self.catalog[normalize_sku(sku)] = product
        self.save(CATALOG_KEY)
        self.scheduler.request("overrides")
        return product

    def update_config(self, **changes: Any) -> EngineConfig:
        """Validate and apply configuration changes, then recalculate"""
        data = self.config.model_dump()
        data.update(changes)
        self.config = EngineConfig.model_validate(data)
        self.save(CONFIGURATION_KEY)
        logger.info("Configuration updated", fields=sorted(changes))
        self.scheduler.request("config")
        return self.config

    def set_platform_rule(self, name: str, rule: PlatformRule) -> EngineConfig:
        rules = dict(self.config.platform_rules)
        existing = self.config.rule_book().find(name)
        rules[existing or name] = rule
        self.config = self.config.model_copy(update={"platform_rules": rules})
        self.save(CONFIGURATION_KEY)
        self.scheduler.request("platform_rule")
        return self.config

    # ------------------------------------------------------------------
    # Backup / restore
    # ------------------------------------------------------------------

    def export_backup(self) -> Dict[str, Any]:
        return build_bundle(
            self.products,
            self.price_logs,
            self.refund_logs,
            self.shipment_logs,
            self.learned_aliases,
            self.config,
        )

    def restore_backup(self, bundle: Any) -> RecalcResult:
        """
        Replace the whole state with a bundle.

        Validation and recalculation run before anything is swapped, so a
        rejected bundle leaves the current state untouched.

        Raises:
            RestoreFormatError: if the bundle is malformed
        """
        snapshot = parse_bundle(bundle, self.config)
        catalog = {normalize_sku(p.sku): p for p in snapshot.products}
        metrics = self._compute_metrics(
            catalog,
            snapshot.price_logs,
            snapshot.refund_logs,
            snapshot.shipment_logs,
            snapshot.configuration,
        )

        self.catalog = {normalize_sku(p.sku): p for p in metrics.products}
        self.price_logs = snapshot.price_logs
        self.refund_logs = snapshot.refund_logs
        self.shipment_logs = snapshot.shipment_logs
        self.learned_aliases = snapshot.learned_aliases
        self.config = snapshot.configuration
        self.sessions.clear()
        self.save()

        logger.info(
            "Backup restored",
            timestamp=snapshot.timestamp,
            products=len(self.catalog),
            price_logs=len(self.price_logs),
        )
        return metrics

    def reset_history(self) -> RecalcResult:
        """Clear price and refund logs; derived metrics fall back to their no-data values"""
        self.price_logs = []
        self.refund_logs = []
        self.save(PRICE_LOGS_KEY, REFUND_LOGS_KEY)
        logger.info("History reset")
        return self.recalculate()
