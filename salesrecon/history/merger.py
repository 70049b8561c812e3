"""
History Merger

Merges freshly imported log entries into the durable log store. Merging is
idempotent: importing the same report twice leaves the logs exactly as
importing it once.

Dedup keys:
- order-level price log: (sku, order id)
- aggregate price log: (sku, date, platform)
- refund log: digest of (sku, date, amount, quantity, reason prefix)
- shipment log: (container id, sku)

Incoming order-level detail for a (sku, date) supersedes the stored
aggregate entries for that day. Aggregates arriving in the same batch or
in a later import are kept, since they usually come from a platform that
reports no order ids.
"""

import hashlib
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, Iterable, List, Optional, Set, Tuple

import structlog

from salesrecon.domain.models import PriceLog, RefundLog, ShipmentLog, normalize_sku

logger = structlog.get_logger(__name__)

PriceKey = Tuple[str, ...]


def _digest(prefix: str, *parts: object) -> str:
    signature = "|".join("" if p is None else str(p) for p in parts)
    return f"{prefix}-{hashlib.sha1(signature.encode('utf-8')).hexdigest()[:16]}"


def price_log_key(sku: str, day: date, platform: str, order_id: Optional[str] = None) -> PriceKey:
    if order_id:
        return ("order", normalize_sku(sku), order_id.strip())
    return ("agg", normalize_sku(sku), day.isoformat(), platform.strip().lower())


def price_log_id(sku: str, day: date, platform: str, order_id: Optional[str] = None) -> str:
    """Deterministic id derived from the dedup key"""
    return _digest("pl", *price_log_key(sku, day, platform, order_id))


def refund_id(sku: str, day: date, amount: float, quantity: float, reason: Optional[str] = None) -> str:
    """Deterministic refund id; refund reports carry no order id to key on"""
    safe_reason = (reason or "unknown").strip().lower()[:20]
    return _digest("ref", normalize_sku(sku), day.isoformat(), f"{amount:.2f}", f"{quantity:g}", safe_reason)


def _key_of(log: PriceLog) -> PriceKey:
    return price_log_key(log.sku, log.date, log.platform, log.order_id)


@dataclass
class MergeStats:
    """What a merge did to the log store"""
    inserted: int = 0
    replaced: int = 0  # existing entries overwritten by the same key
    superseded: int = 0  # aggregate entries dropped for order-level detail
    skipped: int = 0  # duplicates within the batch or already present
    
    def as_dict(self) -> Dict[str, int]:
        return {
            "inserted": self.inserted,
            "replaced": self.replaced,
            "superseded": self.superseded,
            "skipped": self.skipped,
        }


def merge_price_logs(
    existing: Iterable[PriceLog],
    incoming: Iterable[PriceLog],
) -> Tuple[List[PriceLog], MergeStats]:
    """
    Merge incoming price logs into the existing list.
    
    Returns a new list; neither input is modified. Existing entries keep
    their order, new entries are appended in arrival order.
    """
    stats = MergeStats()
    existing = list(existing)
    
    batch: Dict[PriceKey, PriceLog] = {}
    for log in incoming:
        key = _key_of(log)
        if key in batch:
            stats.skipped += 1
        batch[key] = log
    
    order_days: Set[Tuple[str, date]] = {
        (normalize_sku(log.sku), log.date) for log in batch.values() if log.is_order_level
    }
    
    def superseded(log: PriceLog) -> bool:
        return not log.is_order_level and (normalize_sku(log.sku), log.date) in order_days
    
    existing_keys = {_key_of(log) for log in existing}
    kept: List[PriceLog] = []
    for log in existing:
        if _key_of(log) in batch:
            continue
        if superseded(log):
            stats.superseded += 1
        else:
            kept.append(log)

    for key, log in batch.items():
        kept.append(log)
        if key in existing_keys:
            stats.replaced += 1
        else:
            stats.inserted += 1

    logger.info("Price logs merged", total=len(kept), **stats.as_dict())
    return kept, stats


def merge_refund_logs(
    existing: Iterable[RefundLog],
    incoming: Iterable[RefundLog],
) -> Tuple[List[RefundLog], MergeStats]:
    """Append refunds whose id has not been seen; ids are content digests"""
    stats = MergeStats()
    merged = list(existing)
    seen = {log.id for log in merged}
    for log in incoming:
        if log.id in seen:
            stats.skipped += 1
            continue
        seen.add(log.id)
        merged.append(log)
        stats.inserted += 1
    logger.info("Refund logs merged", total=len(merged), **stats.as_dict())
    return merged, stats


class ContainerChange(str, Enum):
    """How a container differs from what was stored before the import"""
    NEW = "new"
    DELAYED = "delayed"
    EARLIER = "earlier"
    STATUS_CHANGE = "status_change"
    UNCHANGED = "unchanged"


@dataclass
class ContainerSummary:
    container_id: str
    status: str
    eta: Optional[date]
    change: ContainerChange
    sku_count: int = 0
    total_quantity: int = 0
    previous_eta: Optional[date] = None
    days_diff: int = 0


def _container_change(
    previous: Optional[ShipmentLog],
    current: ShipmentLog,
) -> Tuple[ContainerChange, int]:
    if previous is None:
        return ContainerChange.NEW, 0
    if previous.eta and current.eta and previous.eta != current.eta:
        diff = (current.eta - previous.eta).days
        return (ContainerChange.DELAYED if diff > 0 else ContainerChange.EARLIER), diff
    if previous.status != current.status:
        return ContainerChange.STATUS_CHANGE, 0
    return ContainerChange.UNCHANGED, 0


@dataclass
class ShipmentMerge:
    logs: List[ShipmentLog]
    stats: MergeStats
    containers: List[ContainerSummary] = field(default_factory=list)


_CHANGE_PRIORITY = {
    ContainerChange.DELAYED: 0,
    ContainerChange.EARLIER: 1,
    ContainerChange.STATUS_CHANGE: 2,
    ContainerChange.NEW: 3,
    ContainerChange.UNCHANGED: 4,
}


def merge_shipment_logs(
    existing: Iterable[ShipmentLog],
    incoming: Iterable[ShipmentLog],
) -> ShipmentMerge:
    """
    Upsert shipment lines by (container id, sku); the newest report wins.
    
    Also summarises each container in the import against its stored state,
    delays first.
    """
    stats = MergeStats()
    merged: Dict[Tuple[str, str], ShipmentLog] = {
        (log.container_id, normalize_sku(log.sku)): log for log in existing
    }
    previous_by_container: Dict[str, ShipmentLog] = {}
    for log in merged.values():
        previous_by_container.setdefault(log.container_id, log)
    
    summaries: Dict[str, ContainerSummary] = {}
    seen: Set[Tuple[str, str]] = set()
    for log in incoming:
        key = (log.container_id, normalize_sku(log.sku))
        if key in seen:
            stats.skipped += 1
        elif key in merged:
            stats.replaced += 1
        else:
            stats.inserted += 1
        seen.add(key)
        merged[key] = log
        
        summary = summaries.get(log.container_id)
        if summary is None:
            previous = previous_by_container.get(log.container_id)
            change, diff = _container_change(previous, log)
            summary = ContainerSummary(
                container_id=log.container_id,
                status=log.status,
                eta=log.eta,
                change=change,
                previous_eta=previous.eta if previous else None,
                days_diff=diff,
            )
            summaries[log.container_id] = summary
        summary.sku_count += 1
        summary.total_quantity += log.quantity
    
    containers = sorted(summaries.values(), key=lambda s: _CHANGE_PRIORITY[s.change])
    logger.info("Shipment logs merged", total=len(merged), containers=len(containers), **stats.as_dict())
    return ShipmentMerge(logs=list(merged.values()), stats=stats, containers=containers)
