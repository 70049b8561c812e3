"""
Log History Module
"""
from .merger import (
    ContainerChange,
    ContainerSummary,
    MergeStats,
    ShipmentMerge,
    merge_price_logs,
    merge_refund_logs,
    merge_shipment_logs,
    price_log_id,
    refund_id,
)

__all__ = [
    "ContainerChange",
    "ContainerSummary",
    "MergeStats",
    "ShipmentMerge",
    "merge_price_logs",
    "merge_refund_logs",
    "merge_shipment_logs",
    "price_log_id",
    "refund_id",
]
