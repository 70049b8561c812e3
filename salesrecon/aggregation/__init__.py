"""
Transaction Aggregation Module
"""
from .aggregator import (
    AggregationBucket,
    AggregationOutput,
    AggregationResult,
    TransactionAggregator,
    UpsertOutcome,
)
from .periods import period_index, span_days, week_bounds, week_start

__all__ = [
    "AggregationBucket",
    "AggregationOutput",
    "AggregationResult",
    "TransactionAggregator",
    "UpsertOutcome",
    "period_index",
    "span_days",
    "week_bounds",
    "week_start",
]
