"""
Product Metrics Module
"""
from .calculations import (
    classify_status,
    daily_profit,
    net_margin,
    optimal_price,
    recommend,
    runway_days,
    safe_div,
)
from .recalculator import RecalcResult, recalculate, recalculate_with_config, weighted_price

__all__ = [
    "classify_status",
    "daily_profit",
    "net_margin",
    "optimal_price",
    "recommend",
    "runway_days",
    "safe_div",
    "RecalcResult",
    "recalculate",
    "recalculate_with_config",
    "weighted_price",
]
