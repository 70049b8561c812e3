"""
Weekly period arithmetic.

Periods are non-overlapping 7-day weeks starting on a fixed weekday
(Friday by default, the weekly reporting cut-off). Period 0 is the week
holding the most recent date of an import; the index grows backward.
"""

from datetime import date, timedelta
from typing import Iterable, Optional, Tuple

FRIDAY = 4


def week_start(day: date, anchor_weekday: int = FRIDAY) -> date:
    """First day of the anchor-weekday week containing ``day``"""
    return day - timedelta(days=(day.weekday() - anchor_weekday) % 7)


def week_bounds(day: date, anchor_weekday: int = FRIDAY) -> Tuple[date, date]:
    """Inclusive (start, end) of the week containing ``day``"""
    start = week_start(day, anchor_weekday)
    return start, start + timedelta(days=6)


def period_index(day: date, latest: date, anchor_weekday: int = FRIDAY) -> int:
    """Weeks between ``day`` and the week holding ``latest`` (0 = same week)"""
    delta = week_start(latest, anchor_weekday) - week_start(day, anchor_weekday)
    return delta.days // 7


def span_days(dates: Iterable[date]) -> int:
    """Days covered by ``dates``, first and last inclusive; 0 when empty"""
    first: Optional[date] = None
    last: Optional[date] = None
    for d in dates:
        first = d if first is None or d < first else first
        last = d if last is None or d > last else last
    if first is None:
        return 0
    return (last - first).days + 1
