"""
Cost differential helpers.

Python counterparts of the window functions used by the trend queries:
LAG-based deltas per budget and PERCENTILE_CONT over positive deltas.
"""

from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Sequence, Tuple

_TWO_PLACES = Decimal("0.01")


def month_start(now: datetime) -> datetime:
    """Midnight on the first day of the month containing `now` (same tzinfo)."""
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def query_window(now: datetime, trailing_days: int) -> Tuple[datetime, datetime]:
    """Return (month_start, window_start) where the window reaches back `trailing_days` further."""
    start = month_start(now)
    return start, start - timedelta(days=trailing_days)


def compute_deltas(costs: Sequence[Decimal]) -> List[Optional[Decimal]]:
    """
    Differential of each observation against its predecessor.

    The first observation has no predecessor and yields None:
    [100, 100, 150] -> [None, 0, 50]
    """
    deltas: List[Optional[Decimal]] = []
    previous: Optional[Decimal] = None
    for cost in costs:
        deltas.append(None if previous is None else cost - previous)
        previous = cost
    return deltas


def positive_deltas(deltas: Iterable[Optional[Decimal]]) -> List[Decimal]:
    """Deltas eligible for averaging and percentiles (defined and > 0)."""
    return [d for d in deltas if d is not None and d > 0]


def percentile_cont(values: Sequence[Decimal], fraction: float) -> Optional[Decimal]:
    """
    Linear-interpolated percentile, matching BigQuery PERCENTILE_CONT.

    Returns None for an empty input.
    """
    if not values:
        return None
    ordered = sorted(values)
    position = Decimal(str(fraction)) * (len(ordered) - 1)
    lower = int(position)
    upper = min(lower + 1, len(ordered) - 1)
    weight = position - lower
    return ordered[lower] + (ordered[upper] - ordered[lower]) * weight


def round_money(value: Optional[Decimal]) -> Optional[Decimal]:
    if value is None:
        return None
    return value.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)
