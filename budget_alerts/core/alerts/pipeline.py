"""
Persistence and trend query steps.

Each step wraps backend failures in the matching fatal error so the processor
never continues with a missing row or partial trend data.

Store calls are blocking (BigQuery client), so they run in the default thread
pool executor; steps still execute one after another.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional, TypeVar

from budget_alerts.app.config import get_settings
from budget_alerts.core.alerts.exceptions import PersistenceError, QueryError
from budget_alerts.core.alerts.models import AlertRecord, TrendSnapshot
from budget_alerts.core.alerts.store import AlertStore
from budget_alerts.core.alerts.trends import query_window

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def persist_alert(store: AlertStore, record: AlertRecord) -> None:
    """Append the alert row. Raises PersistenceError on any failure."""
    loop = asyncio.get_event_loop()
    try:
        await loop.run_in_executor(None, lambda: store.insert_alert(record))
    except Exception as e:
        logger.error(
            f"Failed to persist alert for {record.budget_name}: {e}",
            extra={"billing_account_id": record.billing_account_id},
            exc_info=True,
        )
        raise PersistenceError(f"Failed to persist alert row: {e}") from e


async def _run(query_name: str, fn: Callable[[], T]) -> T:
    loop = asyncio.get_event_loop()
    try:
        return await loop.run_in_executor(None, fn)
    except Exception as e:
        logger.error(f"Trend query {query_name} failed: {e}", exc_info=True)
        raise QueryError(query_name, str(e)) from e


async def run_trend_queries(
    store: AlertStore,
    record: AlertRecord,
    now: datetime,
    trailing_window_days: Optional[int] = None,
    percentile: Optional[float] = None,
) -> TrendSnapshot:
    """
    Run the four trend queries for a freshly persisted alert.

    Args:
        store: Alert store the record was written to
        record: The alert that triggered this invocation
        now: Processing time; month and window boundaries derive from it
        trailing_window_days: Days before month start covered by the percentile window
        percentile: Fraction used for the spike percentile (e.g. 0.99)

    Returns:
        TrendSnapshot with all four results

    Raises:
        QueryError: If any query fails
    """
    settings = get_settings()
    if trailing_window_days is None:
        trailing_window_days = settings.trailing_window_days
    if percentile is None:
        percentile = settings.spike_percentile

    month_start, window_start = query_window(now, trailing_window_days)
    account = record.billing_account_id
    threshold = record.threshold

    count = await _run(
        "monthly_threshold_count",
        lambda: store.count_threshold_alerts(account, threshold, month_start),
    )
    average = await _run(
        "average_positive_delta",
        lambda: store.average_positive_delta(account, threshold, month_start),
    )
    latest_positive = await _run(
        "latest_positive_delta",
        lambda: store.latest_positive_delta(account, window_start, percentile),
    )
    zero_diff = await _run(
        "latest_delta",
        lambda: store.latest_delta(account, threshold, month_start),
    )

    snapshot = TrendSnapshot(
        monthly_threshold_count=count,
        average_positive_delta=average,
        latest_delta=latest_positive.delta if latest_positive else None,
        latest_delta_budget=latest_positive.budget_name if latest_positive else None,
        percentile_value=latest_positive.percentile_value if latest_positive else None,
        zero_diff_delta=zero_diff,
    )

    logger.info(
        f"Trend snapshot: count={snapshot.monthly_threshold_count} "
        f"avg={snapshot.average_positive_delta} diff={snapshot.latest_delta} "
        f"percentile={snapshot.percentile_value} zero_diff={snapshot.zero_diff_delta}",
        extra={"billing_account_id": account, "threshold": threshold},
    )
    return snapshot
