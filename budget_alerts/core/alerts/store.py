"""
Alert Store

Append-only alert log plus the four trend reads over it.

- BigQueryAlertStore: streaming insert and parameterized SQL (production)
- InMemoryAlertStore: the same semantics evaluated in Python (local development)
"""

import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from budget_alerts.app.config import get_settings
from budget_alerts.core.alerts.models import AlertRecord, LatestDelta
from budget_alerts.core.alerts.queries import (
    render_query,
    month_scope_params,
    window_scope_params,
)
from budget_alerts.core.alerts.trends import (
    compute_deltas,
    percentile_cont,
    positive_deltas,
    round_money,
)
from budget_alerts.core.engine.bigquery import execute_query, streaming_insert

logger = logging.getLogger(__name__)


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class AlertStore(ABC):
    """Interface shared by every alert log backend."""

    @abstractmethod
    def insert_alert(self, record: AlertRecord) -> None:
        """Append one alert row."""
        pass

    @abstractmethod
    def count_threshold_alerts(
        self, billing_account_id: str, threshold: int, month_start: datetime
    ) -> int:
        pass

    @abstractmethod
    def average_positive_delta(
        self, billing_account_id: str, threshold: int, month_start: datetime
    ) -> Optional[Decimal]:
        pass

    @abstractmethod
    def latest_positive_delta(
        self, billing_account_id: str, window_start: datetime, percentile: float
    ) -> Optional[LatestDelta]:
        pass

    @abstractmethod
    def latest_delta(
        self, billing_account_id: str, threshold: int, month_start: datetime
    ) -> Optional[Decimal]:
        pass


# ============================================
# BigQuery
# ============================================

class BigQueryAlertStore(AlertStore):

    def __init__(self, table_id: Optional[str] = None):
        self.table_id = table_id or get_settings().table_id

    def __repr__(self) -> str:
        return f"<BigQueryAlertStore table={self.table_id}>"

    def insert_alert(self, record: AlertRecord) -> None:
        streaming_insert(self.table_id, [record.to_row()])
        logger.info(
            f"{record.budget_name} written to {self.table_id}",
            extra={"billing_account_id": record.billing_account_id, "threshold": record.threshold},
        )

    def count_threshold_alerts(
        self, billing_account_id: str, threshold: int, month_start: datetime
    ) -> int:
        rows = execute_query(
            render_query("monthly_threshold_count", self.table_id),
            month_scope_params(billing_account_id, threshold, month_start),
        )
        return int(rows[0]["cnt"]) if rows else 0

    def average_positive_delta(
        self, billing_account_id: str, threshold: int, month_start: datetime
    ) -> Optional[Decimal]:
        rows = execute_query(
            render_query("average_positive_delta", self.table_id),
            month_scope_params(billing_account_id, threshold, month_start),
        )
        return _to_decimal(rows[0]["average_spend"]) if rows else None

    def latest_positive_delta(
        self, billing_account_id: str, window_start: datetime, percentile: float
    ) -> Optional[LatestDelta]:
        rows = execute_query(
            render_query("latest_positive_delta", self.table_id, percentile=percentile),
            window_scope_params(billing_account_id, window_start),
        )
        if not rows:
            return None
        row = rows[0]
        return LatestDelta(
            budget_name=row["budgetName"],
            created_at=row["createdAt"],
            delta=_to_decimal(row["diff"]),
            percentile_value=_to_decimal(row["percentile_value"]),
        )

    def latest_delta(
        self, billing_account_id: str, threshold: int, month_start: datetime
    ) -> Optional[Decimal]:
        rows = execute_query(
            render_query("latest_delta", self.table_id),
            month_scope_params(billing_account_id, threshold, month_start),
        )
        return _to_decimal(rows[0]["diff"]) if rows else None


# ============================================
# In-Memory
# ============================================

class InMemoryAlertStore(AlertStore):
    """
    Process-local alert log for development and tests.

    Rows are kept in insertion order; deltas are computed per budget ordered
    by createdAt, exactly like the LAG window in the SQL templates.
    """

    def __init__(self):
        self._rows: List[AlertRecord] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._rows)

    @property
    def rows(self) -> List[AlertRecord]:
        with self._lock:
            return list(self._rows)

    def insert_alert(self, record: AlertRecord) -> None:
        with self._lock:
            self._rows.append(record)
        logger.info(
            f"{record.budget_name} written to in-memory alert log",
            extra={"billing_account_id": record.billing_account_id, "threshold": record.threshold},
        )

    def _select(
        self,
        billing_account_id: str,
        since: datetime,
        threshold: Optional[int] = None,
    ) -> List[AlertRecord]:
        return [
            r for r in self.rows
            if r.billing_account_id == billing_account_id
            and r.created_at >= since
            and (threshold is None or r.threshold == threshold)
        ]

    @staticmethod
    def _deltas(records: List[AlertRecord], include_first: bool = False) -> List[Dict[str, Any]]:
        """
        Rows tagged with budget, timestamp and differential.

        A budget's first row has no differential; it is kept (diff None) only
        when include_first is set. `seq` is the insertion position among `records`.
        """
        by_budget: Dict[str, List[Tuple[int, AlertRecord]]] = {}
        for seq, record in enumerate(records):
            by_budget.setdefault(record.budget_name, []).append((seq, record))

        result = []
        for budget_name, budget_rows in by_budget.items():
            budget_rows.sort(key=lambda item: item[1].created_at)
            costs = [Decimal(str(r.cost_amount)) for _, r in budget_rows]
            for (seq, record), delta in zip(budget_rows, compute_deltas(costs)):
                if delta is not None or include_first:
                    result.append({
                        "budget_name": budget_name,
                        "created_at": record.created_at,
                        "seq": seq,
                        "diff": delta,
                    })
        return result

    def count_threshold_alerts(
        self, billing_account_id: str, threshold: int, month_start: datetime
    ) -> int:
        return len(self._select(billing_account_id, month_start, threshold))

    def average_positive_delta(
        self, billing_account_id: str, threshold: int, month_start: datetime
    ) -> Optional[Decimal]:
        deltas = self._deltas(self._select(billing_account_id, month_start, threshold))
        positive = positive_deltas(d["diff"] for d in deltas)
        if not positive:
            return None
        return sum(positive, Decimal(0)) / len(positive)

    def latest_positive_delta(
        self, billing_account_id: str, window_start: datetime, percentile: float
    ) -> Optional[LatestDelta]:
        deltas = [
            d for d in self._deltas(self._select(billing_account_id, window_start))
            if d["diff"] > 0
        ]
        if not deltas:
            return None
        latest = max(deltas, key=lambda d: d["created_at"])
        return LatestDelta(
            budget_name=latest["budget_name"],
            created_at=latest["created_at"],
            delta=latest["diff"],
            percentile_value=round_money(percentile_cont([d["diff"] for d in deltas], percentile)),
        )

    def latest_delta(
        self, billing_account_id: str, threshold: int, month_start: datetime
    ) -> Optional[Decimal]:
        rows = self._deltas(
            self._select(billing_account_id, month_start, threshold), include_first=True
        )
        if not rows:
            return None
        # latest row wins even when its differential is undefined
        return max(rows, key=lambda d: (d["created_at"], d["seq"]))["diff"]


_memory_store: Optional[InMemoryAlertStore] = None
_memory_store_lock = threading.Lock()


def get_alert_store() -> AlertStore:
    """Return the alert store selected by settings.alert_store_backend."""
    global _memory_store
    if get_settings().alert_store_backend == "memory":
        with _memory_store_lock:
            if _memory_store is None:
                _memory_store = InMemoryAlertStore()
        return _memory_store
    return BigQueryAlertStore()


def reset_memory_store() -> None:
    """Drop the shared in-memory store (for testing)."""
    global _memory_store
    with _memory_store_lock:
        _memory_store = None
