"""
Budget Alert Processor

Handles one budget notification end to end:
1. Decode the Pub/Sub message
2. Append the alert row
3. Run the trend queries
4. Decide notify / suppress
5. Post a Google Chat card on notify

Steps 1-4 fail the invocation on error. Step 5 never does.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from budget_alerts.app.config import get_settings
from budget_alerts.core.alerts.decision import decide
from budget_alerts.core.alerts.decoder import decode_alert
from budget_alerts.core.alerts.models import PubSubMessage, ProcessingResult
from budget_alerts.core.alerts.pipeline import persist_alert, run_trend_queries
from budget_alerts.core.alerts.store import AlertStore, get_alert_store
from budget_alerts.core.notifications import GoogleChatNotifier, build_spike_card

logger = logging.getLogger(__name__)


async def process_budget_alert(
    message: PubSubMessage,
    store: Optional[AlertStore] = None,
    notifier: Optional[GoogleChatNotifier] = None,
    now: Optional[datetime] = None,
) -> ProcessingResult:
    """
    Process a single budget notification.

    Args:
        message: Inbound Pub/Sub message
        store: Alert store (defaults to the configured backend)
        notifier: Chat notifier (defaults to the configured webhook)
        now: Processing time (defaults to current UTC time)

    Returns:
        ProcessingResult describing the decision and whether a card was delivered

    Raises:
        DecodeError, MissingFieldError: Malformed message; nothing persisted
        PersistenceError: Row could not be written; no queries run
        QueryError: A trend query failed; no notification attempted
    """
    settings = get_settings()
    now = now or datetime.now(timezone.utc)
    if store is None:
        store = get_alert_store()

    alert = decode_alert(message, now=now)
    record = alert.record
    log_context = {
        "billing_account_id": record.billing_account_id,
        "budget_name": record.budget_name,
        "threshold": record.threshold,
        "message_id": message.message_id,
    }

    await persist_alert(store, record)

    snapshot = await run_trend_queries(store, record, now)

    decision = decide(snapshot, suppress_repeats=settings.suppress_repeat_alerts)
    logger.info(
        f"Decision for {record.budget_name}: {decision.outcome.value} ({decision.reason})",
        extra={**log_context, "outcome": decision.outcome.value, "is_repeat": snapshot.is_repeat},
    )

    notified = False
    if decision.should_notify:
        if notifier is None:
            notifier = GoogleChatNotifier()
        notified = await notifier.send(build_spike_card(alert, snapshot))

    return ProcessingResult(
        message_id=message.message_id,
        billing_account_id=record.billing_account_id,
        budget_name=record.budget_name,
        threshold=record.threshold,
        outcome=decision.outcome,
        reason=decision.reason,
        notified=notified,
        is_repeat=snapshot.is_repeat,
        monthly_threshold_count=snapshot.monthly_threshold_count,
        latest_delta=snapshot.latest_delta,
        percentile_value=snapshot.percentile_value,
        average_positive_delta=snapshot.average_positive_delta,
    )
