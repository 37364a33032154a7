"""
Budget alert errors and models.

The processor lives in budget_alerts.core.alerts.processor.
"""

from .exceptions import (
    BudgetAlertError,
    DecodeError,
    MissingFieldError,
    PersistenceError,
    QueryError,
    NotificationError,
)
from .models import (
    AlertDecision,
    AlertRecord,
    DecisionOutcome,
    DecodedAlert,
    ProcessingResult,
    PubSubMessage,
    PushEnvelope,
    TrendSnapshot,
)

__all__ = [
    "BudgetAlertError",
    "DecodeError",
    "MissingFieldError",
    "PersistenceError",
    "QueryError",
    "NotificationError",
    "AlertDecision",
    "AlertRecord",
    "DecisionOutcome",
    "DecodedAlert",
    "ProcessingResult",
    "PubSubMessage",
    "PushEnvelope",
    "TrendSnapshot",
]
