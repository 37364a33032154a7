"""
Budget Alert Models

Pydantic models for the inbound Pub/Sub message, the persisted alert row,
trend query results and the notify/suppress decision.
"""

import base64
from enum import Enum
from decimal import Decimal
from typing import Optional, Dict, Any
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict


class DecisionOutcome(str, Enum):
    """Result of the spike decision."""
    NOTIFY = "notify"
    SUPPRESS_ZERO_DIFF = "suppress_zero_diff"
    SUPPRESS_REPEAT = "suppress_repeat"
    SUPPRESS_BELOW_PERCENTILE = "suppress_below_percentile"


# ============================================
# Inbound Messages
# ============================================

class PubSubMessage(BaseModel):
    """A Pub/Sub message carrying a budget notification."""
    model_config = ConfigDict(populate_by_name=True)

    data: Optional[str] = Field(default=None, description="Base64-encoded JSON payload")
    attributes: Dict[str, str] = Field(default_factory=dict)
    message_id: Optional[str] = Field(default=None, alias="messageId")
    publish_time: Optional[str] = Field(default=None, alias="publishTime")

    @classmethod
    def from_pull_message(cls, message: Any) -> "PubSubMessage":
        """Build from a google-cloud-pubsub subscriber message (raw bytes payload)."""
        publish_time = getattr(message, "publish_time", None)
        return cls(
            data=base64.b64encode(message.data).decode("ascii"),
            attributes=dict(message.attributes),
            message_id=message.message_id,
            publish_time=publish_time.isoformat() if publish_time else None,
        )


class PushEnvelope(BaseModel):
    """Body of a Pub/Sub push subscription request."""
    message: PubSubMessage
    subscription: Optional[str] = None


# ============================================
# Alert Log
# ============================================

class AlertRecord(BaseModel):
    """One row of the append-only alert table."""
    billing_account_id: str
    budget_name: str
    threshold: int = Field(..., ge=0)
    cost_amount: float
    budget_amount: float
    budget_amount_type: Optional[str] = None
    currency_code: Optional[str] = None
    created_at: datetime

    def to_row(self) -> Dict[str, Any]:
        """Serialize with the table's column names for a streaming insert."""
        return {
            "billingAccountId": self.billing_account_id,
            "budgetName": self.budget_name,
            "threshold": self.threshold,
            "costAmount": self.cost_amount,
            "budgetAmount": self.budget_amount,
            "budgetAmountType": self.budget_amount_type,
            "currencyCode": self.currency_code,
            "createdAt": self.created_at.isoformat(),
        }


class DecodedAlert(BaseModel):
    """Decoder output: the record to persist plus display strings for the card."""
    record: AlertRecord
    cost_display: str
    budget_amount_display: str
    message_id: Optional[str] = None


# ============================================
# Trend Results
# ============================================

class LatestDelta(BaseModel):
    """Most recent positive differential in the window and the window's percentile."""
    budget_name: str
    created_at: datetime
    delta: Decimal
    percentile_value: Optional[Decimal] = None


class TrendSnapshot(BaseModel):
    """Combined result of the four trend queries."""
    monthly_threshold_count: int = 0
    average_positive_delta: Optional[Decimal] = None
    latest_delta: Optional[Decimal] = None
    latest_delta_budget: Optional[str] = None
    percentile_value: Optional[Decimal] = None
    zero_diff_delta: Optional[Decimal] = None

    @property
    def is_repeat(self) -> bool:
        """True once this threshold fired more than once for the account this month."""
        return self.monthly_threshold_count > 1


class AlertDecision(BaseModel):
    outcome: DecisionOutcome
    reason: str

    @property
    def should_notify(self) -> bool:
        return self.outcome == DecisionOutcome.NOTIFY


class ProcessingResult(BaseModel):
    """Summary of one invocation."""
    message_id: Optional[str] = None
    billing_account_id: str
    budget_name: str
    threshold: int
    outcome: DecisionOutcome
    reason: str
    notified: bool = False
    is_repeat: bool = False
    monthly_threshold_count: int = 0
    latest_delta: Optional[Decimal] = None
    percentile_value: Optional[Decimal] = None
    average_positive_delta: Optional[Decimal] = Field(
        default=None,
        description="Diagnostic only: mean positive cost differential this month at this threshold",
    )
