"""
Budget notification decoder.

Turns a Pub/Sub message published by Cloud Billing budgets into an
AlertRecord. The payload body carries the budget figures; the billing
account id only travels in the message attributes.
"""

import base64
import binascii
import json
import logging
import math
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Optional

from budget_alerts.core.alerts.exceptions import DecodeError, MissingFieldError
from budget_alerts.core.alerts.models import AlertRecord, DecodedAlert, PubSubMessage
from budget_alerts.core.utils.formatting import format_currency

logger = logging.getLogger(__name__)

_REQUIRED_PAYLOAD_FIELDS = ("budgetDisplayName", "costAmount", "budgetAmount")


def compute_threshold(alert_threshold_exceeded: Any) -> int:
    """
    Convert the fractional threshold to a whole percentage (0.95 -> 95).

    Absent, non-numeric and non-finite values resolve to 0.
    """
    if alert_threshold_exceeded is None or isinstance(alert_threshold_exceeded, bool):
        return 0
    try:
        value = Decimal(str(alert_threshold_exceeded))
    except (InvalidOperation, ValueError):
        return 0
    if not value.is_finite():
        return 0
    percent = int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return max(percent, 0)


def _decode_payload(data: Optional[str]) -> Dict[str, Any]:
    if not data:
        raise MissingFieldError("data", "message")
    try:
        raw = base64.b64decode(data, validate=True)
        payload = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise DecodeError(f"Message data is not base64-encoded JSON: {e}") from e

    if not isinstance(payload, dict):
        raise DecodeError(f"Message data must be a JSON object, got {type(payload).__name__}")
    return payload


def _require_amount(payload: Dict[str, Any], field_name: str) -> float:
    value = payload[field_name]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DecodeError(f"{field_name} must be a number, got {value!r}")
    try:
        amount = float(value)
    except OverflowError as e:
        raise DecodeError(f"{field_name} is out of range") from e
    if not math.isfinite(amount):
        raise DecodeError(f"{field_name} must be finite, got {value!r}")
    return amount


def decode_alert(message: PubSubMessage, now: Optional[datetime] = None) -> DecodedAlert:
    """
    Decode a budget notification message.

    Args:
        message: Pub/Sub message with base64 `data` and `attributes`
        now: Processing time used as createdAt (defaults to current UTC time)

    Returns:
        DecodedAlert with the record to persist and USD display strings

    Raises:
        DecodeError: If the data is not base64 JSON or amounts are not numbers
        MissingFieldError: If billingAccountId or a required payload field is absent
    """
    payload = _decode_payload(message.data)

    billing_account_id = message.attributes.get("billingAccountId")
    if not billing_account_id:
        raise MissingFieldError("billingAccountId", "attribute")

    for field_name in _REQUIRED_PAYLOAD_FIELDS:
        if payload.get(field_name) is None:
            raise MissingFieldError(field_name, "payload")

    cost_amount = _require_amount(payload, "costAmount")
    budget_amount = _require_amount(payload, "budgetAmount")

    record = AlertRecord(
        billing_account_id=billing_account_id,
        budget_name=str(payload["budgetDisplayName"]),
        threshold=compute_threshold(payload.get("alertThresholdExceeded")),
        cost_amount=cost_amount,
        budget_amount=budget_amount,
        budget_amount_type=payload.get("budgetAmountType"),
        currency_code=payload.get("currencyCode"),
        created_at=now or datetime.now(timezone.utc),
    )

    logger.info(
        f"Decoded budget alert for {record.budget_name}",
        extra={
            "billing_account_id": record.billing_account_id,
            "threshold": record.threshold,
            "message_id": message.message_id,
        },
    )

    return DecodedAlert(
        record=record,
        cost_display=format_currency(cost_amount),
        budget_amount_display=format_currency(budget_amount),
        message_id=message.message_id,
    )
