"""
Shared fixtures for budget alert processor tests.
Mocks BigQuery and the chat webhook so tests run without GCP credentials.

Patches target the LOCAL binding (where the import is used), not the
defining module: `from X import Y` creates a new reference in the importing
module.
"""

import base64
import json
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from unittest.mock import patch

import httpx
import pytest


# Set test environment BEFORE any imports that read settings
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("GCP_PROJECT_ID", "test-project")
os.environ.setdefault("BIGQUERY_DATASET", "billing_alerts")
os.environ.setdefault("BIGQUERY_TABLE", "budget_alerts")
os.environ.setdefault("GOOGLE_CHAT_WEBHOOK_URL", "https://chat.example.com/v1/spaces/TEST/messages")


TEST_ACCOUNT_ID = "ACC1"
TEST_TABLE_ID = "test-project.billing_alerts.budget_alerts"
NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Clear lru_cache on settings and the shared in-memory store between tests."""
    from budget_alerts.app.config import get_settings
    from budget_alerts.core.alerts.store import reset_memory_store
    get_settings.cache_clear()
    reset_memory_store()
    yield
    get_settings.cache_clear()
    reset_memory_store()


# ─── Message builders ────────────────────────────────────────────────

def budget_payload(**overrides: Any) -> Dict[str, Any]:
    """A Cloud Billing budget notification body."""
    payload = {
        "budgetDisplayName": "prod-budget",
        "alertThresholdExceeded": 0.9,
        "costAmount": 1000.0,
        "costIntervalStart": "2026-10-01T07:00:00Z",
        "budgetAmount": 2000.0,
        "budgetAmountType": "SPECIFIED_AMOUNT",
        "currencyCode": "USD",
    }
    payload.update(overrides)
    return payload


def encode_data(payload: Any) -> str:
    return base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")


def make_message(
    payload: Optional[Dict[str, Any]] = None,
    attributes: Optional[Dict[str, str]] = None,
    message_id: str = "msg-1",
):
    from budget_alerts.core.alerts.models import PubSubMessage
    return PubSubMessage(
        data=encode_data(payload if payload is not None else budget_payload()),
        attributes=attributes if attributes is not None else {"billingAccountId": TEST_ACCOUNT_ID},
        message_id=message_id,
    )


@pytest.fixture()
def message_factory():
    return make_message


# ─── Core engine mocks (patch at consumer module) ─────────────────────

@pytest.fixture()
def mock_execute_query():
    with patch("budget_alerts.core.alerts.store.execute_query") as mock:
        mock.return_value = []
        yield mock


@pytest.fixture()
def mock_streaming_insert():
    with patch("budget_alerts.core.alerts.store.streaming_insert") as mock:
        mock.return_value = None
        yield mock


# ─── Webhook ──────────────────────────────────────────────────────────

class WebhookRecorder:
    """httpx.MockTransport handler that records posted cards."""

    def __init__(self, status_code: int = 200, error: Optional[Exception] = None):
        self.status_code = status_code
        self.error = error
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, json={"name": "spaces/TEST/messages/1"})

    @property
    def cards(self) -> List[Dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests]


@pytest.fixture()
def webhook():
    return WebhookRecorder()


@pytest.fixture()
def notifier_factory():
    """Build a GoogleChatNotifier backed by a WebhookRecorder."""
    from budget_alerts.core.notifications import GoogleChatNotifier

    def _factory(recorder: WebhookRecorder, webhook_url: str = "https://chat.example.com/hook"):
        client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
        return GoogleChatNotifier(webhook_url=webhook_url, client=client)

    return _factory


@pytest.fixture()
def payload_factory():
    return budget_payload


@pytest.fixture()
def now():
    return NOW


@pytest.fixture()
def webhook_factory():
    return WebhookRecorder
