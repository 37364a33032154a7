"""
Budget Alert Processor - FastAPI push endpoint.

Endpoints:
- POST /pubsub/budget-alerts  → Pub/Sub push subscription target
- GET  /health                → Health check

Pub/Sub treats any non-2xx answer as a nack and redelivers per the
subscription's retry policy.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException

from budget_alerts.app.config import get_settings
from budget_alerts.app.middleware.logging import RequestLoggingMiddleware
from budget_alerts.core.alerts.exceptions import (
    DecodeError,
    MissingFieldError,
    PersistenceError,
    QueryError,
)
from budget_alerts.core.alerts.models import ProcessingResult, PushEnvelope
from budget_alerts.core.alerts.processor import process_budget_alert
from budget_alerts.core.observability.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    settings = get_settings()
    logger.info(
        f"Starting {settings.app_name} v{settings.app_version} "
        f"(store={settings.alert_store_backend}, table={settings.table_id})"
    )
    yield
    logger.info("Shutting down budget alert processor")


app = FastAPI(
    title="Budget Alert Processor",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)


# ============================================
# Health
# ============================================

@app.get("/health")
async def health():
    settings = get_settings()
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
    }


# ============================================
# Pub/Sub push
# ============================================

@app.post("/pubsub/budget-alerts", response_model=ProcessingResult)
async def receive_budget_alert(envelope: PushEnvelope):
    """Process one budget notification delivered by a push subscription."""
    try:
        return await process_budget_alert(envelope.message)
    except (DecodeError, MissingFieldError) as e:
        logger.error(
            f"Rejected budget alert: {e}",
            extra={"message_id": envelope.message.message_id, "subscription": envelope.subscription},
        )
        raise HTTPException(status_code=400, detail=str(e))
    except (PersistenceError, QueryError) as e:
        logger.error(
            f"Budget alert processing failed: {e}",
            extra={"message_id": envelope.message.message_id, "subscription": envelope.subscription},
        )
        raise HTTPException(status_code=500, detail=str(e))
