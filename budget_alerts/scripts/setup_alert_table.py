#!/usr/bin/env python3
"""
Create the BigQuery dataset and table for the budget alert log.

Usage:
    python -m budget_alerts.scripts.setup_alert_table
"""

import logging
from typing import List

from google.cloud import bigquery

from budget_alerts.app.config import get_settings
from budget_alerts.core.engine.bigquery import ensure_dataset, ensure_table
from budget_alerts.core.observability.logging import setup_logging

logger = logging.getLogger(__name__)


def alert_table_schema() -> List[bigquery.SchemaField]:
    """
    Schema of the append-only alert table.

    Column names match the budget notification payload (camelCase).
    """
    return [
        bigquery.SchemaField("billingAccountId", "STRING", mode="REQUIRED",
                             description="Cloud Billing account id from the message attributes"),
        bigquery.SchemaField("budgetName", "STRING", mode="REQUIRED",
                             description="Budget display name"),
        bigquery.SchemaField("threshold", "INTEGER", mode="REQUIRED",
                             description="Exceeded threshold in whole percent (0 when absent)"),
        bigquery.SchemaField("costAmount", "FLOAT", mode="REQUIRED",
                             description="Cumulative cost at alert time"),
        bigquery.SchemaField("budgetAmount", "FLOAT", mode="REQUIRED",
                             description="Configured budget amount"),
        bigquery.SchemaField("budgetAmountType", "STRING", mode="NULLABLE",
                             description="SPECIFIED_AMOUNT or LAST_PERIOD_AMOUNT"),
        bigquery.SchemaField("currencyCode", "STRING", mode="NULLABLE",
                             description="ISO 4217 currency code"),
        bigquery.SchemaField("createdAt", "TIMESTAMP", mode="REQUIRED",
                             description="Processing time of the alert"),
    ]


def create_alert_table() -> bigquery.Table:
    """Create the dataset and alert table (idempotent)."""
    settings = get_settings()
    dataset_id = f"{settings.gcp_project_id}.{settings.bigquery_dataset}"

    ensure_dataset(
        dataset_id,
        description="Billing budget alert history",
        labels={"managed-by": "budget-alert-processor"},
    )

    return ensure_table(
        settings.table_id,
        schema=alert_table_schema(),
        partition_field="createdAt",
        cluster_fields=["billingAccountId", "threshold"],
        description="Append-only log of billing budget notifications",
    )


def main() -> None:
    setup_logging()
    table = create_alert_table()
    logger.info(f"Alert table ready: {table.full_table_id}")


if __name__ == "__main__":
    main()
