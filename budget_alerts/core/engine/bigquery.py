"""
BigQuery client singleton for the Budget Alert Processor.
Thin wrappers over query, streaming insert and table provisioning.

No retry logic lives here: a failed call fails the invocation and Pub/Sub
redelivery is the only retry layer.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence
from functools import lru_cache

from google.cloud import bigquery

from budget_alerts.app.config import get_settings

logger = logging.getLogger(__name__)

QueryParameter = bigquery.ScalarQueryParameter


@lru_cache()
def get_bq_client() -> bigquery.Client:
    settings = get_settings()
    return bigquery.Client(
        project=settings.gcp_project_id,
        location=settings.bigquery_location,
    )


def execute_query(
    query: str,
    params: Optional[List[QueryParameter]] = None,
) -> List[Dict[str, Any]]:
    """Execute a parameterized BigQuery query and return rows as dicts."""
    settings = get_settings()
    client = get_bq_client()

    job_config = bigquery.QueryJobConfig(query_parameters=params or [])

    query_job = client.query(query, job_config=job_config, location=settings.bigquery_location)
    rows = [dict(row) for row in query_job.result()]

    logger.debug(
        f"Query completed: {len(rows)} rows",
        extra={
            "total_bytes_processed": query_job.total_bytes_processed,
            "cache_hit": query_job.cache_hit,
        },
    )
    return rows


def streaming_insert(
    table_id: str,
    rows: List[Dict[str, Any]],
) -> None:
    """Insert rows via BigQuery Streaming Insert API. Raises on failure."""
    client = get_bq_client()
    errors = client.insert_rows_json(table_id, rows)
    if errors:
        logger.error(f"BigQuery streaming insert errors for {table_id}: {errors}")
        raise RuntimeError(f"BigQuery streaming insert failed: {errors}")


def ensure_dataset(
    dataset_id: str,
    description: Optional[str] = None,
    labels: Optional[Dict[str, str]] = None,
) -> bigquery.Dataset:
    """Create a dataset if it does not exist (idempotent)."""
    client = get_bq_client()

    dataset = bigquery.Dataset(dataset_id)
    dataset.location = get_settings().bigquery_location
    if description:
        dataset.description = description
    if labels:
        dataset.labels = labels

    dataset = client.create_dataset(dataset, exists_ok=True)
    logger.info(f"Created/verified dataset: {dataset_id}")
    return dataset


def ensure_table(
    table_id: str,
    schema: Sequence[bigquery.SchemaField],
    partition_field: Optional[str] = None,
    cluster_fields: Optional[List[str]] = None,
    description: Optional[str] = None,
) -> bigquery.Table:
    """Create a table if it does not exist (idempotent)."""
    client = get_bq_client()

    table = bigquery.Table(table_id, schema=list(schema))

    if partition_field:
        table.time_partitioning = bigquery.TimePartitioning(
            type_=bigquery.TimePartitioningType.DAY,
            field=partition_field,
        )

    if cluster_fields:
        table.clustering_fields = cluster_fields

    if description:
        table.description = description

    table = client.create_table(table, exists_ok=True)
    logger.info(
        f"Created/verified table: {table_id}",
        extra={"num_fields": len(schema)},
    )
    return table
