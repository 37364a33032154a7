"""
Trend Query Templates

BigQuery Standard SQL for the four trend queries run after each alert is
logged. Every query derives cost differentials the same way: LAG(costAmount)
over the budget's rows ordered by createdAt. The first row of a budget has no
predecessor, so its differential is NULL: it drops out of the aggregate
queries and makes the latest-row query return NULL.

Templates are formatted with the fully qualified table id (and, for the
percentile query, the percentile fraction, which BigQuery only accepts as a
literal). Everything else is bound as a query parameter.
"""

from datetime import datetime
from typing import Dict, List

from google.cloud import bigquery

# Differential of each row against the previous row of the same budget
_DELTAS = """
        SELECT
            budgetName,
            createdAt,
            costAmount - LAG(costAmount, 1) OVER (
                PARTITION BY budgetName ORDER BY createdAt
            ) AS diff
        FROM `{table_id}`
        WHERE {scope}
"""

_MONTH_THRESHOLD_SCOPE = (
    "createdAt >= @month_start "
    "AND threshold = @threshold "
    "AND billingAccountId = @billing_account_id"
)

_WINDOW_SCOPE = (
    "createdAt >= @window_start "
    "AND billingAccountId = @billing_account_id"
)


QUERY_TEMPLATES: Dict[str, str] = {
    # --------------------------------------------
    # How often this threshold fired for the account this month
    # --------------------------------------------
    "monthly_threshold_count": """
        SELECT COUNT(*) AS cnt
        FROM `{table_id}`
        WHERE """ + _MONTH_THRESHOLD_SCOPE + """
    """,

    # --------------------------------------------
    # Mean positive differential this month at this threshold
    # --------------------------------------------
    "average_positive_delta": """
        SELECT CAST(AVG(diff) AS BIGNUMERIC) AS average_spend
        FROM (""" + _DELTAS.replace("{scope}", _MONTH_THRESHOLD_SCOPE) + """)
        WHERE diff > 0
    """,

    # --------------------------------------------
    # Latest positive differential in the trailing window, all thresholds,
    # paired with the window's percentile of positive differentials
    # --------------------------------------------
    "latest_positive_delta": """
        SELECT
            budgetName,
            createdAt,
            CAST(diff AS BIGNUMERIC) AS diff,
            CAST(ROUND(PERCENTILE_CONT(diff, {percentile}) OVER (), 2) AS BIGNUMERIC) AS percentile_value
        FROM (""" + _DELTAS.replace("{scope}", _WINDOW_SCOPE) + """)
        WHERE diff > 0
        ORDER BY createdAt DESC
        LIMIT 1
    """,

    # --------------------------------------------
    # Differential of the most recent row this month at this threshold.
    # Zero and NULL (first row of a budget) are returned as-is
    # --------------------------------------------
    "latest_delta": """
        SELECT
            budgetName,
            createdAt,
            CAST(diff AS BIGNUMERIC) AS diff
        FROM (""" + _DELTAS.replace("{scope}", _MONTH_THRESHOLD_SCOPE) + """)
        ORDER BY createdAt DESC
        LIMIT 1
    """,
}


def render_query(template_name: str, table_id: str, percentile: float = 0.99) -> str:
    """Format a template with the table id and percentile literal."""
    if template_name not in QUERY_TEMPLATES:
        raise ValueError(f"Unknown query template: {template_name}")
    if not 0.0 < percentile < 1.0:
        raise ValueError(f"percentile must be between 0 and 1, got {percentile}")
    return QUERY_TEMPLATES[template_name].format(
        table_id=table_id,
        percentile=repr(float(percentile)),
    )


def month_scope_params(
    billing_account_id: str,
    threshold: int,
    month_start: datetime,
) -> List[bigquery.ScalarQueryParameter]:
    return [
        bigquery.ScalarQueryParameter("billing_account_id", "STRING", billing_account_id),
        bigquery.ScalarQueryParameter("threshold", "INT64", threshold),
        bigquery.ScalarQueryParameter("month_start", "TIMESTAMP", month_start),
    ]


def window_scope_params(
    billing_account_id: str,
    window_start: datetime,
) -> List[bigquery.ScalarQueryParameter]:
    return [
        bigquery.ScalarQueryParameter("billing_account_id", "STRING", billing_account_id),
        bigquery.ScalarQueryParameter("window_start", "TIMESTAMP", window_start),
    ]
