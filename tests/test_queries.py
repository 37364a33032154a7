"""
Tests for trend query templates and parameters.
"""

from datetime import datetime, timezone

import pytest

from budget_alerts.core.alerts.queries import (
    QUERY_TEMPLATES,
    month_scope_params,
    render_query,
    window_scope_params,
)

TABLE_ID = "test-project.billing_alerts.budget_alerts"


class TestRenderQuery:
    @pytest.mark.parametrize("name", sorted(QUERY_TEMPLATES))
    def test_all_templates_reference_table(self, name):
        query = render_query(name, TABLE_ID)
        assert f"`{TABLE_ID}`" in query
        assert "@billing_account_id" in query
        assert "{" not in query

    def test_unknown_template(self):
        with pytest.raises(ValueError, match="Unknown query template"):
            render_query("nope", TABLE_ID)

    @pytest.mark.parametrize("percentile", [0.0, 1.0, 1.5])
    def test_percentile_bounds(self, percentile):
        with pytest.raises(ValueError, match="percentile"):
            render_query("latest_positive_delta", TABLE_ID, percentile=percentile)

    def test_percentile_literal(self):
        query = render_query("latest_positive_delta", TABLE_ID, percentile=0.95)
        assert "PERCENTILE_CONT(diff, 0.95)" in query

    def test_month_scoped_queries_filter_threshold(self):
        for name in ("monthly_threshold_count", "average_positive_delta", "latest_delta"):
            query = render_query(name, TABLE_ID)
            assert "threshold = @threshold" in query
            assert "createdAt >= @month_start" in query

    def test_window_query_is_account_wide(self):
        query = render_query("latest_positive_delta", TABLE_ID)
        assert "@threshold" not in query
        assert "createdAt >= @window_start" in query
        assert "ORDER BY createdAt DESC" in query

    def test_delta_queries_use_lag_per_budget(self):
        for name in ("average_positive_delta", "latest_positive_delta", "latest_delta"):
            query = render_query(name, TABLE_ID)
            assert "PARTITION BY budgetName ORDER BY createdAt" in query

    def test_zero_diff_guard_reads_latest_row_unfiltered(self):
        query = render_query("latest_delta", TABLE_ID)
        assert "diff IS NOT NULL" not in query
        assert "diff > 0" not in query
        assert "ORDER BY createdAt DESC" in query


class TestParams:
    def test_month_scope(self):
        start = datetime(2026, 10, 1, tzinfo=timezone.utc)
        params = {p.name: p for p in month_scope_params("ACC1", 90, start)}
        assert params["billing_account_id"].value == "ACC1"
        assert params["threshold"].type_ == "INT64"
        assert params["threshold"].value == 90
        assert params["month_start"].type_ == "TIMESTAMP"
        assert params["month_start"].value == start

    def test_window_scope(self):
        start = datetime(2026, 9, 21, tzinfo=timezone.utc)
        params = {p.name: p for p in window_scope_params("ACC1", start)}
        assert set(params) == {"billing_account_id", "window_start"}
        assert params["window_start"].value == start
