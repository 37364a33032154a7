"""
Tests for the spike decision.
"""

from decimal import Decimal

import pytest

from budget_alerts.core.alerts.decision import decide
from budget_alerts.core.alerts.models import DecisionOutcome, TrendSnapshot


def _snapshot(zero_diff="500", latest="120", percentile="100", count=1):
    return TrendSnapshot(
        monthly_threshold_count=count,
        latest_delta=Decimal(latest) if latest is not None else None,
        percentile_value=Decimal(percentile) if percentile is not None else None,
        zero_diff_delta=Decimal(zero_diff) if zero_diff is not None else None,
    )


class TestDecide:
    def test_above_percentile_notifies(self):
        decision = decide(_snapshot(latest="120", percentile="100"))
        assert decision.outcome == DecisionOutcome.NOTIFY
        assert decision.should_notify

    def test_below_percentile_suppresses(self):
        decision = decide(_snapshot(latest="80", percentile="100"))
        assert decision.outcome == DecisionOutcome.SUPPRESS_BELOW_PERCENTILE
        assert decision.reason == "Below the percentile threshold"

    def test_equal_to_percentile_suppresses(self):
        decision = decide(_snapshot(latest="100", percentile="100"))
        assert decision.outcome == DecisionOutcome.SUPPRESS_BELOW_PERCENTILE

    @pytest.mark.parametrize("zero_diff", ["0", "-25", None])
    def test_zero_diff_always_suppresses(self, zero_diff):
        decision = decide(_snapshot(zero_diff=zero_diff, latest="1000", percentile="1"))
        assert decision.outcome == DecisionOutcome.SUPPRESS_ZERO_DIFF
        assert decision.reason == "Last differential was zero"

    def test_zero_diff_wins_over_repeat_gate(self):
        decision = decide(_snapshot(zero_diff="0", count=5), suppress_repeats=True)
        assert decision.outcome == DecisionOutcome.SUPPRESS_ZERO_DIFF

    def test_repeat_ignored_by_default(self):
        snapshot = _snapshot(count=3)
        assert snapshot.is_repeat
        assert decide(snapshot).outcome == DecisionOutcome.NOTIFY

    def test_repeat_gate_runs_before_percentile(self):
        decision = decide(_snapshot(count=2), suppress_repeats=True)
        assert decision.outcome == DecisionOutcome.SUPPRESS_REPEAT
        assert "2 times" in decision.reason

    def test_first_fire_passes_repeat_gate(self):
        decision = decide(_snapshot(count=1), suppress_repeats=True)
        assert decision.outcome == DecisionOutcome.NOTIFY

    def test_missing_percentile_suppresses(self):
        decision = decide(_snapshot(latest=None, percentile=None))
        assert decision.outcome == DecisionOutcome.SUPPRESS_BELOW_PERCENTILE
