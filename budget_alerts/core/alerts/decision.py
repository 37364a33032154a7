"""Spike decision over a trend snapshot."""

from budget_alerts.core.alerts.models import AlertDecision, DecisionOutcome, TrendSnapshot


def decide(snapshot: TrendSnapshot, suppress_repeats: bool = False) -> AlertDecision:
    """
    Decide whether the latest cost differential warrants a notification.

    Order matters:
    1. No positive differential since the previous alert at this threshold -> suppress.
    2. Repeat threshold this month, when repeat suppression is enabled -> suppress.
    3. Latest positive differential above the window percentile -> notify.
    4. Anything else -> suppress.
    """
    zero_diff = snapshot.zero_diff_delta
    if zero_diff is None or zero_diff <= 0:
        return AlertDecision(
            outcome=DecisionOutcome.SUPPRESS_ZERO_DIFF,
            reason="Last differential was zero",
        )

    if suppress_repeats and snapshot.is_repeat:
        return AlertDecision(
            outcome=DecisionOutcome.SUPPRESS_REPEAT,
            reason=f"Threshold already fired {snapshot.monthly_threshold_count} times this month",
        )

    if snapshot.latest_delta is None or snapshot.percentile_value is None:
        return AlertDecision(
            outcome=DecisionOutcome.SUPPRESS_BELOW_PERCENTILE,
            reason="No positive differential in the trailing window",
        )

    if snapshot.latest_delta > snapshot.percentile_value:
        return AlertDecision(
            outcome=DecisionOutcome.NOTIFY,
            reason="Percentile exceeded",
        )

    return AlertDecision(
        outcome=DecisionOutcome.SUPPRESS_BELOW_PERCENTILE,
        reason="Below the percentile threshold",
    )
