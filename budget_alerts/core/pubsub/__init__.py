"""
Pub/Sub pull consumer for budget notifications.
"""

from budget_alerts.core.pubsub.worker import BudgetAlertWorker

__all__ = ["BudgetAlertWorker"]
