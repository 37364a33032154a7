"""
Chat notifications for budget spikes.

Usage:
    from budget_alerts.core.notifications import GoogleChatNotifier, build_spike_card

    notifier = GoogleChatNotifier()
    await notifier.send(build_spike_card(decoded_alert, snapshot))
"""

from .google_chat import (
    GoogleChatNotifier,
    build_spike_card,
    billing_console_url,
)

__all__ = [
    "GoogleChatNotifier",
    "build_spike_card",
    "billing_console_url",
]
