"""
Google Chat Notification Provider

Posts card messages to a Google Chat space through an incoming webhook.
Delivery is fire-and-forget: failures are logged and reported as False,
never raised to the caller.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from budget_alerts.app.config import get_settings
from budget_alerts.core.alerts.exceptions import NotificationError
from budget_alerts.core.alerts.models import DecodedAlert, TrendSnapshot
from budget_alerts.core.utils.formatting import format_currency

logger = logging.getLogger(__name__)

_HEADERS = {"Content-Type": "application/json; charset=UTF-8"}


def billing_console_url(billing_account_id: str) -> str:
    return f"{get_settings().billing_console_base_url}/{billing_account_id}"


def build_spike_card(alert: DecodedAlert, snapshot: TrendSnapshot) -> Dict[str, Any]:
    """
    Build the card posted when the latest cost differential beats the percentile.

    See: https://developers.google.com/chat/api/guides/v1/messages/create#create
    """
    settings = get_settings()
    record = alert.record

    header: Dict[str, Any] = {
        "title": record.budget_name,
        "subtitle": settings.chat_card_subtitle,
    }
    if settings.chat_card_image_url:
        header["imageUrl"] = settings.chat_card_image_url

    diff = format_currency(snapshot.latest_delta or 0)
    percentile = format_currency(snapshot.percentile_value or 0)

    widgets: List[Dict[str, Any]] = [
        {
            "keyValue": {
                "topLabel": "<b>Run rate this month</b>",
                "content": f"{alert.cost_display} | Threshold: {record.threshold}%",
            }
        },
        {
            "keyValue": {
                "topLabel": "<b>Spend Status</b>",
                "content": (
                    f'The last cost differential was <font color="#ff0000">{diff}</font> <br> '
                    f"which was higher than the percentile threshold of <br> {percentile}"
                ),
            }
        },
    ]

    return {
        "cards": [
            {
                "header": header,
                "sections": [
                    {"widgets": widgets},
                    {
                        "widgets": [
                            {
                                "buttons": [
                                    {
                                        "textButton": {
                                            "text": "OPEN BILLING CONSOLE",
                                            "onClick": {
                                                "openLink": {
                                                    "url": billing_console_url(record.billing_account_id)
                                                }
                                            },
                                        }
                                    }
                                ]
                            }
                        ]
                    },
                ],
            }
        ]
    }


class GoogleChatNotifier:
    """
    Google Chat incoming webhook sender.

    Args:
        webhook_url: Space webhook URL (defaults to settings)
        client: Optional shared httpx.AsyncClient; a short-lived one is used otherwise
    """

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.webhook_url = webhook_url or get_settings().google_chat_webhook_url
        self._client = client

    @property
    def provider_name(self) -> str:
        return "google_chat"

    @property
    def is_configured(self) -> bool:
        return bool(self.webhook_url)

    async def _post(self, card: Dict[str, Any]) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(self.webhook_url, json=card, headers=_HEADERS)
        async with httpx.AsyncClient() as client:
            return await client.post(self.webhook_url, json=card, headers=_HEADERS)

    async def _send_notification(self, card: Dict[str, Any]) -> None:
        """
        POST the card.

        Raises:
            NotificationError: If the webhook is unreachable or answers non-2xx
        """
        if not self.is_configured:
            raise NotificationError("Google Chat webhook URL is not configured")

        try:
            response = await self._post(card)
        except httpx.HTTPError as e:
            raise NotificationError(f"Google Chat webhook request failed: {e}") from e

        if not response.is_success:
            raise NotificationError(
                f"Google Chat webhook failed with status {response.status_code}: {response.text[:500]}"
            )

        logger.info(f"Google Chat notification sent (status {response.status_code})")

    async def send(self, card: Dict[str, Any]) -> bool:
        """Send a card. Returns True on delivery; failures are logged, not raised."""
        try:
            await self._send_notification(card)
            return True
        except NotificationError as e:
            logger.error(f"Google Chat notification failed: {e}")
            return False
