"""
Pub/Sub Worker for consuming budget notifications.
Pulls messages from a subscription and runs the alert processor on each.

Usage:
    budget-alert-worker --subscription budget-alerts-sub
"""

import argparse
import asyncio
import logging
from typing import Optional

from google.cloud import pubsub_v1

from budget_alerts.app.config import get_settings
from budget_alerts.core.alerts.exceptions import BudgetAlertError
from budget_alerts.core.alerts.models import PubSubMessage
from budget_alerts.core.alerts.processor import process_budget_alert
from budget_alerts.core.alerts.store import AlertStore
from budget_alerts.core.observability.logging import setup_logging

logger = logging.getLogger(__name__)


class BudgetAlertWorker:
    """Worker that pulls budget notifications from Pub/Sub and processes them."""

    def __init__(
        self,
        subscription_name: Optional[str] = None,
        max_messages: Optional[int] = None,
        store: Optional[AlertStore] = None,
        subscriber: Optional[pubsub_v1.SubscriberClient] = None,
    ):
        """
        Initialize Pub/Sub worker.

        Args:
            subscription_name: Subscription to pull from (defaults to settings)
            max_messages: Flow control limit on outstanding messages
            store: Alert store override (defaults to the configured backend)
            subscriber: Subscriber client override
        """
        settings = get_settings()
        self.project_id = settings.gcp_project_id
        self.subscription_name = subscription_name or settings.pubsub_subscription
        self.max_messages = max_messages or settings.pubsub_max_messages
        self.subscription_path = f"projects/{self.project_id}/subscriptions/{self.subscription_name}"

        self.store = store
        self.subscriber = subscriber if subscriber is not None else pubsub_v1.SubscriberClient()

        # Execution tracking
        self.processed_count = 0
        self.notified_count = 0
        self.failure_count = 0

    def _message_callback(self, message: pubsub_v1.subscriber.message.Message):
        """
        Callback for processing Pub/Sub messages.

        Fatal processing errors nack the message so the subscription's retry
        policy decides on redelivery.
        """
        try:
            envelope = PubSubMessage.from_pull_message(message)

            # Pub/Sub callbacks are sync; run the async processor to completion
            result = asyncio.run(process_budget_alert(envelope, store=self.store))

            self.processed_count += 1
            if result.notified:
                self.notified_count += 1
            message.ack()

            if self.processed_count % 100 == 0:
                logger.info(
                    f"Worker progress: {self.processed_count} processed, "
                    f"{self.notified_count} notified, {self.failure_count} failed"
                )

        except BudgetAlertError as e:
            self.failure_count += 1
            logger.error(
                f"Budget alert processing failed: {e}",
                extra={"message_id": message.message_id},
            )
            message.nack()
        except Exception as e:
            self.failure_count += 1
            logger.error(f"Error processing message: {e}", exc_info=True)
            message.nack()

    def start(self, block: bool = True):
        """
        Start worker to pull and process messages.

        Args:
            block: If True, blocks until interrupted. If False, returns the streaming pull future.
        """
        logger.info(
            f"Starting budget alert worker",
            extra={
                "subscription": self.subscription_path,
                "max_messages": self.max_messages,
            }
        )

        flow_control = pubsub_v1.types.FlowControl(max_messages=self.max_messages)

        streaming_pull_future = self.subscriber.subscribe(
            self.subscription_path,
            callback=self._message_callback,
            flow_control=flow_control,
        )

        logger.info(f"Worker listening for messages on {self.subscription_path}")

        if block:
            try:
                streaming_pull_future.result()
            except KeyboardInterrupt:
                streaming_pull_future.cancel()
                logger.info("Worker stopped by user")

        return streaming_pull_future


def main(argv: Optional[list] = None) -> None:
    parser = argparse.ArgumentParser(description="Pull budget notifications from Pub/Sub")
    parser.add_argument("--subscription", help="Subscription name (defaults to PUBSUB_SUBSCRIPTION)")
    parser.add_argument("--max-messages", type=int, help="Maximum outstanding messages")
    args = parser.parse_args(argv)

    setup_logging()
    BudgetAlertWorker(
        subscription_name=args.subscription,
        max_messages=args.max_messages,
    ).start(block=True)


if __name__ == "__main__":
    main()
