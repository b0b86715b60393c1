# ============================================================================
# NOTIFICATION CLIENT
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Core - Service Bus topic operations
# PURPOSE: Emit build status events and consume trigger events
# CREATED: 13 OCT 2026
# ============================================================================
"""
Notification Client

Build events travel on a Service Bus topic as {"eventId", "status"}.
The worker both listens on a subscription (to learn that work is waiting)
and emits buildComplete / buildFailed on the same topic.

subscribe() completes each message as soon as it is parsed; the event only
signals that the work queue has something to fetch, the work itself stays
on the queue until a build settles it. Unparseable events are
dead-lettered on the subscription.
"""

import json
import logging
from typing import Any, AsyncIterator, Dict, List

from azure.servicebus import ServiceBusMessage
from pydantic import ValidationError

from core.models import NotificationEvent

logger = logging.getLogger(__name__)


class NotificationClient:
    """Topic publish/subscribe on a shared ServiceBusClient."""

    def __init__(self, client, max_wait_time: int = 5):
        self._client = client
        self.max_wait_time = max_wait_time
        self._senders: Dict[str, Any] = {}
        self._receivers: List[Any] = []
        self._stopping = False

    async def emit(self, topic: str, event: NotificationEvent) -> None:
        """Publish an event on topic."""
        if topic not in self._senders:
            self._senders[topic] = self._client.get_topic_sender(topic_name=topic)

        await self._senders[topic].send_messages(
            ServiceBusMessage(
                body=event.to_json(),
                content_type="application/json",
                correlation_id=event.event_id,
                subject=event.status,
            )
        )
        logger.info(f"Emitted {event.status} for event {event.event_id} on {topic}")

    async def subscribe(self, topic: str, subscription: str) -> AsyncIterator[NotificationEvent]:
        """
        Yield events from a topic subscription until stop() is called.

        Each poll waits up to max_wait_time, so stop() takes effect within
        that many seconds.
        """
        self._stopping = False
        receiver = self._client.get_subscription_receiver(
            topic_name=topic,
            subscription_name=subscription,
            max_wait_time=self.max_wait_time,
        )
        self._receivers.append(receiver)
        logger.info(f"Subscribed to {topic}/{subscription}")

        while not self._stopping:
            messages = await receiver.receive_messages(
                max_message_count=1,
                max_wait_time=self.max_wait_time,
            )
            for message in messages:
                try:
                    event = NotificationEvent.from_json(str(message))
                except (ValidationError, json.JSONDecodeError, ValueError) as e:
                    logger.warning(f"Dropping unparseable notification {message.message_id}: {e}")
                    await receiver.dead_letter_message(
                        message,
                        reason="invalid_notification",
                        error_description=str(e)[:1024],
                    )
                    continue

                await receiver.complete_message(message)
                yield event

    def stop(self) -> None:
        """Make active subscribe() loops return after their current poll."""
        self._stopping = True

    async def close(self) -> None:
        self.stop()
        for receiver in self._receivers:
            await receiver.close()
        for sender in self._senders.values():
            await sender.close()
        self._receivers.clear()
        self._senders.clear()


__all__ = [
    "NotificationClient",
]
