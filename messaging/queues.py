# ============================================================================
# WORK QUEUE CLIENT
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Core - Service Bus queue operations
# PURPOSE: Fetch, enqueue and delete build request messages
# CREATED: 13 OCT 2026
# ============================================================================
"""
Work Queue Client

Thin async wrapper over Service Bus queues:

- fetch_message(queue): receive at most one message (peek-lock)
- enqueue_message(queue, body): send a message
- delete_message(message): complete a fetched message

Receivers are cached per queue and stay open between fetch and delete;
completing a message requires the receiver that locked it. A build can
outlast the queue's lock duration, so every fetched message is registered
with an AutoLockRenewer until it is settled or max_lock_renewal_duration
runs out.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from azure.servicebus import ServiceBusMessage
from azure.servicebus.aio import AutoLockRenewer

logger = logging.getLogger(__name__)


@dataclass
class QueueMessage:
    """A received message and the handle needed to settle it."""
    id: str
    body: str
    queue_name: str
    raw: Any = None


class QueueClient:
    """Queue operations on a shared ServiceBusClient."""

    def __init__(self, client, max_wait_time: int = 5, max_lock_renewal_duration: float = 3600):
        """
        Args:
            client: azure.servicebus.aio.ServiceBusClient
            max_wait_time: Seconds fetch_message waits for a message
            max_lock_renewal_duration: Seconds a fetched message's lock is kept alive
        """
        self._client = client
        self.max_wait_time = max_wait_time
        self.max_lock_renewal_duration = max_lock_renewal_duration
        self._lock_renewer: Optional[AutoLockRenewer] = None
        self._receivers: Dict[str, Any] = {}
        self._senders: Dict[str, Any] = {}

    def _get_receiver(self, queue_name: str):
        if queue_name not in self._receivers:
            self._receivers[queue_name] = self._client.get_queue_receiver(
                queue_name=queue_name,
                max_wait_time=self.max_wait_time,
            )
            logger.debug(f"Opened receiver for queue: {queue_name}")
        return self._receivers[queue_name]

    def _get_sender(self, queue_name: str):
        if queue_name not in self._senders:
            self._senders[queue_name] = self._client.get_queue_sender(queue_name=queue_name)
            logger.debug(f"Opened sender for queue: {queue_name}")
        return self._senders[queue_name]

    async def fetch_message(self, queue_name: str) -> Optional[QueueMessage]:
        """
        Receive one message from queue_name.

        Returns:
            QueueMessage, or None if the queue stayed empty for max_wait_time
        """
        receiver = self._get_receiver(queue_name)
        messages = await receiver.receive_messages(
            max_message_count=1,
            max_wait_time=self.max_wait_time,
        )
        if not messages:
            return None

        message = messages[0]
        if self._lock_renewer is None:
            self._lock_renewer = AutoLockRenewer(
                max_lock_renewal_duration=self.max_lock_renewal_duration,
            )
        self._lock_renewer.register(receiver, message, on_lock_renew_failure=self._on_lock_lost)

        logger.debug(f"Fetched message {message.message_id} from {queue_name}")
        return QueueMessage(
            id=str(message.message_id),
            body=str(message),
            queue_name=queue_name,
            raw=message,
        )

    async def enqueue_message(
        self,
        queue_name: str,
        body: str,
        message_id: Optional[str] = None,
    ) -> None:
        sender = self._get_sender(queue_name)
        await sender.send_messages(
            ServiceBusMessage(
                body=body,
                message_id=message_id,
                content_type="application/json",
            )
        )
        logger.info(f"Enqueued message {message_id or ''} to {queue_name}")

    async def delete_message(self, message: QueueMessage) -> None:
        """Complete (remove) a message fetched by this client."""
        receiver = self._receivers.get(message.queue_name)
        if receiver is None:
            raise ValueError(f"Message {message.id} was not fetched from {message.queue_name} by this client")
        await receiver.complete_message(message.raw)
        logger.debug(f"Deleted message {message.id} from {message.queue_name}")

    async def _on_lock_lost(self, message, error: Optional[Exception]) -> None:
        logger.warning(f"Lock renewal stopped for message {message.message_id}: {error}")

    async def close(self) -> None:
        if self._lock_renewer is not None:
            await self._lock_renewer.close()
            self._lock_renewer = None
        for receiver in self._receivers.values():
            await receiver.close()
        for sender in self._senders.values():
            await sender.close()
        self._receivers.clear()
        self._senders.clear()


__all__ = [
    "QueueClient",
    "QueueMessage",
]
