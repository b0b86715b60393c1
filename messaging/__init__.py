# ============================================================================
# MESSAGING PACKAGE
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Core - Azure Service Bus adapters
# PURPOSE: Work queue, dead-letter queue and notification topic access
# CREATED: 13 OCT 2026
# ============================================================================
"""
Messaging Package

Usage:
    from messaging import MessagingConfig, ServiceBusConnection, QueueClient

    connection = ServiceBusConnection(MessagingConfig.from_env())
    queues = QueueClient(connection.client)
    message = await queues.fetch_message("function-builds")
"""

from .config import MessagingConfig, DEFAULT_NOTIFICATION_SUBSCRIPTION
from .connection import ServiceBusConnection
from .notifications import NotificationClient
from .queues import QueueClient, QueueMessage

__all__ = [
    "MessagingConfig",
    "DEFAULT_NOTIFICATION_SUBSCRIPTION",
    "ServiceBusConnection",
    "NotificationClient",
    "QueueClient",
    "QueueMessage",
]
