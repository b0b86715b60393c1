# ============================================================================
# SERVICE BUS CONNECTION
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Core - Shared Service Bus client
# PURPOSE: Own the ServiceBusClient (and credential) used by queues and topics
# CREATED: 13 OCT 2026
# ============================================================================
"""
Service Bus Connection

One ServiceBusClient per process, shared by QueueClient and
NotificationClient. Closing the connection closes the credential too.
"""

import logging
from typing import Optional

from azure.servicebus.aio import ServiceBusClient

from .config import MessagingConfig

logger = logging.getLogger(__name__)


class ServiceBusConnection:
    """Lazily created ServiceBusClient plus its credential."""

    def __init__(self, config: MessagingConfig):
        self.config = config
        self._client: Optional[ServiceBusClient] = None
        self._credential = None

    @property
    def client(self) -> ServiceBusClient:
        if self._client is None:
            self._client = self._connect()
        return self._client

    def _connect(self) -> ServiceBusClient:
        if self.config.use_managed_identity:
            from azure.identity.aio import ManagedIdentityCredential

            if self.config.managed_identity_client_id:
                self._credential = ManagedIdentityCredential(
                    client_id=self.config.managed_identity_client_id
                )
            else:
                self._credential = ManagedIdentityCredential()

            logger.info(
                f"Connecting to Service Bus via managed identity: "
                f"{self.config.fully_qualified_namespace}"
            )
            return ServiceBusClient(
                fully_qualified_namespace=self.config.fully_qualified_namespace,
                credential=self._credential,
            )

        logger.info("Connecting to Service Bus via connection string")
        return ServiceBusClient.from_connection_string(self.config.connection_string)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

        if self._credential is not None:
            await self._credential.close()
            self._credential = None

        logger.info("Service Bus connection closed")


__all__ = [
    "ServiceBusConnection",
]
