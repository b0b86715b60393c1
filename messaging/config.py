# ============================================================================
# MESSAGING CONFIGURATION
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Core - Service Bus configuration
# PURPOSE: Centralize queue/topic names and Service Bus authentication
# CREATED: 13 OCT 2026
# ============================================================================
"""
Messaging Configuration

Configuration for the Azure Service Bus namespace that carries the work
queue, its dead-letter queue and the build notification topic.
Supports both connection string and managed identity authentication.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from core.errors import ConfigurationError

DEFAULT_NOTIFICATION_SUBSCRIPTION = "function-builder"
DEFAULT_LOCK_RENEWAL_SECONDS = 3600


@dataclass
class MessagingConfig:
    """
    Configuration for Azure Service Bus messaging.

    Loaded from environment variables.
    """
    # Connection - either connection_string OR fully_qualified_namespace
    connection_string: Optional[str] = None
    fully_qualified_namespace: Optional[str] = None

    # Managed identity settings
    use_managed_identity: bool = False
    managed_identity_client_id: Optional[str] = None

    # Entity names (MUST be set explicitly - no defaults)
    work_queue: str = ""
    dead_letter_queue: str = ""
    notification_topic: str = ""
    notification_subscription: str = DEFAULT_NOTIFICATION_SUBSCRIPTION

    # Seconds a receive call waits for a message
    receive_wait_seconds: int = 5

    # Upper bound on how long a fetched work message keeps its lock renewed
    lock_renewal_seconds: int = DEFAULT_LOCK_RENEWAL_SECONDS

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "MessagingConfig":
        """
        Load configuration from environment variables.

        For connection string auth:
            BUILDER_SERVICEBUS_CONNECTION_STRING: Service Bus connection string

        For managed identity auth:
            USE_MANAGED_IDENTITY: Set to "true" to use managed identity
            BUILDER_SERVICEBUS_FQDN: Fully qualified namespace
            AZURE_CLIENT_ID: Optional client ID for user-assigned managed identity

        Common:
            BUILDER_WORK_QUEUE: Work queue (REQUIRED)
            BUILDER_WORK_QUEUE_DLQ: Dead-letter queue (REQUIRED)
            BUILDER_NOTIFICATION_TOPIC: Notification topic (REQUIRED)
            BUILDER_NOTIFICATION_SUBSCRIPTION: Subscription on that topic
            BUILDER_LOCK_RENEWAL_SECONDS: Max lock renewal for a work message
        """
        env = os.environ if env is None else env

        names = {}
        for key, var in (
            ("work_queue", "BUILDER_WORK_QUEUE"),
            ("dead_letter_queue", "BUILDER_WORK_QUEUE_DLQ"),
            ("notification_topic", "BUILDER_NOTIFICATION_TOPIC"),
        ):
            value = env.get(var)
            if not value:
                raise ConfigurationError(f"{var} environment variable is required")
            names[key] = value

        names["notification_subscription"] = env.get(
            "BUILDER_NOTIFICATION_SUBSCRIPTION", DEFAULT_NOTIFICATION_SUBSCRIPTION
        )
        try:
            names["receive_wait_seconds"] = int(env.get("BUILDER_RECEIVE_WAIT_SECONDS", "5"))
        except ValueError as e:
            raise ConfigurationError(f"BUILDER_RECEIVE_WAIT_SECONDS must be an integer: {e}") from e
        try:
            names["lock_renewal_seconds"] = int(
                env.get("BUILDER_LOCK_RENEWAL_SECONDS", DEFAULT_LOCK_RENEWAL_SECONDS)
            )
        except ValueError as e:
            raise ConfigurationError(f"BUILDER_LOCK_RENEWAL_SECONDS must be an integer: {e}") from e

        use_mi = env.get("USE_MANAGED_IDENTITY", "").lower() == "true"

        if use_mi:
            fqdn = env.get("BUILDER_SERVICEBUS_FQDN")
            if not fqdn:
                raise ConfigurationError(
                    "BUILDER_SERVICEBUS_FQDN required when USE_MANAGED_IDENTITY=true"
                )
            return cls(
                use_managed_identity=True,
                fully_qualified_namespace=fqdn,
                managed_identity_client_id=env.get("AZURE_CLIENT_ID"),
                **names,
            )

        connection_string = env.get("BUILDER_SERVICEBUS_CONNECTION_STRING")
        if not connection_string:
            raise ConfigurationError(
                "BUILDER_SERVICEBUS_CONNECTION_STRING required (or set USE_MANAGED_IDENTITY=true)"
            )
        return cls(connection_string=connection_string, **names)
