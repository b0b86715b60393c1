# ============================================================================
# WORKER CONTRACTS
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Core - Worker configuration
# PURPOSE: Environment-sourced configuration for the build worker
# CREATED: 14 OCT 2026
# ============================================================================
"""
Worker Contracts

WorkerConfig gathers everything the daemon needs from the environment.
Missing required values raise ConfigurationError at startup, before any
connection is opened.
"""

import os
import socket
from dataclasses import dataclass, field
from typing import Mapping, Optional

from core.errors import ConfigurationError
from messaging.config import MessagingConfig
from providers.fn_project import DEFAULT_RETRY_DELAY_SECONDS, get_fn_project_url


@dataclass
class WorkerConfig:
    """Configuration for a function build worker."""

    # Identity
    worker_id: str

    # Service Bus entities and auth
    messaging: MessagingConfig = field(default_factory=MessagingConfig)

    # Blob storage (connection string OR account name)
    storage_connection_string: Optional[str] = None
    storage_account: Optional[str] = None

    # Database (None = build from POSTGRES_* at pool init)
    database_url: Optional[str] = None

    # FaaS provider
    provider_url: str = ""
    provider_invoke_host: Optional[str] = None
    provider_retry_delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS

    # Container registry "host[:port]"
    container_host: Optional[str] = None

    # Parent directory for build workspaces (system temp if None)
    work_dir: Optional[str] = None

    # Health server
    health_port: int = 8000

    # Pause after an event fails before taking the next one
    error_pause_seconds: float = 1.0

    @property
    def work_queue(self) -> str:
        return self.messaging.work_queue

    @property
    def dead_letter_queue(self) -> str:
        return self.messaging.dead_letter_queue

    @property
    def notification_topic(self) -> str:
        return self.messaging.notification_topic

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "WorkerConfig":
        """Create config from environment variables."""
        env = os.environ if env is None else env

        storage_connection_string = env.get("BUILDER_STORAGE_CONNECTION_STRING")
        storage_account = env.get("BUILDER_STORAGE_ACCOUNT")
        if not storage_connection_string and not storage_account:
            raise ConfigurationError(
                "BUILDER_STORAGE_CONNECTION_STRING or BUILDER_STORAGE_ACCOUNT is required"
            )

        try:
            retry_delay = float(env.get("BUILDER_PROVIDER_RETRY_DELAY", DEFAULT_RETRY_DELAY_SECONDS))
            health_port = int(env.get("PORT", "8000"))
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric setting: {e}") from e

        return cls(
            worker_id=env.get("BUILDER_WORKER_ID", f"builder-{socket.gethostname()}"),
            messaging=MessagingConfig.from_env(env),
            storage_connection_string=storage_connection_string,
            storage_account=storage_account,
            database_url=env.get("DATABASE_URL"),
            provider_url=get_fn_project_url(env),
            provider_invoke_host=env.get("BUILDER_PROVIDER_INVOKE_HOST") or None,
            provider_retry_delay_seconds=retry_delay,
            container_host=env.get("BUILDER_CONTAINER_HOST") or None,
            work_dir=env.get("BUILDER_WORK_DIR") or None,
            health_port=health_port,
        )


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "WorkerConfig",
]
