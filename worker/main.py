# ============================================================================
# WORKER MAIN ENTRY POINT
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Core - Worker process entry point
# PURPOSE: Wire collaborators and run the build worker
# CREATED: 14 OCT 2026
# ============================================================================
"""
Worker Main Entry Point

Starts a function build worker that:
1. Loads configuration from the environment
2. Starts a health server for container probes
3. Connects to Service Bus, Blob Storage, PostgreSQL and the FaaS provider
4. Builds functions until SIGTERM/SIGINT

Usage:
    python -m worker.main

Environment Variables:
    BUILDER_WORKER_ID: Unique worker identifier
    BUILDER_WORK_QUEUE / BUILDER_WORK_QUEUE_DLQ: Work and dead-letter queues
    BUILDER_NOTIFICATION_TOPIC: Build notification topic
    BUILDER_SERVICEBUS_CONNECTION_STRING: Service Bus connection
    BUILDER_SERVICEBUS_FQDN: Service Bus namespace (if using managed identity)
    USE_MANAGED_IDENTITY: "true" to use Azure managed identity
    BUILDER_STORAGE_CONNECTION_STRING / BUILDER_STORAGE_ACCOUNT: Source bundles
    DATABASE_URL: PostgreSQL connection (or POSTGRES_*)
    BUILDER_PROVIDER_URL: Fn Project API base URL
    BUILDER_CONTAINER_HOST: Registry host[:port] for image tags
    BUILDER_LOG_LEVEL / BUILDER_LOG_FORMAT: Logging
"""

import asyncio
import functools
import os
import signal
import sys
from typing import Optional

from aiohttp import web

from __version__ import __version__, BUILD_DATE
from core.errors import ConfigurationError
from core.logging import configure_logging, get_logger, ComponentType
from builder.pipeline import BuildPipeline
from infrastructure.command_runner import SubprocessCommandRunner
from infrastructure.registry_host import ContainerHostResolver
from infrastructure.storage import BlobRepository
from messaging import NotificationClient, QueueClient, ServiceBusConnection
from providers.registry import ProviderRegistry
from repositories import FunctionRepository, close_pool, init_pool
from worker.consumer import BuildWorker
from worker.contracts import WorkerConfig

configure_logging(
    level=os.environ.get("BUILDER_LOG_LEVEL", "INFO"),
    json_output=os.environ.get("BUILDER_LOG_FORMAT", "").lower() == "json",
)
logger = get_logger(__name__, component=ComponentType.WORKER)

# Worker state for health checks
_worker_healthy = True
_worker_status = "starting"
_worker_config: Optional[WorkerConfig] = None
_worker: Optional[BuildWorker] = None


# ============================================================================
# HEALTH SERVER
# ============================================================================

async def health_handler(request):
    """Health endpoint: version, queue configuration and worker stats."""
    response_data = {
        "status": "healthy" if _worker_healthy else "unhealthy",
        "worker_status": _worker_status,
        "version": __version__,
        "build_date": BUILD_DATE,
        "worker_id": _worker_config.worker_id if _worker_config else "unknown",
        "queue": _worker_config.work_queue if _worker_config else "unknown",
        "consuming": _worker.running if _worker else False,
    }

    if _worker:
        response_data["stats"] = _worker.stats

    if _worker_healthy:
        return web.json_response(response_data)
    return web.json_response(response_data, status=503)


def create_health_app() -> web.Application:
    app = web.Application()
    app.router.add_get("/", health_handler)
    app.router.add_get("/health", health_handler)
    app.router.add_get("/livez", health_handler)
    app.router.add_get("/readyz", health_handler)
    return app


async def start_health_server(port: int = 8000) -> web.AppRunner:
    """Start minimal HTTP server for health probes."""
    runner = web.AppRunner(create_health_app())
    await runner.setup()
    site = web.TCPSite(runner, "0.0.0.0", port)
    await site.start()
    logger.info(f"Health server started on port {port}")
    return runner


# ============================================================================
# MAIN
# ============================================================================

async def main() -> None:
    """Main entry point."""
    global _worker_healthy, _worker_status, _worker_config, _worker

    logger.info("=" * 60)
    logger.info(f"Function Builder Starting v{__version__}")
    logger.info("=" * 60)

    try:
        config = WorkerConfig.from_env()
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    _worker_config = config
    logger.info(f"Worker ID: {config.worker_id}")
    logger.info(f"Queue: {config.work_queue} (dead-letter: {config.dead_letter_queue})")
    logger.info(f"Provider: {config.provider_url}")

    health_runner = await start_health_server(config.health_port)

    pool = await init_pool(connection_string=config.database_url)
    connection = ServiceBusConnection(config.messaging)
    queues = QueueClient(
        connection.client,
        max_wait_time=config.messaging.receive_wait_seconds,
        max_lock_renewal_duration=config.messaging.lock_renewal_seconds,
    )
    notifications = NotificationClient(connection.client, max_wait_time=config.messaging.receive_wait_seconds)
    blob_repo = BlobRepository(
        account_name=config.storage_account,
        connection_string=config.storage_connection_string,
    )
    providers = ProviderRegistry.default(
        provider_url=config.provider_url,
        retry_delay_seconds=config.provider_retry_delay_seconds,
    )
    logger.info(f"Providers configured for runtimes: {', '.join(providers.list_runtimes())}")

    pipeline = BuildPipeline(
        blob_repo=blob_repo,
        repository_factory=functools.partial(FunctionRepository.acquire, pool),
        providers=providers,
        host_resolver=ContainerHostResolver(config.container_host),
        command_runner=SubprocessCommandRunner(),
        invoke_host_override=config.provider_invoke_host,
        work_dir=config.work_dir,
    )
    _worker = BuildWorker(config, pipeline, queues, notifications, blob_repo)

    loop = asyncio.get_running_loop()

    def shutdown_handler():
        logger.info("Shutdown signal received")
        _worker.stop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, shutdown_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    _worker_status = "running"

    try:
        await _worker.run()
    except Exception as e:
        logger.exception(f"Worker failed: {e}")
        _worker_healthy = False
        _worker_status = f"error: {str(e)[:100]}"
        raise
    finally:
        await notifications.close()
        await queues.close()
        await connection.close()
        await providers.close()
        blob_repo.close()
        await close_pool()
        await health_runner.cleanup()

    logger.info("Function Builder stopped")


def run() -> None:
    """Synchronous entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
