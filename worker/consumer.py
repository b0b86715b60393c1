# ============================================================================
# BUILD WORKER
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Core - Event-driven build loop
# PURPOSE: Turn notification events into builds and settle the work queue
# CREATED: 14 OCT 2026
# ============================================================================
"""
Build Worker

Listens on the notification topic. Every non-terminal event pulls at most
one message off the work queue and runs the build pipeline on it.

Settlement:
- success: emit buildComplete, delete the source bundle, delete the message
- failure: copy the original body to the dead-letter queue, delete the
  message, emit buildFailed

Events already carrying buildComplete/buildFailed were emitted by a
builder and are ignored. Messages are processed one at a time.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from core.contracts import BuildStatus
from core.logging import log_context
from core.models import BuildRequest, NotificationEvent
from builder.pipeline import BuildPipeline
from infrastructure.storage import BlobRepository
from messaging.notifications import NotificationClient
from messaging.queues import QueueClient, QueueMessage
from worker.contracts import WorkerConfig

logger = logging.getLogger(__name__)


# ============================================================================
# WORKER
# ============================================================================

class BuildWorker:
    """Sequential notification-driven build consumer."""

    def __init__(
        self,
        config: WorkerConfig,
        pipeline: BuildPipeline,
        queues: QueueClient,
        notifications: NotificationClient,
        blob_repo: BlobRepository,
    ):
        self.config = config
        self._pipeline = pipeline
        self._queues = queues
        self._notifications = notifications
        self._blob_repo = blob_repo

        # State
        self._running = False

        # Stats
        self._events_received = 0
        self._events_ignored = 0
        self._builds_succeeded = 0
        self._builds_failed = 0
        self._event_errors = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def stats(self) -> Dict[str, Any]:
        return {
            "events_received": self._events_received,
            "events_ignored": self._events_ignored,
            "builds_succeeded": self._builds_succeeded,
            "builds_failed": self._builds_failed,
            "event_errors": self._event_errors,
        }

    async def run(self) -> None:
        """
        Consume notification events until stop() is called.

        An event that raises (e.g. the queue fetch failed) is logged and the
        loop pauses briefly before taking the next one.
        """
        self._running = True
        logger.info(
            f"Build worker {self.config.worker_id} listening on "
            f"{self.config.notification_topic}/{self.config.messaging.notification_subscription}"
        )

        try:
            async for event in self._notifications.subscribe(
                self.config.notification_topic,
                self.config.messaging.notification_subscription,
            ):
                try:
                    await self.handle_event(event)
                except Exception as e:
                    self._event_errors += 1
                    logger.exception(f"Error handling event {event.event_id}: {e}")
                    await asyncio.sleep(self.config.error_pause_seconds)

                if not self._running:
                    break
        finally:
            self._running = False
            logger.info(f"Build worker stopped. Stats: {self.stats}")

    def stop(self) -> None:
        """Request shutdown; the loop exits after the current event."""
        logger.info("Stopping build worker...")
        self._running = False
        self._notifications.stop()

    async def handle_event(self, event: NotificationEvent) -> Optional[bool]:
        """
        Process one notification event.

        Returns:
            None if nothing was built (terminal event or empty queue),
            True if a build succeeded, False if it was dead-lettered

        Raises:
            Any error fetching the message or settling a successful build
        """
        self._events_received += 1

        if event.is_terminal:
            self._events_ignored += 1
            logger.debug(f"Ignoring {event.status} event {event.event_id}")
            return None

        with log_context(event_id=event.event_id, worker_id=self.config.worker_id):
            try:
                message = await self._queues.fetch_message(self.config.work_queue)
            except Exception as e:
                logger.error(f"Failed to fetch message from {self.config.work_queue}: {e}")
                raise

            if message is None:
                logger.debug(f"No message waiting on {self.config.work_queue}")
                return None

            with log_context(message_id=message.id):
                try:
                    request = BuildRequest.from_json(message.body)
                    await self._pipeline.build_function(request)
                except Exception as e:
                    logger.error(f"Build for message {message.id} failed: {type(e).__name__}: {e}")
                    await self._handle_failure(event, message)
                    return False

                await self._handle_success(event, message, request)
                return True

    async def _handle_success(
        self,
        event: NotificationEvent,
        message: QueueMessage,
        request: BuildRequest,
    ) -> None:
        await self._notifications.emit(
            self.config.notification_topic,
            NotificationEvent.for_status(event.event_id, BuildStatus.BUILD_COMPLETE),
        )

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(
            None,
            self._blob_repo.delete_container_or_path,
            request.source_container,
            request.source_path,
        )

        await self._queues.delete_message(message)
        self._builds_succeeded += 1
        logger.info(f"Build for {request.function_id} complete")

    async def _handle_failure(self, event: NotificationEvent, message: QueueMessage) -> None:
        await self._queues.enqueue_message(
            self.config.dead_letter_queue,
            message.body,
            message_id=message.id,
        )
        await self._queues.delete_message(message)
        await self._notifications.emit(
            self.config.notification_topic,
            NotificationEvent.for_status(event.event_id, BuildStatus.BUILD_FAILED),
        )
        self._builds_failed += 1
        logger.info(f"Message {message.id} moved to {self.config.dead_letter_queue}")


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "BuildWorker",
]
