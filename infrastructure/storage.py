# ============================================================================
# BLOB STORAGE INFRASTRUCTURE
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Infrastructure - Azure Blob Storage operations
# PURPOSE: Fetch source bundles and remove them after a successful build
# CREATED: 08 OCT 2026
# ============================================================================
"""
Blob Storage Infrastructure

BlobRepository wraps the (synchronous) Azure Blob Storage SDK:
- download_blob_to_directory: Stream a blob to a local directory
- delete_container_or_path: Remove a blob, a virtual directory or a container
- blob_exists: Check if a blob exists

Authentication: connection string when configured, otherwise the account
URL with a managed identity / DefaultAzureCredential.

The pipeline calls these methods through loop.run_in_executor so downloads
do not block the event loop.
"""

import logging
import os
import threading
import time
from pathlib import Path
from typing import Any, Dict, Optional, Union

from azure.core.exceptions import ResourceNotFoundError
from azure.storage.blob import BlobServiceClient

logger = logging.getLogger(__name__)


class BlobRepository:
    """
    Azure Blob Storage repository for source bundles.

    Usage:
        repo = BlobRepository(account_name="fnsources")
        local_zip = repo.download_blob_to_directory("uploads", "f1/src.zip", "/tmp/ws")
        repo.delete_container_or_path("uploads", "f1/src.zip")
    """

    def __init__(
        self,
        account_name: Optional[str] = None,
        connection_string: Optional[str] = None,
    ):
        if not account_name and not connection_string:
            raise ValueError(
                "BlobRepository requires an account_name or a connection_string"
            )

        self.account_name = account_name
        self._connection_string = connection_string

        # Container client cache with thread-safe access
        self._container_clients: Dict[str, Any] = {}
        self._container_clients_lock = threading.Lock()

        # Lazy initialization of Azure clients
        self._blob_service: Optional[BlobServiceClient] = None
        self._credential = None

    # ========================================================================
    # AZURE CLIENT INITIALIZATION
    # ========================================================================

    def _get_credential(self):
        """Get Azure credential (lazy initialization)."""
        if self._credential is None:
            client_id = os.environ.get("AZURE_CLIENT_ID")
            if client_id:
                from azure.identity import ManagedIdentityCredential
                self._credential = ManagedIdentityCredential(client_id=client_id)
                logger.debug("ManagedIdentityCredential initialized with client_id")
            else:
                from azure.identity import DefaultAzureCredential
                self._credential = DefaultAzureCredential()
                logger.debug("DefaultAzureCredential initialized")
        return self._credential

    def _get_blob_service(self) -> BlobServiceClient:
        """Get BlobServiceClient (lazy initialization)."""
        if self._blob_service is None:
            if self._connection_string:
                self._blob_service = BlobServiceClient.from_connection_string(
                    self._connection_string
                )
                logger.debug("BlobServiceClient initialized from connection string")
            else:
                account_url = f"https://{self.account_name}.blob.core.windows.net"
                self._blob_service = BlobServiceClient(
                    account_url=account_url,
                    credential=self._get_credential(),
                )
                logger.debug(f"BlobServiceClient initialized for {account_url}")
        return self._blob_service

    def _get_container_client(self, container: str):
        """Get or create cached container client (double-checked locking)."""
        if container in self._container_clients:
            return self._container_clients[container]

        with self._container_clients_lock:
            if container in self._container_clients:
                return self._container_clients[container]

            container_client = self._get_blob_service().get_container_client(container)
            self._container_clients[container] = container_client
            logger.debug(f"Created container client for: {container}")
            return container_client

    # ========================================================================
    # DOWNLOAD
    # ========================================================================

    def download_blob_to_directory(
        self,
        container: str,
        blob_path: str,
        directory: Union[str, Path],
    ) -> Path:
        """
        Stream a blob into directory, keeping its base name.

        Args:
            container: Source container name
            blob_path: Blob path within container
            directory: Existing local directory

        Returns:
            Path of the downloaded file

        Raises:
            ResourceNotFoundError: If the blob does not exist
            OSError: On local write failure (partial file is removed)
        """
        target = Path(directory) / Path(blob_path).name
        logger.info(f"Downloading blob://{container}/{blob_path} -> {target}")

        start_time = time.time()
        bytes_transferred = 0

        try:
            blob_client = self._get_container_client(container).get_blob_client(blob_path)
            download_stream = blob_client.download_blob()

            with open(target, "wb") as f:
                for chunk in download_stream.chunks():
                    f.write(chunk)
                    bytes_transferred += len(chunk)
        except Exception:
            if target.exists():
                target.unlink()
            raise

        duration = time.time() - start_time
        logger.info(
            f"Download complete: {bytes_transferred / 1024:.1f}KB in {duration:.2f}s"
        )
        return target

    # ========================================================================
    # DELETE
    # ========================================================================

    def delete_blob(self, container: str, blob_path: str) -> bool:
        """Delete a blob. Returns True if deleted, False if not found."""
        blob_client = self._get_container_client(container).get_blob_client(blob_path)
        try:
            blob_client.delete_blob()
        except ResourceNotFoundError:
            logger.warning(f"Blob already gone: {container}/{blob_path}")
            return False
        logger.info(f"Deleted blob: {container}/{blob_path}")
        return True

    def delete_container_or_path(self, container: str, path: Optional[str] = None) -> int:
        """
        Delete a blob, every blob under a virtual directory, or a whole container.

        Args:
            container: Container name
            path: Blob name or virtual directory; None/"" deletes the container

        Returns:
            Number of blobs deleted (containers count as one)
        """
        if not path:
            try:
                self._get_blob_service().delete_container(container)
            except ResourceNotFoundError:
                logger.warning(f"Container already gone: {container}")
                return 0
            with self._container_clients_lock:
                self._container_clients.pop(container, None)
            logger.info(f"Deleted container: {container}")
            return 1

        if self.blob_exists(container, path):
            return 1 if self.delete_blob(container, path) else 0

        prefix = path.rstrip("/") + "/"
        container_client = self._get_container_client(container)
        deleted = 0
        for blob in container_client.list_blobs(name_starts_with=prefix):
            if self.delete_blob(container, blob.name):
                deleted += 1
        logger.info(f"Deleted {deleted} blobs under {container}/{prefix}")
        return deleted

    # ========================================================================
    # UTILITY METHODS
    # ========================================================================

    def blob_exists(self, container: str, blob_path: str) -> bool:
        """Check if a blob exists."""
        blob_client = self._get_container_client(container).get_blob_client(blob_path)
        return blob_client.exists()

    def close(self) -> None:
        """Close the underlying service client."""
        if self._blob_service is not None:
            self._blob_service.close()
            self._blob_service = None
        with self._container_clients_lock:
            self._container_clients.clear()


__all__ = [
    "BlobRepository",
]
