# ============================================================================
# FAAS PROVIDER INTERFACE
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Core - Provider gateway contract
# PURPOSE: Capability set every FaaS provider implements
# CREATED: 10 OCT 2026
# ============================================================================
"""
FaaS Provider Interface

A provider manages apps (one per account by convention) and functions
(one per builder function, referencing an image tag).

Soft failures: a non-success response from the provider is logged and
returned as None. Only the paginated app listing raises after its retries
are exhausted. Transport errors (connection refused, timeouts) propagate.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

APP_NAME_PREFIX = "mdsFn-"


class FaasProvider(ABC):
    """Abstract base for FaaS platform clients."""

    NAME: str = ""

    def build_app_name(self, account_id: str) -> str:
        """Conventional app name for an account."""
        return f"{APP_NAME_PREFIX}{account_id}"

    @abstractmethod
    async def create_app(self, name: str) -> Optional[str]:
        """
        Create an app.

        Returns:
            New app id, or None if the provider refused
        """
        pass

    @abstractmethod
    async def find_app_id_by_name(self, name: str) -> Optional[str]:
        """
        Find an app by exact name.

        Returns:
            App id, or None if no app has that name

        Raises:
            ProviderUnavailableError: If the listing cannot be fetched
        """
        pass

    @abstractmethod
    async def create_function(
        self, name: str, app_id: str, image: str
    ) -> Optional[Dict[str, Any]]:
        """
        Create a function running image inside app_id.

        Returns:
            The created function entity, or None if the provider refused
        """
        pass

    @abstractmethod
    async def update_function(
        self, function_id: str, app_id: Optional[str], image: str
    ) -> Optional[Dict[str, Any]]:
        """
        Point an existing function at a new image.

        Returns:
            The updated function entity, or None if the provider refused
        """
        pass

    @abstractmethod
    def invoke_endpoint(self, function: Dict[str, Any]) -> Optional[str]:
        """Public invoke endpoint advertised on a function entity."""
        pass

    async def close(self) -> None:
        """Release HTTP resources."""
        pass
