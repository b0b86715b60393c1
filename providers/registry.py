# ============================================================================
# PROVIDER REGISTRY
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Core - Runtime to provider mapping
# PURPOSE: Decide which FaaS provider serves which runtime
# CREATED: 10 OCT 2026
# ============================================================================
"""
Provider Registry

Maps each Runtime to the FaaS provider that runs it. Providers are created
lazily on first use and reused for every later build, so their HTTP
connection pools survive across builds.

Unknown runtimes raise UnknownRuntimeError; there is no default provider.

Usage:
    registry = ProviderRegistry.default()
    provider = registry.get_provider_for_runtime("node")
    app_name = provider.build_app_name("123")   # "mdsFn-123"
"""

import logging
from typing import Callable, Dict, List, Optional

from core.contracts import Runtime
from core.errors import UnknownRuntimeError
from providers.base import FaasProvider
from providers.fn_project import FnProjectProvider

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[], FaasProvider]


class ProviderRegistry:
    """Runtime-keyed provider lookup with instance caching."""

    def __init__(self, factories: Optional[Dict[Runtime, ProviderFactory]] = None):
        self._factories: Dict[Runtime, ProviderFactory] = dict(factories or {})
        self._providers: Dict[Runtime, FaasProvider] = {}

    @classmethod
    def default(
        cls,
        provider_url: Optional[str] = None,
        retry_delay_seconds: Optional[float] = None,
    ) -> "ProviderRegistry":
        """Registry with the built-in runtime mapping (Node -> Fn Project)."""
        def fn_project() -> FaasProvider:
            kwargs = {}
            if retry_delay_seconds is not None:
                kwargs["retry_delay_seconds"] = retry_delay_seconds
            return FnProjectProvider(base_url=provider_url, **kwargs)

        return cls({Runtime.NODE: fn_project})

    def register(self, runtime: Runtime, factory: ProviderFactory) -> None:
        """Register (or replace) the provider factory for a runtime."""
        self._factories[runtime] = factory
        self._providers.pop(runtime, None)
        logger.debug(f"Registered provider for runtime {runtime.value}")

    def get_provider_for_runtime(self, runtime: str) -> FaasProvider:
        """
        Get the provider serving a runtime (case-insensitive).

        Raises:
            UnknownRuntimeError: If the runtime has no provider
        """
        kind = Runtime.parse(runtime)
        if kind not in self._factories:
            raise UnknownRuntimeError(runtime)

        provider = self._providers.get(kind)
        if provider is None:
            provider = self._factories[kind]()
            self._providers[kind] = provider
            logger.debug(f"Created {provider.NAME} provider for runtime {kind.value}")
        return provider

    def list_runtimes(self) -> List[str]:
        return [runtime.value for runtime in self._factories]

    async def close(self) -> None:
        """Close every provider created so far."""
        for provider in self._providers.values():
            await provider.close()
        self._providers.clear()


__all__ = [
    "ProviderRegistry",
    "ProviderFactory",
]
