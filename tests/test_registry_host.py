# ============================================================================
# REGISTRY HOST RESOLVER TESTS
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Tests - Container host resolution and caching
# PURPOSE: Verify IPv4 passthrough, DNS caching, fallback and reset
# CREATED: 15 OCT 2026
# ============================================================================
"""
Registry Host Resolver Tests

Run with:
    pytest tests/test_registry_host.py -v
"""

import asyncio
import socket
from unittest.mock import AsyncMock

import pytest

from infrastructure.registry_host import (
    ContainerHostResolver,
    is_valid_ip_address,
    split_host_port,
)


# ============================================================================
# HELPERS
# ============================================================================

class TestHelpers:

    @pytest.mark.parametrize("value", ["10.0.0.5", "0.0.0.0", "255.255.255.255", "192.168.1.20"])
    def test_valid_ipv4(self, value):
        assert is_valid_ip_address(value)

    @pytest.mark.parametrize("value", ["256.1.1.1", "1.2.3", "registry.internal", "01.2.3.4", ""])
    def test_invalid_ipv4(self, value):
        assert not is_valid_ip_address(value)

    def test_split_host_port_default(self):
        assert split_host_port("registry.internal") == ("registry.internal", "80")

    def test_split_host_port_explicit(self):
        assert split_host_port("registry.internal:5000") == ("registry.internal", "5000")

    def test_split_host_port_trailing_colon(self):
        assert split_host_port("registry.internal:") == ("registry.internal", "80")


# ============================================================================
# RESOLVER
# ============================================================================

class TestContainerHostResolver:

    def test_unconfigured_returns_empty(self):
        lookup = AsyncMock()
        resolver = ContainerHostResolver(None, lookup=lookup)

        assert asyncio.run(resolver.get_container_host()) == ""
        lookup.assert_not_called()

    def test_ipv4_literal_is_used_without_lookup(self):
        lookup = AsyncMock()
        resolver = ContainerHostResolver("10.0.0.5:5000", lookup=lookup)

        assert asyncio.run(resolver.get_container_host()) == "10.0.0.5:5000/"
        lookup.assert_not_called()

    def test_ipv4_literal_default_port(self):
        lookup = AsyncMock()
        resolver = ContainerHostResolver("10.0.0.5", lookup=lookup)

        assert asyncio.run(resolver.get_container_host()) == "10.0.0.5:80/"
        lookup.assert_not_called()

    def test_hostname_resolved_once_and_cached(self):
        lookup = AsyncMock(return_value="10.1.2.3")
        resolver = ContainerHostResolver("registry.internal:5000", lookup=lookup)

        async def resolve_twice():
            return await resolver.get_container_host(), await resolver.get_container_host()

        first, second = asyncio.run(resolve_twice())

        assert first == "10.1.2.3:5000/"
        assert second == first
        lookup.assert_awaited_once_with("registry.internal")

    def test_clear_forces_new_lookup(self):
        lookup = AsyncMock(side_effect=["10.1.2.3", "10.9.9.9"])
        resolver = ContainerHostResolver("registry.internal", lookup=lookup)

        async def resolve_clear_resolve():
            before = await resolver.get_container_host()
            resolver.clear()
            after = await resolver.get_container_host()
            return before, after

        before, after = asyncio.run(resolve_clear_resolve())

        assert before == "10.1.2.3:80/"
        assert after == "10.9.9.9:80/"
        assert lookup.await_count == 2

    def test_lookup_failure_uses_hostname(self):
        lookup = AsyncMock(side_effect=socket.gaierror("Name or service not known"))
        resolver = ContainerHostResolver("registry.internal:5000", lookup=lookup)

        assert asyncio.run(resolver.get_container_host()) == "registry.internal:5000/"
        lookup.assert_awaited_once()

    def test_lookup_failure_is_cached(self):
        lookup = AsyncMock(side_effect=socket.gaierror("Name or service not known"))
        resolver = ContainerHostResolver("registry.internal", lookup=lookup)

        async def resolve_twice():
            await resolver.get_container_host()
            return await resolver.get_container_host()

        assert asyncio.run(resolve_twice()) == "registry.internal:80/"
        assert lookup.await_count == 1

    def test_configured_host_is_stripped(self):
        resolver = ContainerHostResolver("  10.0.0.5:5000 ")
        assert resolver.configured_host == "10.0.0.5:5000"
