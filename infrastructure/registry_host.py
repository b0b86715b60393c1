# ============================================================================
# CONTAINER REGISTRY HOST RESOLVER
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Infrastructure - Registry host resolution and caching
# PURPOSE: Turn the configured registry host[:port] into an image tag prefix
# CREATED: 08 OCT 2026
# ============================================================================
"""
Container Registry Host Resolver

Image tags are prefixed with "<address>:<port>/" so the docker daemon
pushes to the configured registry. Hostnames are resolved to an IPv4
address once and cached on the resolver instance; clear() forces the next
call to resolve again (e.g. after a configuration change).

Resolution rules:
- Nothing configured: "" (tags carry no registry prefix)
- Dotted-quad IPv4 host: used verbatim, no DNS lookup
- Hostname: DNS lookup; on failure the unresolved hostname is used
- Port defaults to 80
"""

import asyncio
import logging
import re
import socket
from typing import Awaitable, Callable, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_PORT = "80"

_IPV4_PATTERN = re.compile(
    r"^(([0-9]|[1-9][0-9]|1[0-9]{2}|2[0-4][0-9]|25[0-5])\.){3}"
    r"([0-9]|[1-9][0-9]|1[0-9]{2}|2[0-4][0-9]|25[0-5])$"
)

# Async lookup: hostname -> IPv4 address
HostLookup = Callable[[str], Awaitable[str]]


def is_valid_ip_address(value: str) -> bool:
    """True for a dotted-quad IPv4 literal."""
    return bool(_IPV4_PATTERN.match(value))


def split_host_port(configured: str) -> Tuple[str, str]:
    """Split "host[:port]"; port defaults to 80."""
    host, sep, port = configured.partition(":")
    return host, (port if sep and port else DEFAULT_REGISTRY_PORT)


async def lookup_ipv4(host: str) -> str:
    """Resolve host to its first IPv4 address."""
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(host, None, family=socket.AF_INET)
    if not infos:
        raise socket.gaierror(f"No IPv4 address for {host}")
    return infos[0][4][0]


class ContainerHostResolver:
    """
    Owns the cached registry host prefix.

    One instance is shared by every build in the process; re-resolution is
    idempotent so no locking is needed.
    """

    def __init__(
        self,
        configured_host: Optional[str] = None,
        lookup: Optional[HostLookup] = None,
    ):
        """
        Args:
            configured_host: "host[:port]" of the registry, or None/"" for none
            lookup: Async hostname -> address function (defaults to getaddrinfo)
        """
        self._configured_host = (configured_host or "").strip()
        self._lookup = lookup or lookup_ipv4
        self._resolved: Optional[str] = None

    @property
    def configured_host(self) -> str:
        return self._configured_host

    def clear(self) -> None:
        """Drop the cached value so the next call resolves again."""
        self._resolved = None

    async def get_container_host(self) -> str:
        """Return "<address>:<port>/" for the configured registry, or ""."""
        if self._resolved is not None:
            return self._resolved

        if not self._configured_host:
            return ""

        host, port = split_host_port(self._configured_host)

        if is_valid_ip_address(host):
            self._resolved = f"{host}:{port}/"
            return self._resolved

        try:
            address = await self._lookup(host)
            self._resolved = f"{address}:{port}/"
            logger.debug(f"Resolved container host {host} -> {address}")
        except OSError as e:
            logger.warning(f"Failed to find DNS resolution of container host {host}: {e}")
            self._resolved = f"{host}:{port}/"

        return self._resolved


__all__ = [
    "ContainerHostResolver",
    "DEFAULT_REGISTRY_PORT",
    "is_valid_ip_address",
    "lookup_ipv4",
    "split_host_port",
]
