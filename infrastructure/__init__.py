# ============================================================================
# INFRASTRUCTURE MODULE
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Infrastructure - Storage, registry host and command execution
# PURPOSE: Adapters the build pipeline drives
# CREATED: 08 OCT 2026
# ============================================================================
"""
Infrastructure module for the function builder.

Provides:
- BlobRepository: Azure Blob Storage download/delete
- ContainerHostResolver: Cached registry host prefix for image tags
- CommandRunner: npm/docker execution (SubprocessCommandRunner by default)

Usage:
    from infrastructure import BlobRepository, ContainerHostResolver

    repo = BlobRepository(account_name="fnsources")
    resolver = ContainerHostResolver("registry.internal:5000")
    prefix = await resolver.get_container_host()
"""

from infrastructure.command_runner import (
    CommandResult,
    CommandRunner,
    SubprocessCommandRunner,
)
from infrastructure.registry_host import (
    ContainerHostResolver,
    is_valid_ip_address,
    split_host_port,
)
from infrastructure.storage import BlobRepository

__all__ = [
    "BlobRepository",
    "CommandResult",
    "CommandRunner",
    "SubprocessCommandRunner",
    "ContainerHostResolver",
    "is_valid_ip_address",
    "split_host_port",
]
