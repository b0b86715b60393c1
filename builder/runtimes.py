# ============================================================================
# RUNTIME TOOLCHAINS
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Core - Per-runtime build knowledge
# PURPOSE: Build-root discovery, adapter install and generated files per runtime
# CREATED: 11 OCT 2026
# ============================================================================
"""
Runtime Toolchains

Everything the pipeline needs to know about a language runtime lives in
its toolchain: where the project root is inside an extracted bundle, how to
install the provider's runtime adapter, and what shim and Dockerfile to
generate. Toolchains are looked up by Runtime; unknown runtimes raise
UnknownRuntimeError.
"""

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional

from core.contracts import Runtime
from core.errors import SourceExtractionError, UnknownRuntimeError
from builder.templates import (
    DOCKERFILE_NAME,
    ENTRY_FILE_NAME,
    render_node_dockerfile,
    render_node_entry_point,
)

logger = logging.getLogger(__name__)

# Zip tools add these next to the real project folder
IGNORED_ENTRIES = frozenset({"__MACOSX"})


class RuntimeToolchain(ABC):
    """Abstract base for runtime-specific build knowledge."""

    runtime: Runtime
    manifest_name: str = ""
    entry_file_name: str = ENTRY_FILE_NAME
    dockerfile_name: str = DOCKERFILE_NAME

    @abstractmethod
    def find_build_root(self, directory: Path) -> Path:
        """
        Locate the project root inside an extracted source bundle.

        Raises:
            SourceExtractionError: If the bundle is empty
        """
        pass

    @abstractmethod
    def adapter_install_command(self) -> List[str]:
        """Command that installs the provider's runtime adapter into the build root."""
        pass

    @abstractmethod
    def render_entry_point(self, entry_point: str) -> str:
        pass

    @abstractmethod
    def render_dockerfile(self) -> str:
        pass


class NodeToolchain(RuntimeToolchain):
    """Node.js functions, packaged with the Fn Project FDK."""

    runtime = Runtime.NODE
    manifest_name = "package.json"
    adapter_package = "@fnproject/fdk"

    def find_build_root(self, directory: Path) -> Path:
        entries = sorted(os.listdir(directory))
        if self.manifest_name in entries:
            return Path(directory)

        entries = [name for name in entries if name not in IGNORED_ENTRIES and not name.startswith(".")]
        if not entries:
            raise SourceExtractionError(f"Source bundle extracted to {directory} is empty")

        # Bundles zipped from the parent folder nest the project one level
        # down. The first entry is taken without checking it is that folder.
        nested = Path(directory) / entries[0]
        logger.debug(f"No {self.manifest_name} at bundle root, using {nested}")
        return nested

    def adapter_install_command(self) -> List[str]:
        return ["npm", "install", "--save", self.adapter_package]

    def render_entry_point(self, entry_point: str) -> str:
        return render_node_entry_point(entry_point)

    def render_dockerfile(self) -> str:
        return render_node_dockerfile(self.entry_file_name)


class ToolchainRegistry:
    """Runtime-keyed toolchain lookup."""

    def __init__(self, toolchains: Optional[Dict[Runtime, RuntimeToolchain]] = None):
        if toolchains is None:
            toolchains = {Runtime.NODE: NodeToolchain()}
        self._toolchains = dict(toolchains)

    def get(self, runtime: str) -> RuntimeToolchain:
        """
        Toolchain for a runtime name (case-insensitive).

        Raises:
            UnknownRuntimeError: If no toolchain handles the runtime
        """
        kind = Runtime.parse(runtime)
        toolchain = self._toolchains.get(kind)
        if toolchain is None:
            raise UnknownRuntimeError(runtime)
        return toolchain


__all__ = [
    "RuntimeToolchain",
    "NodeToolchain",
    "ToolchainRegistry",
]
