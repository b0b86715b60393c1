# ============================================================================
# BUILDER PACKAGE
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Core - Build pipeline
# PURPOSE: Source bundle -> container image -> provider function
# CREATED: 11 OCT 2026
# ============================================================================
"""
Builder Package

    from builder import BuildPipeline

    pipeline = BuildPipeline(blob_repo, repo_factory, providers, resolver, runner)
    await pipeline.build_function(request)
"""

from .pipeline import BuildContext, BuildPipeline
from .runtimes import NodeToolchain, RuntimeToolchain, ToolchainRegistry
from .templates import (
    DOCKERFILE_NAME,
    ENTRY_FILE_NAME,
    parse_entry_point,
    render_node_dockerfile,
    render_node_entry_point,
)

__all__ = [
    "BuildContext",
    "BuildPipeline",
    "NodeToolchain",
    "RuntimeToolchain",
    "ToolchainRegistry",
    "DOCKERFILE_NAME",
    "ENTRY_FILE_NAME",
    "parse_entry_point",
    "render_node_dockerfile",
    "render_node_entry_point",
]
