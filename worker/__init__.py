# ============================================================================
# WORKER PACKAGE
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Core - Build worker
# PURPOSE: Notification-driven queue consumer for function builds
# CREATED: 14 OCT 2026
# ============================================================================
"""
Worker Package

Run with: python -m worker.main
"""

from .contracts import WorkerConfig
from .consumer import BuildWorker

__all__ = [
    "WorkerConfig",
    "BuildWorker",
]
