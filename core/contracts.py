# ============================================================================
# BASE CONTRACTS & ENUMS
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Foundation - Core enums
# PURPOSE: Runtime and build status enums shared across components
# CREATED: 06 OCT 2026
# ============================================================================
"""
Base contracts for the function builder.

Values here cross process boundaries: the runtime string stored on the
function record and the status carried by notification events.
"""

from enum import Enum
from typing import Optional

from core.errors import UnknownRuntimeError


class Runtime(str, Enum):
    """Function runtimes the builder knows how to package."""
    NODE = "NODE"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Runtime":
        """
        Case-insensitive lookup.

        Raises:
            UnknownRuntimeError: If value is empty or not a known runtime
        """
        try:
            return cls((value or "").upper())
        except ValueError:
            raise UnknownRuntimeError(value) from None


class BuildStatus(str, Enum):
    """
    Status values the worker emits on the notification topic.

    Both are terminal; events carrying them never trigger another build.
    """
    BUILD_COMPLETE = "buildComplete"
    BUILD_FAILED = "buildFailed"


TERMINAL_STATUSES = frozenset(status.value for status in BuildStatus)


__all__ = [
    "Runtime",
    "BuildStatus",
    "TERMINAL_STATUSES",
]
