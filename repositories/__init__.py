# ============================================================================
# REPOSITORIES MODULE
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Repository exports
# PURPOSE: Database access for function records
# CREATED: 09 OCT 2026
# ============================================================================

from .database import init_pool, close_pool, get_connection_string
from .function_repo import FunctionRepository

__all__ = [
    "init_pool",
    "close_pool",
    "get_connection_string",
    "FunctionRepository",
]
