# ============================================================================
# CORE MODULE
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Core module initialization
# PURPOSE: Export core contracts, errors and models
# CREATED: 06 OCT 2026
# ============================================================================

from core.contracts import Runtime, BuildStatus, TERMINAL_STATUSES
from core.errors import (
    BuilderError,
    ConfigurationError,
    UnknownRuntimeError,
    FunctionNotFoundError,
    SourceExtractionError,
    BuildToolError,
    ProviderError,
    ProviderUnavailableError,
    ProviderRegistrationError,
)
from core.models import (
    BuildRequest,
    FunctionRecord,
    ContainerArtifact,
    NotificationEvent,
)

__all__ = [
    # Enums
    "Runtime",
    "BuildStatus",
    "TERMINAL_STATUSES",
    # Errors
    "BuilderError",
    "ConfigurationError",
    "UnknownRuntimeError",
    "FunctionNotFoundError",
    "SourceExtractionError",
    "BuildToolError",
    "ProviderError",
    "ProviderUnavailableError",
    "ProviderRegistrationError",
    # Models
    "BuildRequest",
    "FunctionRecord",
    "ContainerArtifact",
    "NotificationEvent",
]
