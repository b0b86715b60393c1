# ============================================================================
# MODELS MODULE
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Model exports
# PURPOSE: Central export point for builder models
# CREATED: 06 OCT 2026
# ============================================================================
"""Models Module - Central Export Point"""

from core.models.build_request import BuildRequest
from core.models.function_record import FunctionRecord
from core.models.artifact import ContainerArtifact, IMAGE_NAMESPACE
from core.models.notification import NotificationEvent

__all__ = [
    "BuildRequest",
    "FunctionRecord",
    "ContainerArtifact",
    "IMAGE_NAMESPACE",
    "NotificationEvent",
]
