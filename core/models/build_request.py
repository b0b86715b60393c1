# ============================================================================
# BUILD REQUEST MODEL
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Core model - Work queue message
# PURPOSE: Parse the JSON body of a build work-queue message
# CREATED: 06 OCT 2026
# ============================================================================
"""
Build Request

Wire format (work queue body):
{
    "functionId": "f1",
    "sourceContainer": "uploads",
    "sourcePath": "f1/source.zip"
}

Created per message and discarded after one pipeline run.
"""

import json
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


class BuildRequest(BaseModel):
    """One request to build and register a function."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    function_id: str = Field(..., alias="functionId", min_length=1)
    source_container: str = Field(..., alias="sourceContainer", min_length=1)
    source_path: str = Field(..., alias="sourcePath", min_length=1)

    @classmethod
    def from_json(cls, body: str) -> "BuildRequest":
        """Parse a queue message body."""
        return cls.model_validate(json.loads(body))

    @property
    def source_uri(self) -> str:
        return f"{self.source_container}/{self.source_path}"

    def to_dict(self) -> Dict[str, Any]:
        """Wire (camelCase) representation."""
        return self.model_dump(by_alias=True)
