# ============================================================================
# FUNCTION RECORD MODEL
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Core model - Persisted function metadata
# PURPOSE: Row model for the functions table
# CREATED: 06 OCT 2026
# ============================================================================
"""
Function Record

Maps to: functions table (owned by the function API service).

The builder reads one record per build and only writes func_id and
invoke_url, on the first successful registration with the provider.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class FunctionRecord(BaseModel):
    """Function metadata as stored by the function API."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., max_length=64)
    runtime: str = Field(..., description="Runtime name, matched case-insensitively")
    entry_point: str = Field(..., alias="entryPoint", description="module:export")
    name: str = Field(..., max_length=128)
    account_id: str = Field(..., alias="accountId")
    version: str = Field(...)

    # Provider registration (populated by the builder)
    func_id: Optional[str] = Field(default=None, alias="funcId")
    provider_app_id: Optional[str] = Field(default=None, alias="providerAppId")
    invoke_url: Optional[str] = Field(default=None, alias="invokeUrl")

    @property
    def is_registered(self) -> bool:
        """True once the provider has assigned a function id."""
        return bool(self.func_id)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "FunctionRecord":
        """Build from a dict_row cursor result."""
        return cls(
            id=row["id"],
            runtime=row["runtime"],
            entry_point=row["entry_point"],
            name=row["name"],
            account_id=str(row["account_id"]),
            version=str(row["version"]),
            func_id=row.get("func_id"),
            provider_app_id=row.get("provider_app_id"),
            invoke_url=row.get("invoke_url"),
        )
