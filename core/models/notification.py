# ============================================================================
# NOTIFICATION EVENT MODEL
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Core model - Notification topic payload
# PURPOSE: Parse and emit {eventId, status} notifications
# CREATED: 07 OCT 2026
# ============================================================================
"""
Notification Event

Payload on the notification topic:
{
    "eventId": "evt-123",
    "status": "buildComplete"
}

Events published by the submitting API usually carry no status (or a
non-terminal one). Events with a terminal status were published by a
builder and are ignored by the worker loop.
"""

import json
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from core.contracts import BuildStatus, TERMINAL_STATUSES


class NotificationEvent(BaseModel):
    """One message on the notification topic."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    event_id: Optional[str] = Field(default=None, alias="eventId")
    status: Optional[str] = Field(default=None)

    @classmethod
    def from_json(cls, body: str) -> "NotificationEvent":
        return cls.model_validate(json.loads(body))

    @classmethod
    def for_status(cls, event_id: Optional[str], status: BuildStatus) -> "NotificationEvent":
        return cls(event_id=event_id, status=status.value)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self) -> Dict[str, Any]:
        return {"eventId": self.event_id, "status": self.status}

    def to_json(self) -> str:
        return json.dumps(self.to_dict())
