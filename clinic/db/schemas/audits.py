import uuid
from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

AuditStatusValue = Literal["success", "failure"]


class AuditLogCreate(BaseModel):
    """Payload written by ``clinic.audit.log``; sizes mirror the audit_logs columns."""

    action_type: str = Field(..., min_length=1, max_length=50)
    status: AuditStatusValue = "success"
    target_type: Optional[str] = Field(None, max_length=50)
    target_id: Optional[uuid.UUID] = None
    reason: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class AuditLog(BaseModel):
    id: uuid.UUID
    actor_user_id: uuid.UUID
    action_type: str
    status: AuditStatusValue
    target_type: Optional[str] = None
    target_id: Optional[uuid.UUID] = None
    reason: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="metadata_json")
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
