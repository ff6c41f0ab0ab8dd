import enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr


class EventType(str, enum.Enum):
    """Event types documented by the platform. The set is open."""

    ACCOUNT_CREATED = "account.created"
    ACCOUNT_UPDATED = "account.updated"
    ACCOUNT_APPROVED = "account.approved"


class VerifiedEvent(BaseModel):
    """A webhook event whose timestamp and signature have both been checked."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    type: StrictStr = Field(..., description="Event type, e.g. account.created")
    data: dict[str, Any] = Field(..., description="Opaque event payload")
