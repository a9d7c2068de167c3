from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

AccessReason = Literal["trial_active", "premium_active", "trial_expired"]


class AccessResult(BaseModel):
    """Derived entitlement for one user at one instant. Never persisted."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    has_access: bool
    reason: AccessReason
    trial_ends_at: Optional[datetime] = None
    premium_until: Optional[datetime] = None
    status: Optional[str] = None

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
