"""Session schemas."""

from datetime import datetime

from metastore.schemas.common import CamelModel
from metastore.utils.records import ensure_aware, utcnow


class SessionCreate(CamelModel):
    user_id: str
    token: str
    expires_at: datetime
    is_active: bool = True
    user_agent: str | None = None


class SessionUpdate(CamelModel):
    expires_at: datetime | None = None
    is_active: bool | None = None
    user_agent: str | None = None


class Session(SessionCreate):
    id: str
    created_at: datetime

    def is_valid(self, now: datetime | None = None) -> bool:
        now = now or utcnow()
        return self.is_active and ensure_aware(self.expires_at) > now


class SessionResponse(CamelModel):
    token: str
    expires_at: datetime
    user_id: str
