"""
The whole dataset as one JSON document.

Same shape for the live metadata object and for backup bundles; bundles also
carry backupDate and version.
"""

from datetime import datetime

from pydantic import ValidationError as PydanticValidationError

from metastore.exceptions import ValidationError
from metastore.schemas.common import CamelModel
from metastore.schemas.session import Session
from metastore.schemas.site_config import SiteConfig
from metastore.schemas.user import User
from metastore.schemas.video import Video

COLLECTIONS = ("videos", "users", "sessions")


class MetadataDocument(CamelModel):
    videos: list[Video] = []
    users: list[User] = []
    sessions: list[Session] = []
    site_config: SiteConfig = SiteConfig()
    backup_date: datetime | None = None
    version: str | None = None

    @classmethod
    def default(cls) -> "MetadataDocument":
        return cls()

    def to_json_bytes(self) -> bytes:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2).encode("utf-8")


class BackupBundle(MetadataDocument):
    site_config: SiteConfig | None = None

    @classmethod
    def from_payload(cls, payload) -> "BackupBundle":
        """Validate a raw bundle before anything is touched."""
        if isinstance(payload, BackupBundle):
            return payload
        if isinstance(payload, MetadataDocument):
            payload = payload.to_json_dict()
        if not isinstance(payload, dict):
            raise ValidationError("Invalid backup data: expected a JSON object")
        if "videos" not in payload:
            raise ValidationError("Invalid backup data: missing 'videos'")
        for name in COLLECTIONS:
            value = payload.get(name, [])
            if value is not None and not isinstance(value, list):
                raise ValidationError(f"Invalid backup data: '{name}' must be a list")
        payload = {k: v for k, v in payload.items() if not (k in COLLECTIONS and v is None)}
        try:
            return cls.model_validate(payload)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid backup data: {e.error_count()} invalid record(s)") from e
