"""
Catalog service, the typed surface callers use.

Delegates every operation to whichever backend the deployment configures as the
source of truth. The two backends are alternatives, not replicas: nothing here
merges or reconciles them beyond backup/restore.
"""

import json
import logging
from datetime import timedelta
from typing import Literal

from pydantic import ValidationError as PydanticValidationError

from metastore.exceptions import ObjectNotFoundError, ValidationError
from metastore.schemas.document import BackupBundle, MetadataDocument
from metastore.schemas.session import Session, SessionCreate, SessionUpdate
from metastore.schemas.site_config import SiteConfig, SiteConfigUpdate
from metastore.schemas.user import User, UserCreate, UserUpdate, normalize_email
from metastore.schemas.video import Video, VideoCreate, VideoUpdate
from metastore.services.backup_service import BackupCoordinator, RestoreResult
from metastore.services.document_store import MetadataDocumentStore
from metastore.services.mirror import RelationalMirror
from metastore.utils.records import utcnow
from metastore.utils.security import PasswordHasher, Sha256PasswordHasher, generate_session_token
from metastore.utils.storage import ObjectStore

logger = logging.getLogger(__name__)

BACKUP_KEY_TEMPLATE = "metadata/backup-{millis}.json"
LATEST_BACKUP_KEY = "metadata/latest-backup.json"


class CatalogService:
    def __init__(
        self,
        storage: ObjectStore,
        document_store: MetadataDocumentStore,
        mirror: RelationalMirror,
        backups: BackupCoordinator,
        *,
        source_of_truth: Literal["document", "mirror"] = "mirror",
        auto_backup: bool = True,
        hasher: PasswordHasher | None = None,
        session_ttl: timedelta = timedelta(hours=24),
        signed_url_ttl: int = 3600,
    ):
        if source_of_truth not in ("document", "mirror"):
            raise ValueError(f"Unknown source of truth: {source_of_truth}")
        self.storage = storage
        self.document_store = document_store
        self.mirror = mirror
        self.backups = backups
        self.source_of_truth = source_of_truth
        self.backend = document_store if source_of_truth == "document" else mirror
        self.auto_backup = auto_backup
        self.hasher = hasher or Sha256PasswordHasher()
        self.session_ttl = session_ttl
        self.signed_url_ttl = signed_url_ttl

    async def initialize(self) -> None:
        # the mirror is always needed: it is the restore target
        await self.mirror.initialize()
        if self.source_of_truth == "document":
            await self.document_store.initialize()
        logger.info("Catalog service ready (source of truth: %s)", self.source_of_truth)

    async def close(self) -> None:
        await self.document_store.close()
        await self.mirror.close()

    async def bootstrap(self, admin_email: str = "", admin_password: str = "") -> None:
        """Make sure a site config exists and, if given, an admin account."""
        if self.source_of_truth == "document" and not await self.document_store.exists():
            await self.document_store.replace(MetadataDocument.default())
            logger.info("Initial metadata document created at %s", self.document_store.key)
        elif self.source_of_truth == "mirror" and await self.mirror.get_site_config() is None:
            await self.mirror.update_site_config(SiteConfig())
            logger.info("Default site configuration created")
        if admin_email and admin_password and not await self.get_user_by_email(admin_email):
            await self.register_user(admin_email, "Administrador", admin_password)
            logger.info("Admin user created: %s", admin_email)

    # ── Videos ────────────────────────────────────────────

    async def get_all_videos(self, include_inactive: bool = False) -> list[Video]:
        return await self.backend.get_all_videos(include_inactive=include_inactive)

    async def get_video(self, video_id: str) -> Video | None:
        return await self.backend.get_video(video_id)

    async def create_video(self, payload: VideoCreate) -> Video:
        for field in ("title", "description"):
            if not getattr(payload, field).strip():
                raise ValidationError(f"Missing required field: {field}")
        video = await self.backend.create_video(payload)
        logger.info("Video %s created", video.id)
        await self._auto_backup("create video")
        return video

    async def update_video(self, video_id: str, payload: VideoUpdate) -> Video | None:
        video = await self.backend.update_video(video_id, payload)
        if video is None:
            return None
        logger.info("Video %s updated", video_id)
        await self._auto_backup("update video")
        return video

    async def delete_video(self, video_id: str) -> bool:
        """Delete the record and request deletion of its stored files."""
        video = await self.backend.get_video(video_id)
        if video is None:
            return False
        for key in dict.fromkeys(k for k in (video.video_file_id, video.thumbnail_file_id) if k):
            try:
                await self.storage.delete(key)
            except ObjectNotFoundError:
                logger.warning("Stored file %s for video %s was already gone", key, video_id)
        deleted = await self.backend.delete_video(video_id)
        if deleted:
            logger.info("Video %s deleted", video_id)
            await self._auto_backup("delete video")
        return deleted

    async def increment_video_views(self, video_id: str) -> int | None:
        return await self.backend.increment_video_views(video_id)

    async def get_video_urls(self, video_id: str) -> dict | None:
        """Short-lived playback and thumbnail URLs for a video's stored files."""
        video = await self.backend.get_video(video_id)
        if video is None:
            return None
        video_url = None
        if video.video_file_id:
            video_url = await self.storage.signed_url(video.video_file_id, self.signed_url_ttl)
        thumbnail_url = video.thumbnail_url
        if video.thumbnail_file_id:
            thumbnail_url = await self.storage.signed_url(video.thumbnail_file_id, self.signed_url_ttl)
        return {"videoUrl": video_url, "thumbnailUrl": thumbnail_url, "expiresIn": self.signed_url_ttl}

    async def _auto_backup(self, reason: str) -> None:
        """Best-effort backup after a catalog write; never fails the write."""
        if not self.auto_backup:
            return
        try:
            await self.backups.backup()
            logger.info("Automatic backup done after %s", reason)
        except Exception as e:
            logger.warning("Automatic backup after %s failed: %s", reason, e)

    # ── Users ─────────────────────────────────────────────

    async def get_all_users(self) -> list[User]:
        return await self.backend.get_all_users()

    async def get_user(self, user_id: str) -> User | None:
        return await self.backend.get_user(user_id)

    async def get_user_by_email(self, email: str) -> User | None:
        """Looked up in normalized form, so the domain's case does not matter."""
        try:
            email = normalize_email(email)
        except PydanticValidationError:
            return None
        return await self.backend.get_user_by_email(email)

    async def create_user(self, payload: UserCreate) -> User:
        return await self.backend.create_user(payload)

    async def update_user(self, user_id: str, payload: UserUpdate) -> User | None:
        return await self.backend.update_user(user_id, payload)

    async def delete_user(self, user_id: str) -> bool:
        return await self.backend.delete_user(user_id)

    async def register_user(self, email: str, name: str, password: str) -> User:
        try:
            email = normalize_email(email)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid email address: {email}") from e
        if await self.backend.get_user_by_email(email):
            raise ValidationError("Email already registered")
        return await self.create_user(
            UserCreate(email=email, name=name or email.split("@")[0], password=self.hasher.hash(password))
        )

    async def authenticate(self, email: str, password: str) -> User | None:
        user = await self.get_user_by_email(email)
        if not user or not self.hasher.verify(password, user.password):
            return None
        return user

    # ── Sessions ──────────────────────────────────────────

    async def get_all_sessions(self) -> list[Session]:
        return await self.backend.get_all_sessions()

    async def get_session_by_token(self, token: str) -> Session | None:
        return await self.backend.get_session_by_token(token)

    async def create_session(self, payload: SessionCreate) -> Session:
        return await self.backend.create_session(payload)

    async def update_session(self, session_id: str, payload: SessionUpdate) -> Session | None:
        return await self.backend.update_session(session_id, payload)

    async def delete_session(self, session_id: str) -> bool:
        return await self.backend.delete_session(session_id)

    async def open_session(self, user_id: str, user_agent: str | None = None) -> Session:
        return await self.create_session(SessionCreate(
            user_id=user_id,
            token=generate_session_token(),
            expires_at=utcnow() + self.session_ttl,
            is_active=True,
            user_agent=user_agent[:255] if user_agent else None,
        ))

    async def validate_session(self, token: str) -> Session | None:
        """
        Return the session if it is active and unexpired.

        Expired sessions are deactivated, not deleted, so the row stays as an
        audit trail.
        """
        session = await self.get_session_by_token(token)
        if session is None or not session.is_active:
            return None
        if not session.is_valid():
            logger.info("Session %s expired, deactivating", session.id)
            await self.update_session(session.id, SessionUpdate(is_active=False))
            return None
        return session

    async def revoke_session(self, token: str) -> bool:
        session = await self.get_session_by_token(token)
        if session is None:
            return False
        await self.update_session(session.id, SessionUpdate(is_active=False))
        return True

    # ── Site config ───────────────────────────────────────

    async def get_site_config(self) -> SiteConfig:
        return await self.backend.get_site_config() or SiteConfig()

    async def update_site_config(self, payload: SiteConfigUpdate) -> SiteConfig:
        return await self.backend.update_site_config(payload)

    # ── Backup / restore ──────────────────────────────────

    async def backup(self) -> dict:
        """Local snapshot, then upload it under a timestamped key and move the latest pointer."""
        bundle = await self.backups.backup()
        backup_date = bundle.backup_date or utcnow()
        backup_key = BACKUP_KEY_TEMPLATE.format(millis=int(backup_date.timestamp() * 1000))
        await self.storage.put(backup_key, bundle.to_json_bytes(), content_type="application/json")
        pointer = {
            "backupKey": backup_key,
            "backupDate": backup_date.isoformat(),
            "version": bundle.version,
        }
        await self.storage.put(
            LATEST_BACKUP_KEY,
            json.dumps(pointer, indent=2).encode("utf-8"),
            content_type="application/json",
        )
        logger.info("Backup uploaded to %s", backup_key)
        return pointer

    async def restore(self, bundle) -> RestoreResult:
        return await self.backups.restore(
            bundle, include_document_store=self.source_of_truth == "document"
        )

    async def restore_latest(self) -> RestoreResult:
        """Follow the latest-backup pointer and restore that bundle."""
        pointer = json.loads(await self.storage.get(LATEST_BACKUP_KEY))
        backup_key = pointer.get("backupKey")
        if not backup_key:
            raise ValidationError("Latest backup pointer has no backupKey")
        payload = json.loads(await self.storage.get(backup_key))
        logger.info("Restoring from %s", backup_key)
        return await self.restore(BackupBundle.from_payload(payload))

    async def backup_status(self) -> dict:
        try:
            pointer = json.loads(await self.storage.get(LATEST_BACKUP_KEY))
        except ObjectNotFoundError:
            pointer = None
        return {
            "hasMetadata": await self.document_store.exists(),
            "metadataKey": self.document_store.key,
            "latestBackup": pointer,
        }
