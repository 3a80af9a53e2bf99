"""
Point-in-time backup and restore of the relational mirror.

backup() only writes the local file; uploading the bundle to object storage is
the caller's job (see CatalogService.backup).

restore() is NOT atomic. It clears every table and re-inserts records one at a
time; a failure half way leaves a partially restored mirror with no rollback.
Take a backup of the current state before restoring.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path

from metastore.exceptions import ValidationError
from metastore.schemas.document import BackupBundle, MetadataDocument
from metastore.services.document_store import MetadataDocumentStore
from metastore.services.mirror import RelationalMirror
from metastore.utils.records import utcnow

logger = logging.getLogger(__name__)

BACKUP_FORMAT_VERSION = "1.0"


@dataclass
class RestoreResult:
    videos: int = 0
    users: int = 0
    sessions: int = 0
    site_config: bool = False
    document_store: bool = False
    backup_date: str | None = None


class BackupCoordinator:
    def __init__(
        self,
        mirror: RelationalMirror,
        backup_path: Path,
        *,
        document_store: MetadataDocumentStore | None = None,
        source: RelationalMirror | MetadataDocumentStore | None = None,
        version: str = BACKUP_FORMAT_VERSION,
    ):
        self.mirror = mirror
        # what backup() snapshots; the mirror unless the document is authoritative
        self.source = source or mirror
        self.backup_path = Path(backup_path)
        self.document_store = document_store
        self.version = version

    async def backup(self) -> BackupBundle:
        """Snapshot all four collections of the source and overwrite the local backup file."""
        bundle = BackupBundle(
            videos=await self.source.get_all_videos(include_inactive=True),
            users=await self.source.get_all_users(),
            sessions=await self.source.get_all_sessions(),
            site_config=await self.source.get_site_config(),
            backup_date=utcnow(),
            version=self.version,
        )
        await asyncio.to_thread(self._write_local, bundle.to_json_bytes())
        logger.info(
            "Local backup written to %s (%d videos, %d users, %d sessions)",
            self.backup_path, len(bundle.videos), len(bundle.users), len(bundle.sessions),
        )
        return bundle

    def _write_local(self, data: bytes) -> None:
        self.backup_path.parent.mkdir(parents=True, exist_ok=True)
        self.backup_path.write_bytes(data)

    def load_local_backup(self) -> BackupBundle | None:
        if not self.backup_path.exists():
            return None
        try:
            payload = json.loads(self.backup_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValidationError(f"Local backup at {self.backup_path} is not valid JSON") from e
        return BackupBundle.from_payload(payload)

    async def restore(self, bundle, *, include_document_store: bool = False) -> RestoreResult:
        """
        Replace the mirror's contents with ``bundle``, keeping every original id.

        The bundle is fully validated before the first table is touched.
        Users go in before sessions so session.user_id references resolve.
        """
        bundle = BackupBundle.from_payload(bundle)
        result = RestoreResult(
            backup_date=bundle.backup_date.isoformat() if bundle.backup_date else None,
        )
        logger.info("Starting restore (backup date %s)", result.backup_date or "unknown")

        await self.mirror.clear_all()
        for user in bundle.users:
            await self.mirror.insert_user(user)
            result.users += 1
        for video in bundle.videos:
            await self.mirror.insert_video(video)
            result.videos += 1
        for session in bundle.sessions:
            await self.mirror.insert_session(session)
            result.sessions += 1
        if bundle.site_config is not None:
            await self.mirror.update_site_config(bundle.site_config)
            result.site_config = True

        if include_document_store and self.document_store is not None:
            document = MetadataDocument(
                videos=bundle.videos,
                users=bundle.users,
                sessions=bundle.sessions,
                site_config=bundle.site_config or MetadataDocument().site_config,
            )
            await self.document_store.replace(document)
            result.document_store = True

        logger.info(
            "Restore complete: %d videos, %d users, %d sessions",
            result.videos, result.users, result.sessions,
        )
        return result
