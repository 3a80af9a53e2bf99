"""
The whole dataset kept as one JSON object in object storage.

Every entity write is a read-modify-write of the full document:
load the current remote copy (bypassing the cache), mutate it, upload it back.
There is no lock. Two overlapping writers both load the same revision and the
later upload silently replaces the earlier one (last writer wins). Enabling
``conflict_check`` compares the remote content hash against the one observed at
load time and raises ConflictError instead of overwriting.

The deployment is a single admin-driven catalog, so write concurrency is low.
"""

import hashlib
import logging
import time
from typing import Callable

from pydantic import ValidationError as PydanticValidationError

from metastore.exceptions import ConflictError, ObjectNotFoundError, StoreUnavailableError, ValidationError
from metastore.schemas.document import COLLECTIONS, MetadataDocument
from metastore.schemas.session import Session, SessionCreate, SessionUpdate
from metastore.schemas.site_config import SiteConfig, SiteConfigUpdate
from metastore.schemas.user import User, UserCreate, UserUpdate
from metastore.schemas.video import Video, VideoCreate, VideoUpdate
from metastore.utils.records import generate_id, utcnow
from metastore.utils.storage import ObjectStore

logger = logging.getLogger(__name__)

DEFAULT_CACHE_SECONDS = 30.0

# hash recorded when the remote copy could not be read; never matches
_UNREADABLE = "<unreadable>"
_FROM_LAST_LOAD = object()


def _content_hash(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def _merge(record, changes: dict):
    """Existing record spread with the provided fields, re-validated."""
    return type(record).model_validate({**record.model_dump(), **changes})


class MetadataDocumentStore:
    def __init__(
        self,
        storage: ObjectStore,
        key: str,
        *,
        cache_seconds: float = DEFAULT_CACHE_SECONDS,
        fallback_on_load_error: bool = True,
        conflict_check: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.storage = storage
        self.key = key
        self.cache_seconds = cache_seconds
        self.fallback_on_load_error = fallback_on_load_error
        self.conflict_check = conflict_check
        self._clock = clock
        self._cache: MetadataDocument | None = None
        self._cache_timestamp: float = 0.0
        self._loaded_hash: str | None = _UNREADABLE
        self.initialized = False

    async def initialize(self) -> None:
        """Warm the cache. Raises only when fallback is disabled and the store is down."""
        await self.load()
        self.initialized = True
        logger.info("Metadata document store ready: %s", self.key)

    async def close(self) -> None:
        self.clear_cache()
        self.initialized = False

    # ── Cache ─────────────────────────────────────────────

    def _is_cache_valid(self) -> bool:
        return (
            self._cache is not None
            and self._cache_timestamp > 0
            and (self._clock() - self._cache_timestamp) < self.cache_seconds
        )

    def _set_cache(self, document: MetadataDocument) -> None:
        self._cache = document
        self._cache_timestamp = self._clock()

    def clear_cache(self) -> None:
        self._cache = None
        self._cache_timestamp = 0.0
        logger.debug("Metadata cache cleared")

    async def _get_document(self) -> MetadataDocument:
        if self._is_cache_valid():
            return self._cache
        return await self.load()

    # ── Load / save ───────────────────────────────────────

    async def load(self) -> MetadataDocument:
        """Fetch and parse the remote document, replacing the cache."""
        try:
            raw = await self.storage.get(self.key)
        except ObjectNotFoundError:
            logger.info("No metadata document at %s yet, starting from defaults", self.key)
            document = MetadataDocument.default()
            self._loaded_hash = None
            self._set_cache(document)
            return document
        except Exception as e:
            return self._fall_back(e)

        try:
            document = MetadataDocument.model_validate_json(raw)
        except PydanticValidationError as e:
            return self._fall_back(e)

        self._loaded_hash = _content_hash(raw)
        self._set_cache(document)
        logger.debug(
            "Metadata loaded: %d videos, %d users, %d sessions",
            len(document.videos), len(document.users), len(document.sessions),
        )
        return document

    def _fall_back(self, error: Exception) -> MetadataDocument:
        if not self.fallback_on_load_error:
            self.clear_cache()
            raise StoreUnavailableError(f"Could not load {self.key}: {error}") from error
        # Serving an empty dataset hides the outage; the next write will
        # overwrite the remote document with it.
        logger.warning("Error loading metadata from %s, using empty defaults: %s", self.key, error)
        document = MetadataDocument.default()
        self._loaded_hash = _UNREADABLE
        self._set_cache(document)
        return document

    async def _remote_hash(self) -> str | None:
        try:
            return _content_hash(await self.storage.get(self.key))
        except ObjectNotFoundError:
            return None

    async def save(self, document: MetadataDocument, *, expected_hash=_FROM_LAST_LOAD, force: bool = False) -> None:
        """
        Upload the whole document to the fixed key.

        On any failure the cache is dropped so the next read goes back to the
        remote copy instead of serving a mutation that never persisted.
        """
        payload = document.to_json_bytes()
        try:
            if self.conflict_check and not force:
                expected = self._loaded_hash if expected_hash is _FROM_LAST_LOAD else expected_hash
                current = await self._remote_hash()
                if current != expected:
                    raise ConflictError(f"{self.key} changed since it was loaded")
            await self.storage.put(self.key, payload, content_type="application/json")
        except Exception:
            self.clear_cache()
            logger.error("Error saving metadata to %s", self.key, exc_info=True)
            raise
        self._loaded_hash = _content_hash(payload)
        self._set_cache(document)
        logger.info("Metadata saved to %s", self.key)

    async def replace(self, document: MetadataDocument) -> None:
        """Overwrite the remote document unconditionally (restore path)."""
        await self.save(document, force=True)

    async def exists(self) -> bool:
        return await self.storage.exists(self.key)

    async def _mutate(self, apply):
        """
        Fresh load, mutate a private copy, save. ``apply`` returning None or
        False means nothing changed and nothing is written.
        """
        document = (await self.load()).model_copy(deep=True)
        expected = self._loaded_hash
        result = apply(document)
        if result is None or result is False:
            return result
        await self.save(document, expected_hash=expected)
        return result

    @staticmethod
    def _new_id(records: list) -> str:
        taken = {r.id for r in records}
        record_id = generate_id()
        while record_id in taken:
            record_id = generate_id()
        return record_id

    @staticmethod
    def _index_of(records: list, record_id: str) -> int:
        for i, record in enumerate(records):
            if record.id == record_id:
                return i
        return -1

    def _update_in(self, collection: str, record_id: str, changes: dict, check=None):
        def apply(document: MetadataDocument):
            records = getattr(document, collection)
            i = self._index_of(records, record_id)
            if i == -1:
                return None
            if check:
                check(document, records[i])
            records[i] = _merge(records[i], changes)
            return records[i]

        return apply

    def _delete_from(self, collection: str, record_id: str):
        def apply(document: MetadataDocument):
            records = getattr(document, collection)
            i = self._index_of(records, record_id)
            if i == -1:
                return False
            records.pop(i)
            return True

        return apply

    # ── Generic reads ─────────────────────────────────────

    async def get_all(self, kind: str) -> list:
        if kind not in COLLECTIONS:
            raise ValueError(f"Unknown entity kind: {kind}")
        document = await self._get_document()
        return getattr(document, kind)

    async def _find(self, kind: str, record_id: str):
        for record in await self.get_all(kind):
            if record.id == record_id:
                return record
        return None

    # ── Videos ────────────────────────────────────────────

    async def get_all_videos(self, include_inactive: bool = True) -> list[Video]:
        videos = await self.get_all("videos")
        if include_inactive:
            return videos
        return [v for v in videos if v.is_active]

    async def get_video(self, video_id: str) -> Video | None:
        return await self._find("videos", video_id)

    async def create_video(self, payload: VideoCreate) -> Video:
        def apply(document: MetadataDocument) -> Video:
            video = Video(
                **payload.model_dump(),
                id=self._new_id(document.videos),
                created_at=utcnow(),
                views=0,
            )
            document.videos.append(video)
            return video

        return await self._mutate(apply)

    async def update_video(self, video_id: str, payload: VideoUpdate) -> Video | None:
        return await self._mutate(self._update_in("videos", video_id, payload.changes(Video)))

    async def delete_video(self, video_id: str) -> bool:
        return await self._mutate(self._delete_from("videos", video_id))

    async def increment_video_views(self, video_id: str) -> int | None:
        def apply(document: MetadataDocument) -> int | None:
            i = self._index_of(document.videos, video_id)
            if i == -1:
                return None
            video = document.videos[i]
            video.views = (video.views or 0) + 1
            return video.views

        return await self._mutate(apply)

    # ── Users ─────────────────────────────────────────────

    async def get_all_users(self) -> list[User]:
        return await self.get_all("users")

    async def get_user(self, user_id: str) -> User | None:
        return await self._find("users", user_id)

    async def get_user_by_email(self, email: str) -> User | None:
        for user in await self.get_all_users():
            if user.email == email:
                return user
        return None

    async def create_user(self, payload: UserCreate) -> User:
        def apply(document: MetadataDocument) -> User:
            if any(u.email == payload.email for u in document.users):
                raise ValidationError(f"Email already registered: {payload.email}")
            user = User(**payload.model_dump(), id=self._new_id(document.users), created_at=utcnow())
            document.users.append(user)
            return user

        return await self._mutate(apply)

    async def update_user(self, user_id: str, payload: UserUpdate) -> User | None:
        changes = payload.changes(User)

        def check(document: MetadataDocument, user: User) -> None:
            email = changes.get("email")
            if email and email != user.email and any(u.email == email for u in document.users):
                raise ValidationError(f"Email already registered: {email}")

        return await self._mutate(self._update_in("users", user_id, changes, check))

    async def delete_user(self, user_id: str) -> bool:
        return await self._mutate(self._delete_from("users", user_id))

    # ── Sessions ──────────────────────────────────────────

    async def get_all_sessions(self) -> list[Session]:
        return await self.get_all("sessions")

    async def get_session(self, session_id: str) -> Session | None:
        return await self._find("sessions", session_id)

    async def get_session_by_token(self, token: str) -> Session | None:
        """Active sessions only."""
        for session in await self.get_all_sessions():
            if session.token == token and session.is_active:
                return session
        return None

    async def create_session(self, payload: SessionCreate) -> Session:
        def apply(document: MetadataDocument) -> Session:
            if any(s.token == payload.token for s in document.sessions):
                raise ValidationError("Session token already in use")
            session = Session(**payload.model_dump(), id=self._new_id(document.sessions), created_at=utcnow())
            document.sessions.append(session)
            return session

        return await self._mutate(apply)

    async def update_session(self, session_id: str, payload: SessionUpdate) -> Session | None:
        return await self._mutate(self._update_in("sessions", session_id, payload.changes(Session)))

    async def delete_session(self, session_id: str) -> bool:
        return await self._mutate(self._delete_from("sessions", session_id))

    # ── Site config ───────────────────────────────────────

    async def get_site_config(self) -> SiteConfig:
        document = await self._get_document()
        return document.site_config

    async def update_site_config(self, payload: SiteConfigUpdate) -> SiteConfig:
        changes = payload.changes(SiteConfig)

        def apply(document: MetadataDocument) -> SiteConfig:
            document.site_config = _merge(document.site_config, changes)
            return document.site_config

        return await self._mutate(apply)
