"""
Relational mirror: the same four entity kinds in a local SQL store.

Each method runs its statements in a short-lived session and commits at the
end of each step. Multi-step operations (update = read, merge, write back) are
sequenced in Python, not wrapped in one transaction, so two in-process callers
updating the same row can still lose an update.
"""

import json
import logging
from pathlib import Path

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine

from metastore.db.base import Base
from metastore.db.session import create_engine, create_session_factory
from metastore.exceptions import ValidationError
from metastore.models import SessionRow, SiteConfigRow, UserRow, VideoRow
from metastore.schemas.session import Session, SessionCreate, SessionUpdate
from metastore.schemas.site_config import SITE_CONFIG_ID, SiteConfig, SiteConfigUpdate
from metastore.schemas.user import User, UserCreate, UserUpdate
from metastore.schemas.video import Video, VideoCreate, VideoUpdate
from metastore.utils.records import ensure_aware, generate_id, to_utc, utcnow

logger = logging.getLogger(__name__)

_VIDEO_COLUMNS = (
    "title", "description", "price", "duration", "video_file_id", "thumbnail_file_id",
    "thumbnail_url", "is_purchased", "product_link", "is_active",
)


def _load_json(text: str | None, default):
    if not text:
        return default
    try:
        value = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        logger.warning("Malformed JSON column in site_config, using %r", default)
        return default
    return value if isinstance(value, type(default)) else default


def _video_from_row(row: VideoRow) -> Video:
    return Video(
        id=row.id,
        title=row.title,
        description=row.description or "",
        price=row.price,
        duration=row.duration,
        video_file_id=row.video_file_id or "",
        thumbnail_file_id=row.thumbnail_file_id or "",
        thumbnail_url=row.thumbnail_url,
        is_purchased=bool(row.is_purchased),
        created_at=ensure_aware(row.created_at),
        views=row.views or 0,
        product_link=row.product_link or "",
        is_active=bool(row.is_active),
    )


def _user_from_row(row: UserRow) -> User:
    return User(
        id=row.id,
        email=row.email,
        name=row.name,
        password=row.password,
        created_at=ensure_aware(row.created_at),
    )


def _session_from_row(row: SessionRow) -> Session:
    return Session(
        id=row.id,
        user_id=row.user_id,
        token=row.token,
        expires_at=ensure_aware(row.expires_at),
        created_at=ensure_aware(row.created_at),
        is_active=bool(row.is_active),
        user_agent=row.user_agent,
    )


def _site_config_from_row(row: SiteConfigRow) -> SiteConfig:
    return SiteConfig(
        site_name=row.site_name or "VideosPlus",
        paypal_client_id=row.paypal_client_id or "",
        paypal_me_username=row.paypal_me_username or "",
        stripe_publishable_key=row.stripe_publishable_key or "",
        stripe_secret_key=row.stripe_secret_key or "",
        telegram_username=row.telegram_username or "",
        video_list_title=row.video_list_title or "Available Videos",
        crypto=_load_json(row.crypto, []),
        email_host=row.email_host or "smtp.gmail.com",
        email_port=row.email_port or "587",
        email_secure=bool(row.email_secure),
        email_user=row.email_user or "",
        email_pass=row.email_pass or "",
        email_from=row.email_from or "",
        wasabi_config=_load_json(row.wasabi_config, {}),
    )


class RelationalMirror:
    def __init__(self, database_url: str | None = None, *, engine: AsyncEngine | None = None):
        if engine is None and database_url is None:
            raise ValueError("RelationalMirror needs a database_url or an engine")
        self.engine = engine or create_engine(database_url)
        self._session_factory = create_session_factory(self.engine)
        self.initialized = False

    async def initialize(self) -> None:
        if self.initialized:
            return
        url = self.engine.url
        if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self.initialized = True
        logger.info("Relational mirror ready: %s", self.engine.url.render_as_string(hide_password=True))

    async def close(self) -> None:
        await self.engine.dispose()
        self.initialized = False

    async def _check_initialized(self) -> None:
        if not self.initialized:
            await self.initialize()

    async def _add(self, row) -> None:
        async with self._session_factory() as db:
            db.add(row)
            try:
                await db.commit()
            except IntegrityError as e:
                await db.rollback()
                raise ValidationError(f"Duplicate or invalid {row.__tablename__} record: {e.orig}") from e

    async def _get_row(self, model, record_id: str):
        await self._check_initialized()
        async with self._session_factory() as db:
            return await db.get(model, record_id)

    async def _delete_row(self, model, record_id: str) -> bool:
        await self._check_initialized()
        async with self._session_factory() as db:
            result = await db.execute(delete(model).where(model.id == record_id))
            await db.commit()
            return result.rowcount > 0

    async def _all(self, query) -> list:
        await self._check_initialized()
        async with self._session_factory() as db:
            result = await db.execute(query)
            return list(result.scalars().all())

    # ── Videos ────────────────────────────────────────────

    async def get_all_videos(self, include_inactive: bool = False) -> list[Video]:
        query = select(VideoRow)
        if not include_inactive:
            query = query.where(VideoRow.is_active.is_(True))
        rows = await self._all(query.order_by(VideoRow.created_at.desc()))
        return [_video_from_row(r) for r in rows]

    async def get_video(self, video_id: str) -> Video | None:
        row = await self._get_row(VideoRow, video_id)
        return _video_from_row(row) if row else None

    async def insert_video(self, video: Video) -> Video:
        """Insert a fully formed record, keeping its id and counters."""
        await self._check_initialized()
        await self._add(VideoRow(
            id=video.id,
            created_at=to_utc(video.created_at),
            views=video.views,
            **{name: getattr(video, name) for name in _VIDEO_COLUMNS},
        ))
        return video

    async def create_video(self, payload: VideoCreate) -> Video:
        video = Video(**payload.model_dump(), id=generate_id(), created_at=utcnow(), views=0)
        return await self.insert_video(video)

    async def update_video(self, video_id: str, payload: VideoUpdate) -> Video | None:
        existing = await self.get_video(video_id)
        if not existing:
            return None
        merged = Video.model_validate({**existing.model_dump(), **payload.changes(Video)})
        async with self._session_factory() as db:
            result = await db.execute(
                update(VideoRow)
                .where(VideoRow.id == video_id)
                .values(**{name: getattr(merged, name) for name in _VIDEO_COLUMNS})
            )
            await db.commit()
        if result.rowcount == 0:
            # deleted between the read and the write
            return None
        return merged

    async def delete_video(self, video_id: str) -> bool:
        return await self._delete_row(VideoRow, video_id)

    async def increment_video_views(self, video_id: str) -> int | None:
        await self._check_initialized()
        async with self._session_factory() as db:
            result = await db.execute(
                update(VideoRow).where(VideoRow.id == video_id).values(views=VideoRow.views + 1)
            )
            await db.commit()
            if result.rowcount == 0:
                return None
        video = await self.get_video(video_id)
        return video.views if video else None

    # ── Users ─────────────────────────────────────────────

    async def get_all_users(self) -> list[User]:
        rows = await self._all(select(UserRow).order_by(UserRow.created_at.desc()))
        return [_user_from_row(r) for r in rows]

    async def get_user(self, user_id: str) -> User | None:
        row = await self._get_row(UserRow, user_id)
        return _user_from_row(row) if row else None

    async def get_user_by_email(self, email: str) -> User | None:
        rows = await self._all(select(UserRow).where(UserRow.email == email))
        return _user_from_row(rows[0]) if rows else None

    async def insert_user(self, user: User) -> User:
        await self._check_initialized()
        await self._add(UserRow(
            id=user.id,
            email=user.email,
            name=user.name,
            password=user.password,
            created_at=to_utc(user.created_at),
        ))
        return user

    async def create_user(self, payload: UserCreate) -> User:
        user = User(**payload.model_dump(), id=generate_id(), created_at=utcnow())
        return await self.insert_user(user)

    async def update_user(self, user_id: str, payload: UserUpdate) -> User | None:
        existing = await self.get_user(user_id)
        if not existing:
            return None
        merged = User.model_validate({**existing.model_dump(), **payload.changes(User)})
        async with self._session_factory() as db:
            result = await db.execute(
                update(UserRow)
                .where(UserRow.id == user_id)
                .values(email=merged.email, name=merged.name, password=merged.password)
            )
            try:
                await db.commit()
            except IntegrityError as e:
                await db.rollback()
                raise ValidationError(f"Email already registered: {merged.email}") from e
        if result.rowcount == 0:
            return None
        return merged

    async def delete_user(self, user_id: str) -> bool:
        return await self._delete_row(UserRow, user_id)

    # ── Sessions ──────────────────────────────────────────

    async def get_all_sessions(self) -> list[Session]:
        rows = await self._all(select(SessionRow).order_by(SessionRow.created_at.desc()))
        return [_session_from_row(r) for r in rows]

    async def get_session(self, session_id: str) -> Session | None:
        row = await self._get_row(SessionRow, session_id)
        return _session_from_row(row) if row else None

    async def get_session_by_token(self, token: str) -> Session | None:
        """Active sessions only."""
        rows = await self._all(
            select(SessionRow).where(SessionRow.token == token, SessionRow.is_active.is_(True))
        )
        return _session_from_row(rows[0]) if rows else None

    async def insert_session(self, session: Session) -> Session:
        await self._check_initialized()
        await self._add(SessionRow(
            id=session.id,
            user_id=session.user_id,
            token=session.token,
            expires_at=to_utc(session.expires_at),
            created_at=to_utc(session.created_at),
            is_active=session.is_active,
            user_agent=session.user_agent,
        ))
        return session

    async def create_session(self, payload: SessionCreate) -> Session:
        session = Session(**payload.model_dump(), id=generate_id(), created_at=utcnow())
        return await self.insert_session(session)

    async def update_session(self, session_id: str, payload: SessionUpdate) -> Session | None:
        existing = await self.get_session(session_id)
        if not existing:
            return None
        merged = Session.model_validate({**existing.model_dump(), **payload.changes(Session)})
        async with self._session_factory() as db:
            result = await db.execute(
                update(SessionRow)
                .where(SessionRow.id == session_id)
                .values(
                    expires_at=to_utc(merged.expires_at),
                    is_active=merged.is_active,
                    user_agent=merged.user_agent,
                )
            )
            await db.commit()
        if result.rowcount == 0:
            return None
        return merged

    async def delete_session(self, session_id: str) -> bool:
        return await self._delete_row(SessionRow, session_id)

    # ── Site config ───────────────────────────────────────

    async def get_site_config(self) -> SiteConfig | None:
        row = await self._get_row(SiteConfigRow, SITE_CONFIG_ID)
        return _site_config_from_row(row) if row else None

    async def update_site_config(self, payload: SiteConfigUpdate | SiteConfig) -> SiteConfig:
        """Merge onto the current row (or defaults) and overwrite the whole row."""
        current = await self.get_site_config() or SiteConfig()
        if isinstance(payload, SiteConfig):
            merged = payload
        else:
            merged = SiteConfig.model_validate({**current.model_dump(), **payload.changes(SiteConfig)})
        row = SiteConfigRow(
            id=SITE_CONFIG_ID,
            site_name=merged.site_name,
            paypal_client_id=merged.paypal_client_id,
            paypal_me_username=merged.paypal_me_username,
            stripe_publishable_key=merged.stripe_publishable_key,
            stripe_secret_key=merged.stripe_secret_key,
            telegram_username=merged.telegram_username,
            video_list_title=merged.video_list_title,
            crypto=json.dumps(merged.crypto),
            email_host=merged.email_host,
            email_port=merged.email_port,
            email_secure=merged.email_secure,
            email_user=merged.email_user,
            email_pass=merged.email_pass,
            email_from=merged.email_from,
            wasabi_config=merged.wasabi_config.model_dump_json(by_alias=True),
            updated_at=utcnow(),
        )
        async with self._session_factory() as db:
            await db.merge(row)
            await db.commit()
        return merged

    # ── Maintenance ───────────────────────────────────────

    async def clear_all(self) -> None:
        await self._check_initialized()
        async with self._session_factory() as db:
            for model in (SessionRow, UserRow, VideoRow, SiteConfigRow):
                await db.execute(delete(model))
            await db.commit()
        logger.info("Relational mirror tables cleared")
