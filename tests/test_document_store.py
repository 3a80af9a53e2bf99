import asyncio
import json
from datetime import timedelta

import pytest

from metastore.exceptions import ConflictError, StoreUnavailableError, ValidationError
from metastore.schemas.session import SessionCreate, SessionUpdate
from metastore.schemas.site_config import SiteConfigUpdate
from metastore.schemas.user import UserCreate, UserUpdate
from metastore.schemas.video import VideoCreate, VideoUpdate
from metastore.services.document_store import MetadataDocumentStore
from metastore.utils.records import utcnow

from conftest import METADATA_KEY, RecordingStore


def _video(**overrides) -> VideoCreate:
    fields = {"title": "Demo", "description": "A demo clip", "price": 9.99, "duration": 125}
    fields.update(overrides)
    return VideoCreate(**fields)


class InterferingStore(RecordingStore):
    """Runs ``on_get`` once, right after the next read, to simulate a second writer."""

    on_get = None

    async def get(self, key: str) -> bytes:
        data = await super().get(key)
        hook, self.on_get = self.on_get, None
        if hook:
            await hook()
        return data


async def test_missing_document_reads_as_empty_defaults(document_store):
    assert await document_store.get_all_videos() == []
    assert await document_store.get_all_users() == []
    config = await document_store.get_site_config()
    assert config.site_name == "VideosPlus"
    assert config.email_port == "587"


async def test_create_video_persists_camel_case_document(document_store, storage):
    video = await document_store.create_video(_video())

    assert video.id
    assert video.views == 0
    assert video.duration == "02:05"
    assert storage.puts == [METADATA_KEY]

    stored = json.loads(await storage.get(METADATA_KEY))
    assert stored["videos"][0]["id"] == video.id
    assert "createdAt" in stored["videos"][0]
    assert "videoFileId" in stored["videos"][0]
    assert "siteConfig" in stored


async def test_update_merges_only_provided_fields(document_store):
    video = await document_store.create_video(_video())

    updated = await document_store.update_video(video.id, VideoUpdate(price=4.5))

    assert updated.price == 4.5
    assert updated.title == "Demo"
    assert updated.created_at == video.created_at
    assert (await document_store.get_video(video.id)).price == 4.5


async def test_missing_ids_do_not_write(document_store, storage):
    await document_store.create_video(_video())
    storage.puts.clear()

    assert await document_store.update_video("nope", VideoUpdate(title="x")) is None
    assert await document_store.delete_video("nope") is False
    assert await document_store.increment_video_views("nope") is None
    assert storage.puts == []


async def test_delete_video(document_store):
    video = await document_store.create_video(_video())

    assert await document_store.delete_video(video.id) is True
    assert await document_store.get_video(video.id) is None


async def test_include_inactive_filter(document_store):
    await document_store.create_video(_video(title="Live"))
    await document_store.create_video(_video(title="Hidden", is_active=False))

    assert len(await document_store.get_all_videos()) == 2
    active = await document_store.get_all_videos(include_inactive=False)
    assert [v.title for v in active] == ["Live"]


async def test_reads_are_served_from_cache_until_ttl(document_store, storage, clock):
    await document_store.create_video(_video())
    fetches = len(storage.gets)

    await document_store.get_all_videos()
    await document_store.get_site_config()
    assert len(storage.gets) == fetches

    clock.advance(31)
    await document_store.get_all_videos()
    assert len(storage.gets) == fetches + 1


async def test_writes_always_reload_remote_copy(document_store, storage):
    await document_store.get_all_videos()
    fetches = len(storage.gets)

    await document_store.create_video(_video())

    assert len(storage.gets) == fetches + 1


async def test_clear_cache_forces_reload(document_store, storage):
    await document_store.get_all_videos()
    fetches = len(storage.gets)

    document_store.clear_cache()
    await document_store.get_all_videos()

    assert len(storage.gets) == fetches + 1


async def test_load_error_falls_back_to_empty_dataset(document_store, storage):
    await storage.put(METADATA_KEY, b"{not json")

    assert await document_store.get_all_videos() == []

    storage.fail_get = True
    document_store.clear_cache()
    assert await document_store.get_all_users() == []


async def test_load_error_raises_when_fallback_disabled(storage, clock):
    store = MetadataDocumentStore(storage, METADATA_KEY, fallback_on_load_error=False, clock=clock)
    storage.fail_get = True

    with pytest.raises(StoreUnavailableError):
        await store.get_all_videos()


async def test_failed_save_drops_cache(document_store, storage):
    video = await document_store.create_video(_video())
    storage.fail_put = True

    with pytest.raises(ConnectionError):
        await document_store.update_video(video.id, VideoUpdate(title="Renamed"))

    storage.fail_put = False
    fetches = len(storage.gets)
    current = await document_store.get_video(video.id)

    assert current.title == "Demo"
    assert len(storage.gets) == fetches + 1


async def test_sequential_increments(document_store):
    video = await document_store.create_video(_video())

    counts = [await document_store.increment_video_views(video.id) for _ in range(3)]

    assert counts == [1, 2, 3]
    assert (await document_store.get_video(video.id)).views == 3


async def test_overlapping_writers_last_one_wins(tmp_path, clock):
    storage = InterferingStore(tmp_path / "objects")
    store = MetadataDocumentStore(storage, METADATA_KEY, clock=clock)
    other = MetadataDocumentStore(storage, METADATA_KEY, clock=clock)
    video = await store.create_video(_video())

    storage.on_get = lambda: other.increment_video_views(video.id)
    assert await store.increment_video_views(video.id) == 1

    store.clear_cache()
    assert (await store.get_video(video.id)).views == 1


async def test_conflict_check_rejects_stale_write(tmp_path, clock):
    storage = InterferingStore(tmp_path / "objects")
    store = MetadataDocumentStore(storage, METADATA_KEY, conflict_check=True, clock=clock)
    other = MetadataDocumentStore(storage, METADATA_KEY, clock=clock)
    video = await store.create_video(_video())

    storage.on_get = lambda: other.increment_video_views(video.id)
    with pytest.raises(ConflictError):
        await store.increment_video_views(video.id)

    assert (await store.get_video(video.id)).views == 1


async def test_conflict_check_on_explicit_save(storage, clock):
    store = MetadataDocumentStore(storage, METADATA_KEY, conflict_check=True, clock=clock)
    other = MetadataDocumentStore(storage, METADATA_KEY, clock=clock)
    document = await store.load()

    await other.create_video(_video())

    with pytest.raises(ConflictError):
        await store.save(document)
    await store.save(document, force=True)
    assert await other.load() == document


async def test_duplicate_email_rejected(document_store):
    await document_store.create_user(UserCreate(email="a@example.com", name="A", password="x"))
    other = await document_store.create_user(UserCreate(email="b@example.com", name="B", password="x"))

    with pytest.raises(ValidationError):
        await document_store.create_user(UserCreate(email="a@example.com", name="A2", password="y"))
    with pytest.raises(ValidationError):
        await document_store.update_user(other.id, UserUpdate(email="a@example.com"))


async def test_site_config_update_merges(document_store):
    await document_store.update_site_config(SiteConfigUpdate(site_name="My Shop"))
    config = await document_store.update_site_config(SiteConfigUpdate(crypto=["BTC:abc"]))

    assert config.site_name == "My Shop"
    assert config.crypto == ["BTC:abc"]
    assert config.video_list_title == "Available Videos"


async def test_get_all_rejects_unknown_kind(document_store):
    with pytest.raises(ValueError):
        await document_store.get_all("orders")


async def test_concurrent_increments_stay_within_bounds(document_store):
    video = await document_store.create_video(_video())

    await asyncio.gather(*(document_store.increment_video_views(video.id) for _ in range(5)))

    document_store.clear_cache()
    views = (await document_store.get_video(video.id)).views
    assert 1 <= views <= 5


async def test_user_and_session_round_trip(document_store):
    user = await document_store.create_user(UserCreate(email="a@example.com", name="A", password="x"))
    session = await document_store.create_session(SessionCreate(
        user_id=user.id, token="tok", expires_at=utcnow() + timedelta(hours=1),
    ))

    assert await document_store.get_user(user.id) == user
    assert await document_store.get_user_by_email("a@example.com") == user
    assert await document_store.get_session(session.id) == session
    assert await document_store.get_session_by_token("tok") == session

    await document_store.update_session(session.id, SessionUpdate(is_active=False))
    assert await document_store.get_session_by_token("tok") is None

    assert await document_store.delete_user(user.id) is True
    assert await document_store.get_all_users() == []
