import json
from datetime import datetime, timedelta, timezone

import pytest

from metastore.exceptions import ValidationError
from metastore.schemas.document import BackupBundle
from metastore.schemas.session import SessionCreate
from metastore.schemas.site_config import SiteConfigUpdate
from metastore.schemas.user import UserCreate
from metastore.schemas.video import VideoCreate
from metastore.services.backup_service import BackupCoordinator
from metastore.utils.records import utcnow


async def _populate(mirror):
    user = await mirror.create_user(UserCreate(email="admin@example.com", name="Admin", password="h"))
    videos = [
        await mirror.create_video(VideoCreate(title=f"Clip {i}", description="d", price=i, duration=60 * i))
        for i in range(1, 4)
    ]
    await mirror.create_video(VideoCreate(title="Draft", description="d", price=0, is_active=False))
    session = await mirror.create_session(SessionCreate(
        user_id=user.id, token="t0k3n", expires_at=utcnow() + timedelta(hours=24),
    ))
    await mirror.update_site_config(SiteConfigUpdate(site_name="Backup Shop", telegram_username="shop"))
    return user, videos, session


async def test_backup_writes_local_file(backups, mirror, tmp_path):
    await _populate(mirror)

    bundle = await backups.backup()

    assert len(bundle.videos) == 4
    assert bundle.version == "1.0"
    assert bundle.backup_date is not None
    stored = json.loads((tmp_path / "backup.json").read_text())
    assert "backupDate" in stored
    assert stored["siteConfig"]["siteName"] == "Backup Shop"
    assert backups.load_local_backup() == bundle


async def test_load_local_backup_missing_file(backups):
    assert backups.load_local_backup() is None


async def test_restore_preserves_ids_and_replaces_contents(backups, mirror):
    user, videos, session = await _populate(mirror)
    bundle = await backups.backup()

    await mirror.delete_video(videos[0].id)
    await mirror.create_video(VideoCreate(title="After backup", description="d", price=1))
    await mirror.update_site_config(SiteConfigUpdate(site_name="Changed"))

    result = await backups.restore(bundle)

    assert (result.videos, result.users, result.sessions) == (4, 1, 1)
    assert result.site_config is True
    restored = await mirror.get_all_videos(include_inactive=True)
    assert {v.id for v in restored} == {v.id for v in bundle.videos}
    assert (await mirror.get_video(videos[0].id)).created_at == videos[0].created_at
    assert (await mirror.get_user(user.id)).email == "admin@example.com"
    assert (await mirror.get_session_by_token("t0k3n")).id == session.id
    assert (await mirror.get_site_config()).site_name == "Backup Shop"


async def test_restore_twice_does_not_duplicate(backups, mirror):
    await _populate(mirror)
    bundle = await backups.backup()

    await backups.restore(bundle)
    await backups.restore(bundle)

    assert len(await mirror.get_all_videos(include_inactive=True)) == 4
    assert len(await mirror.get_all_users()) == 1


async def test_restore_accepts_raw_json_payload(backups, mirror):
    await _populate(mirror)
    payload = json.loads((await backups.backup()).to_json_bytes())
    await mirror.clear_all()

    result = await backups.restore(payload)

    assert result.videos == 4
    assert result.backup_date is not None


@pytest.mark.parametrize("payload", [
    {"users": []},
    {"videos": "not a list"},
    {"videos": [], "users": {"id": "x"}},
    {"videos": [{"title": 1}]},
    ["videos"],
])
async def test_malformed_bundle_rejected_before_any_change(backups, mirror, payload):
    await _populate(mirror)

    with pytest.raises(ValidationError):
        await backups.restore(payload)

    assert len(await mirror.get_all_videos(include_inactive=True)) == 4


async def test_bundle_without_site_config_leaves_it_unset(backups, mirror):
    await _populate(mirror)

    result = await backups.restore({"videos": []})

    assert result.site_config is False
    assert await mirror.get_site_config() is None


async def test_restore_can_replace_document_store(backups, mirror, document_store):
    await _populate(mirror)
    bundle = await backups.backup()

    result = await backups.restore(bundle, include_document_store=True)

    assert result.document_store is True
    document_store.clear_cache()
    assert len(await document_store.get_all_videos()) == 4
    assert (await document_store.get_site_config()).site_name == "Backup Shop"


async def test_backup_from_document_source(mirror, document_store, tmp_path):
    await document_store.create_video(VideoCreate(title="Doc only", description="d", price=2))
    coordinator = BackupCoordinator(mirror, tmp_path / "doc-backup.json", source=document_store)

    bundle = await coordinator.backup()

    assert [v.title for v in bundle.videos] == ["Doc only"]
    assert bundle.site_config.site_name == "VideosPlus"


def test_bundle_from_payload_passes_bundles_through():
    bundle = BackupBundle(videos=[])
    assert BackupBundle.from_payload(bundle) is bundle


async def test_restore_stores_offset_timestamps_as_utc(backups, mirror):
    stamp = "2026-01-01T12:00:00+02:00"
    await backups.restore({
        "videos": [{"id": "v1", "title": "Demo", "description": "d", "price": 1, "createdAt": stamp}],
        "users": [{"id": "u1", "email": "a@example.com", "name": "A", "password": "h", "createdAt": stamp}],
        "sessions": [{
            "id": "s1", "userId": "u1", "token": "tok",
            "expiresAt": "2099-01-01T12:00:00+02:00", "createdAt": stamp,
        }],
    })

    expected = datetime(2026, 1, 1, 10, 0, tzinfo=timezone.utc)
    assert (await mirror.get_video("v1")).created_at == expected
    assert (await mirror.get_user("u1")).created_at == expected
    session = await mirror.get_session("s1")
    assert session.created_at == expected
    assert session.expires_at == datetime(2099, 1, 1, 10, 0, tzinfo=timezone.utc)
