import json

from metastore.schemas.video import VideoCreate
from metastore.services.catalog_service import LATEST_BACKUP_KEY
from metastore.workers import backup_worker


async def test_backup_then_status(catalog, storage):
    await catalog.create_video(VideoCreate(title="Demo", description="d", price=1))

    pointer = await backup_worker.run_backup(catalog)
    status = await backup_worker.run_status(catalog)

    assert status["latestBackup"] == pointer
    assert json.loads(await storage.get(LATEST_BACKUP_KEY))["backupKey"] == pointer["backupKey"]


async def test_restore_file(catalog, tmp_path):
    video = await catalog.create_video(VideoCreate(title="Demo", description="d", price=1))
    bundle = await catalog.backups.backup()
    path = tmp_path / "exported.json"
    path.write_bytes(bundle.to_json_bytes())
    await catalog.delete_video(video.id)

    result = await backup_worker.run_restore_file(catalog, path)

    assert result.videos == 1
    assert (await catalog.get_video(video.id)).title == "Demo"


async def test_run_closes_catalog(catalog):
    await backup_worker._run("backup", catalog=catalog)

    assert catalog.mirror.initialized is False
