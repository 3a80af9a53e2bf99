"""Shared fixtures: a temp-dir object store, a SQLite mirror and a wired catalog."""

from pathlib import Path

import pytest

from metastore.exceptions import ObjectNotFoundError
from metastore.services.backup_service import BackupCoordinator
from metastore.services.catalog_service import CatalogService
from metastore.services.document_store import MetadataDocumentStore
from metastore.services.mirror import RelationalMirror
from metastore.utils.storage import LocalObjectStore

METADATA_KEY = "metadata/videosplus-data.json"


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingStore(LocalObjectStore):
    """Local store that counts calls and can be told to fail."""

    def __init__(self, base: Path):
        super().__init__(base)
        self.gets: list[str] = []
        self.puts: list[str] = []
        self.deletes: list[str] = []
        self.fail_get = False
        self.fail_put = False

    async def get(self, key: str) -> bytes:
        self.gets.append(key)
        if self.fail_get:
            raise ConnectionError("object store unreachable")
        return await super().get(key)

    async def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        self.puts.append(key)
        if self.fail_put:
            raise ConnectionError("object store unreachable")
        return await super().put(key, data, content_type)

    async def delete(self, key: str) -> None:
        self.deletes.append(key)
        if not await self.exists(key):
            raise ObjectNotFoundError(key)
        await super().delete(key)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage(tmp_path):
    return RecordingStore(tmp_path / "objects")


@pytest.fixture
def document_store(storage, clock):
    return MetadataDocumentStore(storage, METADATA_KEY, cache_seconds=30, clock=clock)


@pytest.fixture
async def mirror(tmp_path):
    mirror = RelationalMirror(f"sqlite+aiosqlite:///{tmp_path}/mirror.db")
    await mirror.initialize()
    yield mirror
    await mirror.close()


@pytest.fixture
def backups(mirror, document_store, tmp_path):
    return BackupCoordinator(mirror, tmp_path / "backup.json", document_store=document_store)


def _catalog(storage, document_store, mirror, tmp_path, source_of_truth: str) -> CatalogService:
    source = document_store if source_of_truth == "document" else mirror
    backups = BackupCoordinator(
        mirror, tmp_path / "backup.json", document_store=document_store, source=source
    )
    return CatalogService(storage, document_store, mirror, backups, source_of_truth=source_of_truth)


@pytest.fixture
async def catalog(storage, document_store, mirror, tmp_path):
    catalog = _catalog(storage, document_store, mirror, tmp_path, "mirror")
    await catalog.initialize()
    await catalog.bootstrap()
    return catalog


@pytest.fixture
async def document_catalog(storage, document_store, mirror, tmp_path):
    catalog = _catalog(storage, document_store, mirror, tmp_path, "document")
    await catalog.initialize()
    await catalog.bootstrap()
    return catalog
