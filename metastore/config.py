"""
Metastore configuration using Pydantic BaseSettings.
Loads from .env and provides typed access to all settings.
"""

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Relational mirror ────────────────────────────────
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/videos.db"

    # ── Source of truth ──────────────────────────────────
    # "document" = remote JSON document, "mirror" = local SQL store
    SOURCE_OF_TRUTH: Literal["document", "mirror"] = "mirror"

    # ── Object storage ───────────────────────────────────
    STORAGE_BACKEND: Literal["local", "s3"] = "local"
    STORAGE_LOCAL_PATH: Path = Path("./storage")
    S3_BUCKET: str = "videosfolder"
    S3_REGION: str = "eu-central-2"
    S3_ENDPOINT_URL: str = "https://s3.eu-central-2.wasabisys.com"
    S3_ACCESS_KEY: str = ""
    S3_SECRET_KEY: str = ""
    OBJECT_STORE_TIMEOUT_SECONDS: float = 10.0
    SIGNED_URL_TTL_SECONDS: int = 3600

    # ── Metadata document ────────────────────────────────
    METADATA_DATASET: str = "videosplus-data"
    METADATA_CACHE_SECONDS: float = 30.0
    METADATA_FALLBACK_ON_LOAD_ERROR: bool = True
    METADATA_CONFLICT_CHECK: bool = False

    # ── Backups ──────────────────────────────────────────
    BACKUP_LOCAL_PATH: Path = Path("./data/backup.json")
    BACKUP_FORMAT_VERSION: str = "1.0"
    AUTO_BACKUP: bool = True

    # ── Authentication ───────────────────────────────────
    PASSWORD_HASH_SCHEME: Literal["sha256", "bcrypt"] = "sha256"
    SESSION_TTL_HOURS: int = 24
    ADMIN_EMAIL: str = ""
    ADMIN_PASSWORD: str = ""

    # ── Server ───────────────────────────────────────────
    BACKEND_HOST: str = "0.0.0.0"
    BACKEND_PORT: int = 3000
    CORS_ORIGINS: list[str] = ["http://localhost:5173"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @property
    def metadata_key(self) -> str:
        return f"metadata/{self.METADATA_DATASET}.json"


settings = Settings()
