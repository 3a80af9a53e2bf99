"""Service wiring and FastAPI dependency injection — get_catalog_service, get_current_user."""

from datetime import timedelta

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from metastore.config import Settings, settings as default_settings
from metastore.schemas.user import User
from metastore.services.backup_service import BackupCoordinator
from metastore.services.catalog_service import CatalogService
from metastore.services.document_store import MetadataDocumentStore
from metastore.services.mirror import RelationalMirror
from metastore.utils.security import get_password_hasher
from metastore.utils.storage import ObjectStore, get_object_store


def build_catalog_service(config: Settings = default_settings, storage: ObjectStore | None = None) -> CatalogService:
    """Construct every service from configuration. Nothing is connected until initialize()."""
    storage = storage or get_object_store(config)
    document_store = MetadataDocumentStore(
        storage,
        config.metadata_key,
        cache_seconds=config.METADATA_CACHE_SECONDS,
        fallback_on_load_error=config.METADATA_FALLBACK_ON_LOAD_ERROR,
        conflict_check=config.METADATA_CONFLICT_CHECK,
    )
    mirror = RelationalMirror(config.DATABASE_URL)
    backups = BackupCoordinator(
        mirror,
        config.BACKUP_LOCAL_PATH,
        document_store=document_store,
        source=document_store if config.SOURCE_OF_TRUTH == "document" else mirror,
        version=config.BACKUP_FORMAT_VERSION,
    )
    return CatalogService(
        storage,
        document_store,
        mirror,
        backups,
        source_of_truth=config.SOURCE_OF_TRUTH,
        auto_backup=config.AUTO_BACKUP,
        hasher=get_password_hasher(config.PASSWORD_HASH_SCHEME),
        session_ttl=timedelta(hours=config.SESSION_TTL_HOURS),
        signed_url_ttl=config.SIGNED_URL_TTL_SECONDS,
    )


def get_catalog_service(request: Request) -> CatalogService:
    return request.app.state.catalog


security_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security_scheme),
    catalog: CatalogService = Depends(get_catalog_service),
) -> User:
    """Validate the bearer session token, return the authenticated User."""
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    session = await catalog.validate_session(credentials.credentials)
    if not session:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session expired or invalid")

    user = await catalog.get_user(session.user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    return user
