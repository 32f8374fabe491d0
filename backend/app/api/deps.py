"""FastAPI dependencies wiring the content services.

The repository is created once in the application lifespan and stored on
``app.state``. Tests replace it via ``app.dependency_overrides``.
"""

from functools import lru_cache

from fastapi import Depends, HTTPException, Request

from app.core.auth import Actor, require_actor
from app.core.config import get_settings
from app.domain.config import ContentConfig
from app.services.content_admin_service import ContentAdminService
from app.services.fallback import FileFallbackLoader
from app.services.import_service import QuestionSetImportService
from app.services.resolver import ContentResolver
from app.store.repository import ContentRepository


@lru_cache
def get_content_config() -> ContentConfig:
    return ContentConfig.from_settings(get_settings())


def get_content_repository(request: Request) -> ContentRepository:
    repository = getattr(request.app.state, "content_repository", None)
    if repository is None:
        raise HTTPException(status_code=503, detail="Content store not initialized")
    return repository


def get_resolver(
    repository: ContentRepository = Depends(get_content_repository),
    config: ContentConfig = Depends(get_content_config),
) -> ContentResolver:
    return ContentResolver(repository, FileFallbackLoader(config), config)


def get_admin_service(
    repository: ContentRepository = Depends(get_content_repository),
    config: ContentConfig = Depends(get_content_config),
) -> ContentAdminService:
    return ContentAdminService(repository, config)


def get_import_service(admin: ContentAdminService = Depends(get_admin_service)) -> QuestionSetImportService:
    return QuestionSetImportService(admin)


async def require_editor(
    actor: Actor = Depends(require_actor),
    config: ContentConfig = Depends(get_content_config),
) -> Actor:
    """Privileged roles (editor/admin by default): authoring and preview."""
    if not config.is_privileged(actor.role):
        raise HTTPException(status_code=403, detail="Editor role required")
    return actor


async def require_publisher(
    actor: Actor = Depends(require_actor),
    config: ContentConfig = Depends(get_content_config),
) -> Actor:
    """Publish roles (admin by default): publish and hard delete."""
    if not config.can_publish(actor.role):
        raise HTTPException(status_code=403, detail="Admin role required")
    return actor
