from fastapi import BackgroundTasks, Depends, Header
from sqlmodel import Session

from hkids.auth import authenticate, require_admin
from hkids.config import settings
from hkids.database import get_session
from hkids.models.user import User
from hkids.services.catalog import CatalogService
from hkids.services.media import MediaStore


async def get_current_user(
    authorization: str | None = Header(default=None),
    session: Session = Depends(get_session),
) -> User:
    return authenticate(authorization, session)


async def get_admin_user(user: User = Depends(get_current_user)) -> User:
    require_admin(user)
    return user


def get_media_store() -> MediaStore:
    return MediaStore(settings.media_dir, max_bytes=settings.max_upload_bytes)


def get_catalog(
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    media: MediaStore = Depends(get_media_store),
) -> CatalogService:
    def schedule_cleanup(references: list[str]) -> None:
        background_tasks.add_task(media.remove, references)

    return CatalogService(session, media, schedule_cleanup=schedule_cleanup)
