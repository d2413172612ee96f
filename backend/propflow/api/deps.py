from contextlib import contextmanager
from typing import Iterator, Optional
from uuid import UUID
from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from propflow.config import get_settings
from propflow.db.session import get_db, get_sync_session
from propflow.models.tenancy import IMPORT_ROLES, User
from propflow.services.import_runner import ImportRunner
from propflow.services.repository import SqlRepository
from propflow.services.storage import archive_import_file


async def get_current_user(
    db: AsyncSession = Depends(get_db),
    x_user_id: Optional[str] = Header(None),
) -> User:
    """Authentication happens upstream; the gateway forwards the user id in X-User-Id."""
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    try:
        user_id = UUID(x_user_id)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid user id")
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if user.status != "ACTIVE":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User inactive")
    return user


async def require_import_user(user: User = Depends(get_current_user)) -> User:
    if user.role not in IMPORT_ROLES:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Data import requires an admin or property manager")
    return user


@contextmanager
def import_runner() -> Iterator[ImportRunner]:
    """Runner over a fresh sync session; used inside worker threads and Celery tasks."""
    repo = SqlRepository(get_sync_session)
    try:
        yield ImportRunner(repo, settings=get_settings(), archiver=archive_import_file)
    finally:
        repo.close()
