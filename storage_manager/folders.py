import logging
from typing import List

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from storage_manager import quota
from storage_manager.database import atomic
from storage_manager.errors import ForbiddenError, NotFoundError
from storage_manager.models import File, Folder

logger = logging.getLogger(__name__)


def get_owned_folder(db: Session, folder_id: int, user_id: int) -> Folder:
    folder = db.get(Folder, folder_id)
    if not folder:
        raise NotFoundError("Folder not found")
    if folder.owner_id != user_id:
        raise ForbiddenError("You do not have permission to access this folder")
    return folder


def folder_files(db: Session, folder_id: int) -> List[File]:
    stmt = select(File).where(File.folder_id == folder_id, File.is_private.is_(False))
    return list(db.scalars(stmt.order_by(File.created_at.desc(), File.id.desc())))


def create_folder(db: Session, user_id: int, folder_name: str) -> Folder:
    with atomic(db, "create folder"):
        quota.get_user(db, user_id)
        folder = Folder(owner_id=user_id, folder_name=folder_name)
        db.add(folder)
    db.refresh(folder)
    logger.info("User %s created folder %s", user_id, folder.id)
    return folder


def list_folders(db: Session, user_id: int) -> List[Folder]:
    stmt = (
        select(Folder)
        .where(Folder.owner_id == user_id, Folder.is_private.is_(False))
        .order_by(Folder.created_at.desc(), Folder.id.desc())
    )
    return list(db.scalars(stmt))


def get_folder(db: Session, folder_id: int, user_id: int) -> Folder:
    """A public folder of the caller. Private folders are only reachable through the privacy gate."""
    folder = get_owned_folder(db, folder_id, user_id)
    if folder.is_private:
        raise NotFoundError("Folder not found")
    return folder


def rename_folder(db: Session, folder_id: int, user_id: int, new_name: str) -> Folder:
    with atomic(db, "rename folder"):
        folder = get_owned_folder(db, folder_id, user_id)
        folder.folder_name = new_name
    db.refresh(folder)
    return folder


def delete_folder(db: Session, folder_id: int, user_id: int) -> float:
    """Delete a folder together with its files and give their space back. Returns the GB released."""
    with atomic(db, "delete folder"):
        folder = get_owned_folder(db, folder_id, user_id)
        total = db.scalar(
            select(func.coalesce(func.sum(File.size), 0.0)).where(
                File.folder_id == folder_id, File.owner_id == user_id
            )
        )
        db.execute(delete(File).where(File.folder_id == folder_id, File.owner_id == user_id))
        db.delete(folder)
        if total > 0:
            quota.release(db, user_id, total)
    logger.info("User %s deleted folder %s, released %.6fGB", user_id, folder_id, total)
    return total
