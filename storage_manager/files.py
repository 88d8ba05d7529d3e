import logging
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from storage_manager import quota
from storage_manager.database import atomic
from storage_manager.errors import ForbiddenError, NotFoundError
from storage_manager.models import File, FileType, Folder

logger = logging.getLogger(__name__)

RECENT_LIMIT = 10

# Storage summary bucket for every file type. Adding a FileType without a bucket fails at import.
SUMMARY_BUCKETS = {
    FileType.NOTE: "notes",
    FileType.IMAGE: "images",
    FileType.PDF: "pdfs",
}
if set(SUMMARY_BUCKETS) != set(FileType):
    raise RuntimeError(f"Missing summary bucket for {set(FileType) - set(SUMMARY_BUCKETS)}")


def get_owned_file(db: Session, file_id: int, user_id: int) -> File:
    f = db.get(File, file_id)
    if not f:
        raise NotFoundError("File not found")
    if f.owner_id != user_id:
        raise ForbiddenError("You do not have permission to access this file")
    return f


def create_file(
    db: Session,
    user_id: int,
    filename: str,
    size: float,
    file_type: FileType,
    url: Optional[str],
    folder_id: Optional[int] = None,
) -> File:
    """Insert a file row of ``size`` GB and charge it to the owner's quota in one transaction."""
    with atomic(db, "create file"):
        if folder_id is not None:
            folder = db.get(Folder, folder_id)
            if not folder:
                raise NotFoundError("Folder not found")
            if folder.owner_id != user_id:
                raise ForbiddenError("You do not have permission to use this folder")
        quota.reserve(db, user_id, size)
        f = File(
            owner_id=user_id,
            filename=filename,
            size=size,
            type=file_type,
            url=url,
            folder_id=folder_id,
        )
        db.add(f)
    db.refresh(f)
    logger.info("User %s created file %s (%s, %.6fGB)", user_id, f.id, file_type.value, size)
    return f


def list_files(db: Session, user_id: int, file_type: Optional[FileType] = None) -> List[File]:
    stmt = select(File).where(File.owner_id == user_id, File.is_private.is_(False))
    if file_type is not None:
        stmt = stmt.where(File.type == file_type)
    stmt = stmt.order_by(File.created_at.desc(), File.id.desc())
    return list(db.scalars(stmt))


def recent_files(db: Session, user_id: int, limit: int = RECENT_LIMIT) -> List[File]:
    stmt = (
        select(File)
        .where(File.owner_id == user_id, File.is_private.is_(False))
        .order_by(File.created_at.desc(), File.id.desc())
        .limit(limit)
    )
    return list(db.scalars(stmt))


def rename_file(db: Session, file_id: int, user_id: int, new_name: str) -> File:
    with atomic(db, "rename file"):
        f = get_owned_file(db, file_id, user_id)
        f.filename = new_name
    db.refresh(f)
    return f


def toggle_favorite(db: Session, file_id: int, user_id: int) -> File:
    with atomic(db, "toggle favorite"):
        f = get_owned_file(db, file_id, user_id)
        f.is_favorite = not f.is_favorite
    db.refresh(f)
    return f


def duplicate_file(db: Session, file_id: int, user_id: int) -> File:
    """Copy a file row under the name ``"<original> - Copy"``.

    The copy points at the same stored object but is charged to the quota on
    its own, so it can be refused even though the original exists.
    """
    with atomic(db, "duplicate file"):
        original = get_owned_file(db, file_id, user_id)
        quota.reserve(db, user_id, original.size)
        copy = File(
            owner_id=user_id,
            filename=f"{original.filename} - Copy",
            size=original.size,
            type=original.type,
            url=original.url,
            folder_id=original.folder_id,
            is_favorite=original.is_favorite,
            is_private=original.is_private,
            password=original.password,
        )
        db.add(copy)
    db.refresh(copy)
    logger.info("User %s duplicated file %s as %s", user_id, file_id, copy.id)
    return copy


def delete_file(db: Session, file_id: int, user_id: int) -> None:
    with atomic(db, "delete file"):
        f = get_owned_file(db, file_id, user_id)
        size = f.size
        db.delete(f)
        quota.release(db, user_id, size)
    logger.info("User %s deleted file %s, released %.6fGB", user_id, file_id, size)


def day_bounds(day: date):
    start = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def by_date(db: Session, user_id: int, day: date) -> dict:
    """Files and folders created during the UTC calendar day ``day``. Private rows are left out."""
    start, end = day_bounds(day)
    files = db.scalars(
        select(File)
        .where(
            File.owner_id == user_id,
            File.is_private.is_(False),
            File.created_at >= start,
            File.created_at < end,
        )
        .order_by(File.created_at.desc(), File.id.desc())
    )
    folders = db.scalars(
        select(Folder)
        .where(
            Folder.owner_id == user_id,
            Folder.is_private.is_(False),
            Folder.created_at >= start,
            Folder.created_at < end,
        )
        .order_by(Folder.created_at.desc(), Folder.id.desc())
    )
    return {"date": day.isoformat(), "files": list(files), "folders": list(folders)}


def format_size(size: float) -> str:
    return f"{max(size, 0.0):.2f}GB"


def storage_summary(db: Session, user_id: int) -> dict:
    user = quota.get_user(db, user_id)
    folder_count = db.scalar(select(func.count(Folder.id)).where(Folder.owner_id == user_id))
    stats = db.execute(
        select(File.type, func.count(File.id), func.coalesce(func.sum(File.size), 0.0))
        .where(File.owner_id == user_id)
        .group_by(File.type)
    ).all()

    buckets = {bucket: {"count": 0, "size": format_size(0.0)} for bucket in SUMMARY_BUCKETS.values()}
    for file_type, count, size in stats:
        buckets[SUMMARY_BUCKETS[FileType(file_type)]] = {"count": count, "size": format_size(size)}

    return {
        "storage": {
            "total": format_size(user.storage_limit),
            "used": format_size(user.used_storage),
            "remaining": format_size(user.storage_limit - user.used_storage),
        },
        "folders": {"total": folder_count},
        "files": buckets,
    }
