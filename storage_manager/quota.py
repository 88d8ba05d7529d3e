"""Per-user storage accounting.

``used_storage`` and ``storage_limit`` are gigabytes. Increments go through a
single conditional UPDATE so the limit check and the write are one statement;
two concurrent writers for the same user cannot both pass it and overshoot.
``reserve`` and ``release`` never commit: they join the caller's transaction.
"""
import logging

from sqlalchemy import case, func, select, update
from sqlalchemy.orm import Session

from storage_manager.database import atomic
from storage_manager.errors import BadRequestError, ForbiddenError, NotFoundError, QuotaExceeded
from storage_manager.models import File, User, UserStatus

logger = logging.getLogger(__name__)

BYTES_PER_GB = 1024 * 1024 * 1024


def bytes_to_gb(size_in_bytes: int) -> float:
    return size_in_bytes / BYTES_PER_GB


def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def admit(db: Session, user_id: int, size: float) -> None:
    """Read-only admission check. Raises if a write of ``size`` GB would be refused."""
    user = get_user(db, user_id)
    if user.status != UserStatus.ACTIVE:
        raise ForbiddenError("User is inactive")
    if user.used_storage + size > user.storage_limit:
        raise QuotaExceeded()


def reserve(db: Session, user_id: int, size: float) -> None:
    stmt = (
        update(User)
        .where(
            User.id == user_id,
            User.status == UserStatus.ACTIVE,
            User.used_storage + size <= User.storage_limit,
        )
        .values(used_storage=User.used_storage + size)
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    if result.rowcount != 1:
        # nothing was written; find out which condition failed
        db.expire_all()
        admit(db, user_id, size)
        raise QuotaExceeded()
    logger.debug("Reserved %.6fGB for user %s", size, user_id)


def release(db: Session, user_id: int, size: float) -> None:
    remaining = User.used_storage - size
    stmt = (
        update(User)
        .where(User.id == user_id)
        .values(used_storage=case((remaining > 0, remaining), else_=0.0))
        .execution_options(synchronize_session=False)
    )
    db.execute(stmt)
    logger.debug("Released %.6fGB for user %s", size, user_id)


def storage_info(db: Session, user_id: int) -> dict:
    user = get_user(db, user_id)
    return {
        "storageLimit": user.storage_limit,
        "usedStorage": user.used_storage,
        "remainingStorage": user.storage_limit - user.used_storage,
    }


def set_storage_limit(db: Session, user_id: int, limit_gb: float) -> User:
    with atomic(db, "update storage limit"):
        user = get_user(db, user_id)
        if limit_gb < user.used_storage:
            raise BadRequestError("Storage limit cannot be lower than used storage")
        user.storage_limit = limit_gb
    logger.info("Storage limit of user %s set to %.2fGB", user_id, limit_gb)
    db.refresh(user)
    return user


def reconcile_usage(db: Session, user_id: int) -> float:
    """Recompute ``used_storage`` from the sizes of the user's files and store it."""
    with atomic(db, "reconcile storage usage"):
        user = get_user(db, user_id)
        actual = db.scalar(select(func.coalesce(func.sum(File.size), 0.0)).where(File.owner_id == user_id))
        if abs(user.used_storage - actual) > 1e-9:
            logger.warning(
                "User %s usage drifted: recorded %.6fGB, actual %.6fGB", user_id, user.used_storage, actual
            )
        user.used_storage = actual
    return actual
