import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storage_manager.auth import TokenPurpose, create_login_tokens, hash_password, verify, verify_token
from storage_manager.config import DEFAULT_STORAGE_LIMIT_GB, REFRESH_SECRET
from storage_manager.database import atomic
from storage_manager.errors import ConflictError, NotFoundError, UnauthorizedError
from storage_manager.models import User, UserStatus

logger = logging.getLogger(__name__)


def register(db: Session, email: str, password: str, full_name: str = None) -> User:
    if db.scalar(select(User).where(User.email == email)):
        raise ConflictError("User already exists!")
    user = User(
        email=email,
        full_name=full_name,
        password=hash_password(password),
        storage_limit=DEFAULT_STORAGE_LIMIT_GB,
        used_storage=0.0,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # lost a race against a concurrent registration of the same email
        db.rollback()
        raise ConflictError("User already exists!")
    db.refresh(user)
    logger.info("Registered user %s", user.id)
    return user


def login(db: Session, email: str, password: str) -> dict:
    user = db.scalar(select(User).where(User.email == email))
    if not user or not verify(password, user.password):
        raise UnauthorizedError("Invalid credentials")
    if user.status != UserStatus.ACTIVE:
        raise UnauthorizedError("User is inactive")
    if not user.is_logged_in:
        with atomic(db, "log in"):
            user.is_logged_in = True
        db.refresh(user)
    tokens = create_login_tokens(user)
    return {"id": user.id, "name": user.full_name, "email": user.email, "role": user.role, **tokens}


def refresh(db: Session, refresh_token: str) -> dict:
    claims = verify_token(refresh_token, REFRESH_SECRET, TokenPurpose.REFRESH)
    user = db.get(User, claims.get("id"))
    if not user or user.status != UserStatus.ACTIVE:
        raise NotFoundError("User not found")
    return create_login_tokens(user)


def logout(db: Session, user: User) -> None:
    with atomic(db, "log out"):
        user.is_logged_in = False
    logger.info("User %s logged out", user.id)
