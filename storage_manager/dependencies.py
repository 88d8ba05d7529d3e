from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from storage_manager.auth import TokenPurpose, verify_token
from storage_manager.config import ACCESS_SECRET
from storage_manager.database import get_db
from storage_manager.errors import ForbiddenError, UnauthorizedError
from storage_manager.models import User, UserRole

security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    token = credentials.credentials if credentials else None
    if not token:
        raise UnauthorizedError("You are not authorized!")
    # only login access tokens identify a caller; refresh and private-access tokens do not
    claims = verify_token(token, ACCESS_SECRET, TokenPurpose.ACCESS)
    user = db.get(User, claims.get("id"))
    if not user:
        raise UnauthorizedError("User not found")
    if not user.is_logged_in:
        raise UnauthorizedError("You are not logged in!")
    return user


def require_roles(*roles: UserRole):
    def checker(user: User = Depends(get_current_user)) -> User:
        if roles and user.role not in roles:
            raise ForbiddenError("Forbidden!")
        return user

    return checker


def get_private_access_token(x_private_access: str = Header(None)) -> str:
    if not x_private_access:
        raise UnauthorizedError("Access denied")
    return x_private_access
