import enum
import logging
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from storage_manager.config import (
    ACCESS_EXPIRES_IN,
    ACCESS_SECRET,
    ALGORITHM,
    PASSWORD_HASH_ROUNDS,
    REFRESH_EXPIRES_IN,
    REFRESH_SECRET,
)
from storage_manager.errors import InvalidToken, TokenExpired

logger = logging.getLogger(__name__)

pwd = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
    pbkdf2_sha256__rounds=PASSWORD_HASH_ROUNDS,
)


class TokenPurpose(str, enum.Enum):
    ACCESS = "access"
    REFRESH = "refresh"
    PRIVATE_ACCESS = "private-access"


def hash_password(p: str) -> str:
    if p is None:
        p = ""
    return pwd.hash(p)


def verify(p: str, h: str) -> bool:
    if p is None:
        p = ""
    return pwd.verify(p, h)


def issue_token(payload: dict, secret: str, ttl: int, purpose: TokenPurpose) -> str:
    """Sign ``payload`` with an expiry ``ttl`` seconds from now and a purpose claim.

    The payload is only integrity-protected, never encrypted.
    """
    now = datetime.now(timezone.utc)
    claims = payload.copy()
    claims["purpose"] = purpose.value
    claims["iat"] = now
    claims["exp"] = now + timedelta(seconds=ttl)
    return jwt.encode(claims, secret, algorithm=ALGORITHM)


def verify_token(token: str, secret: str, purpose: TokenPurpose) -> dict:
    """Return the claims of ``token`` if its signature, expiry and purpose all check out.

    A token without a purpose claim, or with a different one, is rejected even
    when the signature is valid.
    """
    if not token:
        raise InvalidToken("Missing token")
    try:
        claims = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        raise TokenExpired()
    except JWTError:
        raise InvalidToken()
    if claims.get("purpose") != purpose.value:
        logger.warning("Rejected token with purpose %r where %r was expected", claims.get("purpose"), purpose.value)
        raise InvalidToken()
    return claims


def create_login_tokens(user) -> dict:
    payload = {"id": user.id, "email": user.email, "role": user.role.value}
    return {
        "accessToken": issue_token(payload, ACCESS_SECRET, ACCESS_EXPIRES_IN, TokenPurpose.ACCESS),
        "refreshToken": issue_token(payload, REFRESH_SECRET, REFRESH_EXPIRES_IN, TokenPurpose.REFRESH),
    }
