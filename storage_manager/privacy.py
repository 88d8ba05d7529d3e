"""PIN protection for files and folders.

A resource with a PIN is private: listings skip it, and the owner reaches it
by exchanging the PIN for a short-lived capability token scoped to that one
resource. Nothing about the unlock is stored; every fetch presents the token.
"""
import logging

from sqlalchemy.orm import Session

from storage_manager.auth import TokenPurpose, hash_password, issue_token, verify, verify_token
from storage_manager.config import PRIVATE_ACCESS_EXPIRES_IN, PRIVATE_ACCESS_SECRET
from storage_manager.database import atomic
from storage_manager.errors import BadRequestError, ForbiddenError, NotFoundError, UnauthorizedError
from storage_manager.files import get_owned_file
from storage_manager.folders import get_owned_folder
from storage_manager.models import File, Folder, ResourceType

logger = logging.getLogger(__name__)


def get_owned_resource(db: Session, resource_id: int, resource_type: ResourceType, user_id: int):
    if resource_type == ResourceType.FILE:
        return get_owned_file(db, resource_id, user_id)
    if resource_type == ResourceType.FOLDER:
        return get_owned_folder(db, resource_id, user_id)
    raise BadRequestError(f"Unknown resource type: {resource_type}")


def set_password(db: Session, user_id: int, resource_id: int, resource_type: ResourceType, pin: str):
    with atomic(db, "set resource password"):
        resource = get_owned_resource(db, resource_id, resource_type, user_id)
        resource.password = hash_password(pin)
        resource.is_private = True
    db.refresh(resource)
    logger.info("User %s locked %s %s", user_id, resource_type.value, resource_id)
    return resource


def verify_password(db: Session, user_id: int, resource_id: int, resource_type: ResourceType, pin: str) -> dict:
    resource = get_owned_resource(db, resource_id, resource_type, user_id)
    if not resource.is_private:
        raise BadRequestError("Resource is not private")
    if not resource.password:
        raise BadRequestError("No password set")
    if not verify(pin, resource.password):
        logger.warning("Wrong PIN for %s %s by user %s", resource_type.value, resource_id, user_id)
        raise UnauthorizedError("Incorrect password")

    token = issue_token(
        {"resourceId": resource_id, "resourceType": resource_type.value, "userId": user_id},
        PRIVATE_ACCESS_SECRET,
        PRIVATE_ACCESS_EXPIRES_IN,
        TokenPurpose.PRIVATE_ACCESS,
    )
    logger.info("User %s unlocked %s %s", user_id, resource_type.value, resource_id)
    return {
        "accessGranted": True,
        "accessToken": token,
        "expiresIn": PRIVATE_ACCESS_EXPIRES_IN,
        "resourceType": resource_type,
        "resourceId": resource_id,
        "resource": resource,
    }


def fetch_private(db: Session, user_id: int, token: str):
    """Resolve a capability token to the resource it was minted for.

    Returns ``(resource_type, resource)``. The PIN is not checked again; the
    token is the proof.
    """
    claims = verify_token(token, PRIVATE_ACCESS_SECRET, TokenPurpose.PRIVATE_ACCESS)
    if claims.get("userId") != user_id:
        raise ForbiddenError("Access denied to this resource")
    resource_id = claims.get("resourceId")
    try:
        resource_type = ResourceType(claims.get("resourceType"))
    except ValueError:
        raise UnauthorizedError("Invalid access token")
    if not isinstance(resource_id, int):
        raise UnauthorizedError("Invalid access token")

    model = File if resource_type == ResourceType.FILE else Folder
    resource = db.get(model, resource_id)
    if not resource or resource.owner_id != user_id:
        raise NotFoundError("Resource not found")
    return resource_type, resource
