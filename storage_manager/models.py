import enum
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Enum, Float, ForeignKey, Integer, String
from storage_manager.config import DEFAULT_STORAGE_LIMIT_GB
from storage_manager.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class UserRole(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class UserStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    BLOCKED = "BLOCKED"


class FileType(str, enum.Enum):
    NOTE = "note"
    IMAGE = "image"
    PDF = "pdf"


class ResourceType(str, enum.Enum):
    FILE = "file"
    FOLDER = "folder"


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    email = Column(String, unique=True, nullable=False, index=True)
    full_name = Column(String, nullable=True)
    password = Column(String, nullable=False)
    role = Column(Enum(UserRole), default=UserRole.USER, nullable=False)
    status = Column(Enum(UserStatus), default=UserStatus.ACTIVE, nullable=False)
    is_logged_in = Column(Boolean, default=False, nullable=False)
    storage_limit = Column(Float, default=DEFAULT_STORAGE_LIMIT_GB, nullable=False)  # GB
    used_storage = Column(Float, default=0.0, nullable=False)  # GB
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class Folder(Base):
    __tablename__ = "folders"
    id = Column(Integer, primary_key=True)
    folder_name = Column(String, nullable=False)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    is_private = Column(Boolean, default=False, nullable=False)
    password = Column(String, nullable=True)  # PIN hash
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)


class File(Base):
    __tablename__ = "files"
    id = Column(Integer, primary_key=True)
    filename = Column(String, nullable=False)
    type = Column(Enum(FileType, values_callable=lambda e: [m.value for m in e]), nullable=False)
    size = Column(Float, nullable=False)  # GB
    url = Column(String, nullable=True)
    is_favorite = Column(Boolean, default=False, nullable=False)
    is_private = Column(Boolean, default=False, nullable=False)
    password = Column(String, nullable=True)  # PIN hash
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    folder_id = Column(Integer, ForeignKey("folders.id"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
