from datetime import date, datetime, timezone
from typing import Annotated, List, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, TypeAdapter, ValidationError

from storage_manager.models import FileType, ResourceType, UserRole, UserStatus


class RegisterRequest(BaseModel):
    email: str = Field(min_length=3, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=6)
    fullName: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str


class RefreshRequest(BaseModel):
    refreshToken: str


class TokenPair(BaseModel):
    accessToken: str
    refreshToken: str


class LoginOut(TokenPair):
    id: int
    name: Optional[str] = None
    email: str
    role: UserRole


class MessageOut(BaseModel):
    message: str


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    email: str
    fullName: Optional[str] = Field(default=None, validation_alias="full_name")
    role: UserRole
    status: UserStatus
    storageLimit: float = Field(validation_alias="storage_limit")
    usedStorage: float = Field(validation_alias="used_storage")
    createdAt: datetime = Field(validation_alias="created_at")


class FileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    fileName: str = Field(validation_alias="filename")
    type: FileType
    size: float
    fileUrl: Optional[str] = Field(default=None, validation_alias="url")
    isFavorite: bool = Field(validation_alias="is_favorite")
    isPrivate: bool = Field(validation_alias="is_private")
    folderId: Optional[int] = Field(default=None, validation_alias="folder_id")
    createdAt: datetime = Field(validation_alias="created_at")


class UploadedFileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    fileName: str = Field(validation_alias="filename")
    type: FileType
    size: float
    fileUrl: Optional[str] = Field(default=None, validation_alias="url")
    createdAt: datetime = Field(validation_alias="created_at")


class RenameFileRequest(BaseModel):
    fileName: str = Field(min_length=1)


class FolderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    folderName: str = Field(validation_alias="folder_name")
    isPrivate: bool = Field(validation_alias="is_private")
    createdAt: datetime = Field(validation_alias="created_at")


class FolderDetailOut(FolderOut):
    files: List[FileOut] = []


class CreateFolderRequest(BaseModel):
    folderName: str = Field(min_length=1)


class RenameFolderRequest(CreateFolderRequest):
    pass


class StorageInfoOut(BaseModel):
    storageLimit: float
    usedStorage: float
    remainingStorage: float


class StorageLimitRequest(BaseModel):
    storageLimit: float = Field(gt=0)


class StorageTotals(BaseModel):
    total: str
    used: str
    remaining: str


class FolderTotals(BaseModel):
    total: int


class TypeBucket(BaseModel):
    count: int
    size: str


class FileBuckets(BaseModel):
    notes: TypeBucket
    images: TypeBucket
    pdfs: TypeBucket


class StorageSummaryOut(BaseModel):
    storage: StorageTotals
    folders: FolderTotals
    files: FileBuckets


_timestamp = TypeAdapter(datetime)


def to_utc_day(value):
    """Reduce a timestamp to its UTC calendar day. Naive timestamps are taken as UTC."""
    if not isinstance(value, str):
        return value
    try:
        stamp = _timestamp.validate_python(value)
    except ValidationError:
        # let the date validator report it
        return value
    if stamp.tzinfo is not None:
        stamp = stamp.astimezone(timezone.utc)
    return stamp.date()


UtcDay = Annotated[date, BeforeValidator(to_utc_day)]


class ByDateOut(BaseModel):
    date: str
    files: List[FileOut]
    folders: List[FolderOut]


class SetPasswordRequest(BaseModel):
    password: str = Field(pattern=r"^\d{4}$", description="4-digit PIN")
    resourceType: ResourceType


class VerifyPasswordRequest(BaseModel):
    password: str = Field(min_length=4, max_length=4)
    resourceType: ResourceType


class VerifyPasswordOut(BaseModel):
    accessGranted: bool = True
    accessToken: str
    expiresIn: int
    resourceType: ResourceType
    resourceId: int
    resource: Union[FileOut, FolderOut]


class PrivateContentOut(BaseModel):
    resourceType: ResourceType
    resource: Union[FileOut, FolderDetailOut]
