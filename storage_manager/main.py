import logging
from contextlib import asynccontextmanager
from typing import Annotated, List, Optional

from fastapi import Depends, FastAPI, Form, Query, UploadFile, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from storage_manager import accounts, files, folders, privacy, quota
from storage_manager.config import ALLOW_ORIGINS, LOG_LEVEL
from storage_manager.database import close_db, get_db, init_db
from storage_manager.dependencies import get_current_user, get_private_access_token, require_roles
from storage_manager.errors import AppError, register_exception_handlers
from storage_manager.models import FileType, ResourceType, User, UserRole
from storage_manager.schemas import (
    ByDateOut,
    CreateFolderRequest,
    FileOut,
    FolderDetailOut,
    FolderOut,
    LoginOut,
    LoginRequest,
    MessageOut,
    PrivateContentOut,
    RefreshRequest,
    RegisterRequest,
    RenameFileRequest,
    RenameFolderRequest,
    SetPasswordRequest,
    StorageInfoOut,
    StorageLimitRequest,
    StorageSummaryOut,
    TokenPair,
    UploadedFileOut,
    UserOut,
    UtcDay,
    VerifyPasswordOut,
    VerifyPasswordRequest,
)
from storage_manager.uploads import discard_from_storage, file_type_for, upload_to_storage

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield
    close_db()


app = FastAPI(title="Storage Manager", lifespan=lifespan)
register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def serialize_resource(resource_type: ResourceType, resource):
    if resource_type == ResourceType.FILE:
        return FileOut.model_validate(resource)
    return FolderOut.model_validate(resource)


def folder_detail(db: Session, folder) -> FolderDetailOut:
    out = FolderDetailOut.model_validate(folder)
    out.files = [FileOut.model_validate(f) for f in folders.folder_files(db, folder.id)]
    return out


def byte_size(upload: UploadFile) -> int:
    upload.file.seek(0, 2)
    size = upload.file.tell()
    upload.file.seek(0)
    return size


@app.get("/ping")
def ping():
    return {"status": "backend ok"}


# ---------------- ACCOUNTS ----------------
@app.post("/users/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(body: RegisterRequest, db: Session = Depends(get_db)):
    return UserOut.model_validate(accounts.register(db, body.email, body.password, body.fullName))


@app.post("/auth/login", response_model=LoginOut)
def login(body: LoginRequest, db: Session = Depends(get_db)):
    return accounts.login(db, body.email, body.password)


@app.post("/auth/refresh-token", response_model=TokenPair)
def refresh_token(body: RefreshRequest, db: Session = Depends(get_db)):
    return accounts.refresh(db, body.refreshToken)


@app.post("/auth/logout", response_model=MessageOut)
def logout(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    accounts.logout(db, current_user)
    return {"message": "Logged out"}


@app.get("/users/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    return UserOut.model_validate(current_user)


@app.patch("/admin/users/{user_id}/storage-limit", response_model=UserOut)
def set_storage_limit(
    user_id: int,
    body: StorageLimitRequest,
    admin: User = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    logger.info("Admin %s changing storage limit of user %s", admin.id, user_id)
    return UserOut.model_validate(quota.set_storage_limit(db, user_id, body.storageLimit))


# ---------------- STORAGE ----------------
@app.get("/files/storage", response_model=StorageInfoOut)
def storage(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return quota.storage_info(db, current_user.id)


@app.get("/files/storage-summary", response_model=StorageSummaryOut)
def storage_summary(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return files.storage_summary(db, current_user.id)


# ---------------- FILES ----------------
@app.post("/files/upload", response_model=UploadedFileOut, status_code=status.HTTP_201_CREATED)
def upload(
    file: UploadFile,
    folderId: Optional[int] = Form(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    size = quota.bytes_to_gb(byte_size(file))
    file_type = file_type_for(file.content_type)
    # refuse before sending bytes anywhere; the insert re-checks atomically
    quota.admit(db, current_user.id, size)
    stored = upload_to_storage(file.file)
    try:
        created = files.create_file(
            db, current_user.id, file.filename, size, file_type, stored["url"], folderId
        )
    except AppError:
        discard_from_storage(stored)
        raise
    return UploadedFileOut.model_validate(created)


def typed_listing(db: Session, user: User, file_type: FileType) -> List[FileOut]:
    return [FileOut.model_validate(f) for f in files.list_files(db, user.id, file_type)]


@app.get("/files/note-files", response_model=List[FileOut])
def note_files(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return typed_listing(db, current_user, FileType.NOTE)


@app.get("/files/image-files", response_model=List[FileOut])
def image_files(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return typed_listing(db, current_user, FileType.IMAGE)


@app.get("/files/pdf-files", response_model=List[FileOut])
def pdf_files(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return typed_listing(db, current_user, FileType.PDF)


@app.get("/files/recent", response_model=List[FileOut])
def recent(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [FileOut.model_validate(f) for f in files.recent_files(db, current_user.id)]


@app.get("/files/by-date", response_model=ByDateOut)
def by_date(
    day: Annotated[UtcDay, Query(alias="date")],
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    result = files.by_date(db, current_user.id, day)
    return ByDateOut(
        date=result["date"],
        files=[FileOut.model_validate(f) for f in result["files"]],
        folders=[FolderOut.model_validate(f) for f in result["folders"]],
    )


@app.get("/files/private-content", response_model=PrivateContentOut)
def private_content(
    token: str = Depends(get_private_access_token),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    resource_type, resource = privacy.fetch_private(db, current_user.id, token)
    if resource_type == ResourceType.FOLDER:
        out = folder_detail(db, resource)
    else:
        out = FileOut.model_validate(resource)
    return PrivateContentOut(resourceType=resource_type, resource=out)


@app.patch("/files/favorite/{file_id}", response_model=FileOut)
def toggle_favorite(file_id: int, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return FileOut.model_validate(files.toggle_favorite(db, file_id, current_user.id))


@app.patch("/files/rename/{file_id}", response_model=FileOut)
def rename_file(
    file_id: int,
    body: RenameFileRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return FileOut.model_validate(files.rename_file(db, file_id, current_user.id, body.fileName))


@app.post("/files/duplicate/{file_id}", response_model=FileOut, status_code=status.HTTP_201_CREATED)
@app.post("/files/copy/{file_id}", response_model=FileOut, status_code=status.HTTP_201_CREATED)
def duplicate_file(file_id: int, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return FileOut.model_validate(files.duplicate_file(db, file_id, current_user.id))


@app.delete("/files/{file_id}", response_model=MessageOut)
def delete_file(file_id: int, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    files.delete_file(db, file_id, current_user.id)
    return {"message": "File deleted successfully"}


# ---------------- PRIVACY ----------------
@app.patch("/files/set-password/{resource_id}")
def set_password(
    resource_id: int,
    body: SetPasswordRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    resource = privacy.set_password(db, current_user.id, resource_id, body.resourceType, body.password)
    return serialize_resource(body.resourceType, resource)


@app.post("/files/verify-password/{resource_id}", response_model=VerifyPasswordOut)
def verify_password(
    resource_id: int,
    body: VerifyPasswordRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    result = privacy.verify_password(db, current_user.id, resource_id, body.resourceType, body.password)
    result["resource"] = serialize_resource(body.resourceType, result["resource"])
    return VerifyPasswordOut(**result)


# ---------------- FOLDERS ----------------
@app.post("/folders", response_model=FolderOut, status_code=status.HTTP_201_CREATED)
def create_folder(
    body: CreateFolderRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return FolderOut.model_validate(folders.create_folder(db, current_user.id, body.folderName))


@app.get("/folders", response_model=List[FolderOut])
def list_folders(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [FolderOut.model_validate(f) for f in folders.list_folders(db, current_user.id)]


@app.get("/folders/{folder_id}", response_model=FolderDetailOut)
def get_folder(folder_id: int, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return folder_detail(db, folders.get_folder(db, folder_id, current_user.id))


@app.patch("/folders/{folder_id}", response_model=FolderOut)
def rename_folder(
    folder_id: int,
    body: RenameFolderRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return FolderOut.model_validate(folders.rename_folder(db, folder_id, current_user.id, body.folderName))


@app.delete("/folders/{folder_id}", response_model=MessageOut)
def delete_folder(folder_id: int, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    folders.delete_folder(db, folder_id, current_user.id)
    return {"message": "Folder deleted successfully"}
