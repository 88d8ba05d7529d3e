from datetime import date, datetime, timedelta, timezone

import pytest

from storage_manager import files, folders, privacy
from storage_manager.errors import ForbiddenError, NotFoundError, QuotaExceeded
from storage_manager.models import File, FileType, ResourceType, User
from storage_manager.uploads import file_type_for


def used(db, user_id):
    db.expire_all()
    return db.get(User, user_id).used_storage


def test_create_file_returns_upload_fields(db, make_user):
    user = make_user()
    f = files.create_file(db, user.id, "report.pdf", 0.25, FileType.PDF, "https://x/report")
    assert f.id is not None
    assert f.filename == "report.pdf"
    assert f.type == FileType.PDF
    assert f.size == 0.25
    assert f.url == "https://x/report"
    assert f.created_at is not None
    assert f.is_private is False
    assert f.is_favorite is False


def test_create_file_in_someone_elses_folder_is_forbidden(db, make_user):
    owner = make_user()
    other = make_user()
    folder = folders.create_folder(db, owner.id, "Docs")

    with pytest.raises(ForbiddenError):
        files.create_file(db, other.id, "a.txt", 0.1, FileType.NOTE, None, folder.id)
    assert used(db, other.id) == 0.0

    with pytest.raises(NotFoundError):
        files.create_file(db, owner.id, "a.txt", 0.1, FileType.NOTE, None, 12345)
    assert used(db, owner.id) == 0.0


def test_rename_and_toggle_favorite(db, make_user):
    user = make_user()
    f = files.create_file(db, user.id, "old.txt", 0.01, FileType.NOTE, None)

    assert files.rename_file(db, f.id, user.id, "new.txt").filename == "new.txt"
    assert files.toggle_favorite(db, f.id, user.id).is_favorite is True
    assert files.toggle_favorite(db, f.id, user.id).is_favorite is False


def test_mutations_check_existence_and_ownership(db, make_user):
    owner = make_user()
    intruder = make_user()
    f = files.create_file(db, owner.id, "mine.txt", 0.01, FileType.NOTE, None)

    for op in (
        lambda uid, fid: files.rename_file(db, fid, uid, "x"),
        lambda uid, fid: files.toggle_favorite(db, fid, uid),
        lambda uid, fid: files.duplicate_file(db, fid, uid),
        lambda uid, fid: files.delete_file(db, fid, uid),
    ):
        with pytest.raises(ForbiddenError):
            op(intruder.id, f.id)
        with pytest.raises(NotFoundError):
            op(owner.id, 9999)

    db.expire_all()
    assert db.get(File, f.id).filename == "mine.txt"


def test_duplicate_copies_file_and_charges_quota(db, make_user):
    user = make_user(storage_limit=1.0)
    folder = folders.create_folder(db, user.id, "Pics")
    original = files.create_file(db, user.id, "cat.png", 0.3, FileType.IMAGE, "https://x/cat", folder.id)

    copy = files.duplicate_file(db, original.id, user.id)

    assert copy.id != original.id
    assert copy.filename == "cat.png - Copy"
    assert copy.size == original.size
    assert copy.type == original.type
    assert copy.url == original.url
    assert copy.folder_id == folder.id
    assert copy.created_at >= original.created_at
    assert used(db, user.id) == pytest.approx(0.6)


def test_duplicate_rejected_when_copy_does_not_fit(db, make_user):
    user = make_user(storage_limit=1.0)
    original = files.create_file(db, user.id, "video.pdf", 0.6, FileType.PDF, None)

    with pytest.raises(QuotaExceeded):
        files.duplicate_file(db, original.id, user.id)
    assert used(db, user.id) == pytest.approx(0.6)
    assert len(files.list_files(db, user.id)) == 1


def test_delete_file_releases_exact_size(db, make_user):
    user = make_user()
    keep = files.create_file(db, user.id, "keep.txt", 0.2, FileType.NOTE, None)
    gone = files.create_file(db, user.id, "gone.txt", 0.15, FileType.NOTE, None)

    files.delete_file(db, gone.id, user.id)

    assert used(db, user.id) == pytest.approx(0.2)
    assert db.get(File, gone.id) is None
    assert db.get(File, keep.id) is not None


def test_listings_never_return_private_files(db, make_user):
    user = make_user()
    public = files.create_file(db, user.id, "public.txt", 0.01, FileType.NOTE, None)
    hidden = files.create_file(db, user.id, "hidden.txt", 0.01, FileType.NOTE, None)
    privacy.set_password(db, user.id, hidden.id, ResourceType.FILE, "1234")

    for listing in (
        files.list_files(db, user.id),
        files.list_files(db, user.id, FileType.NOTE),
        files.recent_files(db, user.id),
        files.by_date(db, user.id, datetime.now(timezone.utc).date())["files"],
    ):
        assert [f.id for f in listing] == [public.id]


def test_typed_listing_filters_by_type(db, make_user):
    user = make_user()
    note = files.create_file(db, user.id, "a.txt", 0.01, FileType.NOTE, None)
    image = files.create_file(db, user.id, "b.png", 0.01, FileType.IMAGE, None)
    pdf = files.create_file(db, user.id, "c.pdf", 0.01, FileType.PDF, None)

    assert [f.id for f in files.list_files(db, user.id, FileType.NOTE)] == [note.id]
    assert [f.id for f in files.list_files(db, user.id, FileType.IMAGE)] == [image.id]
    assert [f.id for f in files.list_files(db, user.id, FileType.PDF)] == [pdf.id]


def test_listings_are_scoped_to_the_owner(db, make_user):
    alice = make_user()
    bob = make_user()
    files.create_file(db, alice.id, "a.txt", 0.01, FileType.NOTE, None)
    assert files.list_files(db, bob.id) == []
    assert files.recent_files(db, bob.id) == []


def test_recent_returns_ten_newest(db, make_user):
    user = make_user()
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    created = []
    for i in range(12):
        f = files.create_file(db, user.id, f"f{i}.txt", 0.001, FileType.NOTE, None)
        created.append(f.id)
        db.get(File, f.id).created_at = base + timedelta(minutes=i)
    db.commit()

    recent = files.recent_files(db, user.id)
    assert len(recent) == 10
    assert [f.id for f in recent] == list(reversed(created))[:10]


def test_by_date_uses_the_utc_day(db, make_user):
    user = make_user()
    inside_start = files.create_file(db, user.id, "start.txt", 0.01, FileType.NOTE, None)
    inside_end = files.create_file(db, user.id, "end.txt", 0.01, FileType.NOTE, None)
    before = files.create_file(db, user.id, "before.txt", 0.01, FileType.NOTE, None)
    after = files.create_file(db, user.id, "after.txt", 0.01, FileType.NOTE, None)
    folder = folders.create_folder(db, user.id, "Same day")
    other_folder = folders.create_folder(db, user.id, "Next day")

    stamps = {
        inside_start.id: datetime(2024, 5, 1, 0, 0, 0, tzinfo=timezone.utc),
        inside_end.id: datetime(2024, 5, 1, 23, 59, 59, tzinfo=timezone.utc),
        before.id: datetime(2024, 4, 30, 23, 59, 59, tzinfo=timezone.utc),
        after.id: datetime(2024, 5, 2, 0, 0, 0, tzinfo=timezone.utc),
    }
    for file_id, stamp in stamps.items():
        db.get(File, file_id).created_at = stamp
    folder.created_at = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    other_folder.created_at = datetime(2024, 5, 2, 12, 0, tzinfo=timezone.utc)
    db.commit()

    result = files.by_date(db, user.id, date(2024, 5, 1))
    assert result["date"] == "2024-05-01"
    assert sorted(f.id for f in result["files"]) == sorted([inside_start.id, inside_end.id])
    assert [f.id for f in result["folders"]] == [folder.id]


def test_by_date_hides_private_folders(db, make_user):
    user = make_user()
    folder = folders.create_folder(db, user.id, "Secret")
    privacy.set_password(db, user.id, folder.id, ResourceType.FOLDER, "0000")

    result = files.by_date(db, user.id, datetime.now(timezone.utc).date())
    assert result["folders"] == []


def test_storage_summary(db, make_user):
    user = make_user(storage_limit=1.0)
    files.create_file(db, user.id, "a.txt", 0.1, FileType.NOTE, None)
    files.create_file(db, user.id, "b.txt", 0.2, FileType.NOTE, None)
    files.create_file(db, user.id, "c.pdf", 0.25, FileType.PDF, None)
    folders.create_folder(db, user.id, "One")
    folders.create_folder(db, user.id, "Two")

    assert files.storage_summary(db, user.id) == {
        "storage": {"total": "1.00GB", "used": "0.55GB", "remaining": "0.45GB"},
        "folders": {"total": 2},
        "files": {
            "notes": {"count": 2, "size": "0.30GB"},
            "images": {"count": 0, "size": "0.00GB"},
            "pdfs": {"count": 1, "size": "0.25GB"},
        },
    }


def test_summary_buckets_cover_every_file_type():
    assert set(files.SUMMARY_BUCKETS) == set(FileType)


@pytest.mark.parametrize(
    "mimetype, expected",
    [
        ("application/pdf", FileType.PDF),
        ("image/png", FileType.IMAGE),
        ("image/svg+xml", FileType.IMAGE),
        ("text/plain", FileType.NOTE),
        ("application/msword", FileType.NOTE),
        (None, FileType.NOTE),
    ],
)
def test_file_type_for(mimetype, expected):
    assert file_type_for(mimetype) == expected
