"""Test configuration and fixtures for the storage manager."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from storage_manager import main
from storage_manager.auth import create_login_tokens, hash_password
from storage_manager.database import Base, get_db, make_engine
from storage_manager.models import User, UserRole, UserStatus

USER_PASSWORD = "secret123"


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite so separate sessions and threads see real transactions."""
    engine = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(
        email=None,
        storage_limit=1.0,
        used_storage=0.0,
        status=UserStatus.ACTIVE,
        role=UserRole.USER,
        logged_in=True,
    ):
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@example.com",
            full_name=f"User {counter['n']}",
            password=hash_password(USER_PASSWORD),
            role=role,
            status=status,
            is_logged_in=logged_in,
            storage_limit=storage_limit,
            used_storage=used_storage,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_login_tokens(user)['accessToken']}"}


@pytest.fixture
def headers_for():
    return auth_headers


class FakeStorage:
    """Stands in for the Cloudinary transport."""

    def __init__(self):
        self.uploaded = []
        self.discarded = []

    def upload(self, fileobj):
        data = fileobj.read()
        public_id = f"obj-{len(self.uploaded) + 1}"
        self.uploaded.append((public_id, data))
        return {
            "url": f"https://res.cloudinary.test/{public_id}",
            "public_id": public_id,
            "resource_type": "raw",
        }

    def discard(self, stored):
        self.discarded.append(stored["public_id"])


@pytest.fixture
def storage(monkeypatch):
    fake = FakeStorage()
    monkeypatch.setattr(main, "upload_to_storage", fake.upload)
    monkeypatch.setattr(main, "discard_from_storage", fake.discard)
    return fake


@pytest.fixture
def client(session_factory, storage):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    main.app.dependency_overrides[get_db] = override_get_db
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()
