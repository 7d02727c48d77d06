"""Test fixtures for Plant Flashcards API tests."""
from __future__ import annotations

import io
import os
from typing import Dict, Optional

# Settings and the engine are built at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["APP_ENV"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["STORAGE_ENSURE_BUCKETS"] = "false"
os.environ["STORAGE_PUBLIC_URL"] = "http://storage.test"

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from plantcards.auth import create_access_token, hash_password
from plantcards.database import Base, SessionLocal, engine
from plantcards.main import app
from plantcards.models import Plant, Profile, User
from plantcards.oauth import OAuthError, get_oauth_client
from plantcards.services.plant_names import slugify
from plantcards.storage import ImageStorage, get_storage

PASSWORD = "Garden2024"


class FakeStorage(ImageStorage):
    """In-memory object store keyed by (bucket, path)."""

    def __init__(self):
        super().__init__(client=None, public_url="http://storage.test", cache_seconds=3600)
        self.objects: Dict[tuple, tuple] = {}
        self.removed: list = []
        self.fail_uploads = False

    def ensure_bucket(self, bucket: str) -> None:
        pass

    def ping(self, bucket: str) -> None:
        pass

    def upload(self, bucket: str, path: str, payload: bytes, content_type: str) -> None:
        if self.fail_uploads:
            raise RuntimeError("storage offline")
        self.objects[(bucket, path)] = (payload, content_type)

    def remove(self, bucket: str, paths) -> None:
        for path in paths:
            self.objects.pop((bucket, path), None)
            self.removed.append((bucket, path))


class FakeOAuthClient:
    def __init__(self):
        self.userinfo = {"sub": "google-123", "email": "Fern@Example.com", "name": "Fern Gully"}
        self.fail_exchange = False

    def authorization_url(self, state: str) -> str:
        return f"https://accounts.example/auth?access_type=offline&prompt=consent&state={state}"

    def exchange_code(self, code: str) -> dict:
        if self.fail_exchange:
            raise OAuthError("Code exchange failed")
        return {"access_token": f"provider-{code}"}

    def fetch_userinfo(self, access_token: str) -> dict:
        return dict(self.userinfo)


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def oauth_client() -> FakeOAuthClient:
    return FakeOAuthClient()


@pytest.fixture
def client(db_session, storage, oauth_client):
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_oauth_client] = lambda: oauth_client
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def make_user(db, email: str, is_admin: bool = False, password: str = PASSWORD, **profile) -> User:
    user = User(email=email, password_hash=hash_password(password))
    db.add(user)
    db.flush()
    user.profile = Profile(id=user.id, is_admin=is_admin, **profile)
    db.commit()
    db.refresh(user)
    return user


def make_plant(db, scientific_name: str, owner: Optional[User] = None, is_admin_plant: bool = True,
               **fields) -> Plant:
    plant = Plant(
        scientific_name=scientific_name,
        slug=fields.pop("slug", slugify(scientific_name)),
        is_admin_plant=is_admin_plant,
        user_id=owner.id if owner else None,
        **fields,
    )
    db.add(plant)
    db.commit()
    db.refresh(plant)
    return plant


def auth_headers(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


def png_bytes(size=(8, 8), color=(40, 160, 60)) -> bytes:
    out = io.BytesIO()
    Image.new("RGB", size, color).save(out, format="PNG")
    return out.getvalue()


@pytest.fixture
def user(db_session) -> User:
    return make_user(db_session, "gardener@example.com")


@pytest.fixture
def other_user(db_session) -> User:
    return make_user(db_session, "botanist@example.com")


@pytest.fixture
def admin(db_session) -> User:
    return make_user(db_session, "admin@example.com", is_admin=True)


@pytest.fixture
def user_headers(user) -> Dict[str, str]:
    return auth_headers(user)


@pytest.fixture
def admin_headers(admin) -> Dict[str, str]:
    return auth_headers(admin)
