"""
Pytest configuration and shared fixtures for testing.
"""
import os

# Settings are read at import time; required secrets must exist first.
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-unit-tests")  # pragma: allowlist secret
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-for-unit-tests")  # pragma: allowlist secret
os.environ.setdefault("ADMIN_TOKEN", "test-admin-token")  # pragma: allowlist secret
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_KEY"] = ""

from pathlib import Path  # noqa: E402
from typing import List  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from picquiz.core.config import settings  # noqa: E402
from picquiz.core.security import create_access_token, hash_password  # noqa: E402
from picquiz.engine.types import Account  # noqa: E402
from picquiz.models import Base, create_db_engine  # noqa: E402
from picquiz.services.context import build_context  # noqa: E402
from picquiz.services.email_service import EmailNotifier  # noqa: E402
from picquiz.stores.accounts import LocalFileAccountStore  # noqa: E402
from picquiz.stores.images import LocalImageStore  # noqa: E402

TEST_USERNAME = "testuser1"
TEST_PASSWORD = "password1"  # pragma: allowlist secret
ADMIN_HEADERS = {"X-Admin-Token": "test-admin-token"}


def make_pool(count: int) -> List[str]:
    """``count`` image names that sort in creation order."""
    return [f"img{i:03d}.png" for i in range(count)]


@pytest.fixture(scope="function")
def db_engine():
    """
    Fresh in-memory SQLite database per test.
    """
    engine = create_db_engine("sqlite://", timeout=5)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def image_dir(tmp_path: Path) -> Path:
    """
    Local image directory with 12 images (two full groups and a remainder
    of two) plus a non-image file that must be ignored.
    """
    directory = tmp_path / "quiz_images"
    directory.mkdir()
    for name in make_pool(12):
        (directory / name).write_bytes(b"\x89PNG")
    (directory / "README.txt").write_text("not an image")
    return directory


@pytest.fixture
def account_store(tmp_path: Path) -> LocalFileAccountStore:
    return LocalFileAccountStore(str(tmp_path / "data" / "users.json"))


@pytest.fixture
def quiz(session_factory, account_store, image_dir):
    """Fully wired collaborators on local backends."""
    context = build_context(
        settings,
        session_factory,
        accounts=account_store,
        images=LocalImageStore(str(image_dir)),
        notifier=EmailNotifier(
            host="",
            port=587,
            username="",
            password="",
            from_email="noreply@picquiz.app",
            from_name="Picture Quiz",
            to_email="",
        ),
    )
    yield context
    context.close()


@pytest.fixture
def client(quiz):
    """
    Test client for an application using the ``quiz`` context.
    """
    from picquiz.main import create_application

    app = create_application(context=quiz)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def test_account(account_store) -> Account:
    account = Account(username=TEST_USERNAME, password_hash=hash_password(TEST_PASSWORD))
    account_store.create(account)
    return account


@pytest.fixture
def auth_headers(test_account):
    """
    Create authentication headers for the test account.
    """
    return {"Authorization": f"Bearer {create_access_token(test_account.username)}"}


@pytest.fixture
def other_auth_headers(account_store):
    account = Account(username="otheruser", password_hash=hash_password("password2"))
    account_store.create(account)
    return {"Authorization": f"Bearer {create_access_token(account.username)}"}
