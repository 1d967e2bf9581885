# Pytest configuration for backend API tests.
# Each test gets its own app built from explicit Settings: temp SQLite DB, temp upload dir, Redis disabled.
import os
import sys
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

# Ensure the repo root is on sys.path so 'estateconnect' resolves when running pytest from the repo root
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from estateconnect.config import Settings  # noqa: E402
from estateconnect.main import create_app  # noqa: E402

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin-pass-123"
JWT_SECRET = "test-secret-0123456789abcdef0123456789"


def make_settings(tmp_path, **overrides) -> Settings:
    values = dict(
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        jwt_secret=JWT_SECRET,
        upload_dir=str(tmp_path / "uploads"),
        redis_enabled=False,
        admin_email=ADMIN_EMAIL,
        admin_password=ADMIN_PASSWORD,
        auto_approve_listings=False,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture()
def settings(tmp_path) -> Settings:
    """Review mode: new listings start as 'pending'."""
    return make_settings(tmp_path)


@pytest.fixture()
def client(settings: Settings) -> Iterator[TestClient]:
    """
    TestClient bound to a fresh application; entering the context runs the lifespan
    (schema creation + admin bootstrap).
    """
    with TestClient(create_app(settings)) as c:
        yield c


@pytest.fixture()
def auto_client(tmp_path) -> Iterator[TestClient]:
    """Auto-approve mode: new listings start as 'approved'."""
    with TestClient(create_app(make_settings(tmp_path, auto_approve_listings=True))) as c:
        yield c


@pytest.fixture(params=[False, True], ids=["review", "auto-approve"])
def any_client(request, tmp_path) -> Iterator[TestClient]:
    """Runs a test once per listing policy."""
    with TestClient(create_app(make_settings(tmp_path, auto_approve_listings=request.param))) as c:
        yield c
