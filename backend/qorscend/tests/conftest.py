import os
os.environ["TESTING"] = "1"
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import sys
from pathlib import Path
import shutil

import uuid

sys.path.append(str(Path(__file__).resolve().parents[2]))

from qorscend.main import app
from qorscend.database import Base, get_db

SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False, "timeout": 30},
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base.metadata.drop_all(bind=engine)
Base.metadata.create_all(bind=engine)

def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def upload_dir(tmp_path):
    d = tmp_path / "uploads"
    d.mkdir()
    os.environ["UPLOAD_DIR"] = str(d)
    yield d
    shutil.rmtree(d, ignore_errors=True)

@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def register_user(client, *, email: str | None = None, password: str = "secret1", name: str = "Test User"):
    """
    qorscend: purpose: create a fresh account and return its token for authenticated calls
    qorscend: inputs: fastapi TestClient, optional email override, password and display name
    qorscend: outputs: tuple(token str, email str, user dict)
    qorscend: status: active
    """

    normalized_email = email or f"user-{uuid.uuid4()}@example.com"
    resp = client.post(
        "/api/auth/register",
        json={"name": name, "email": normalized_email, "password": password},
    )
    if resp.status_code != 201:
        raise AssertionError(f"Unexpected auth bootstrap failure for {normalized_email}: {resp.status_code} {resp.text}")
    data = resp.json()
    token = data.get("token")
    if not token:
        raise AssertionError(f"Authentication response missing token for {normalized_email}: {data}")
    return token, normalized_email, data["user"]


def ensure_auth_headers(client, **kwargs):
    """
    qorscend: purpose: shorthand returning bearer headers for a newly registered user
    qorscend: status: active
    """

    token, _, _ = register_user(client, **kwargs)
    return {"Authorization": f"Bearer {token}"}
