import itertools
import os
import tempfile

# Settings are read at import time, so the environment must be in place first
_DB_PATH = os.path.join(tempfile.gettempdir(), "complaintdesk_test.db")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_PATH}"
os.environ["ASYNC_DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_PATH}"
os.environ["SECRET_KEY"] = "test"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RETENTION_SWEEP_INTERVAL_MINUTES"] = "0"
os.environ["MAINTENANCE_API_KEY"] = "test-maintenance-key"
os.environ["LIVE_FALLBACK_POLL_SECONDS"] = "30"

import pytest
from fastapi.testclient import TestClient

from app.core.database import AsyncSessionLocal, Base, SessionLocal, sync_engine
from app.core.security import get_password_hash
from app.models import Profile, ProfileRole
from app.schemas.profile import StudentRegister
from app.services.profile_service import get_profile_service

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "adminpass123"


@pytest.fixture(autouse=True)
def _reset_db():
    Base.metadata.drop_all(bind=sync_engine)
    Base.metadata.create_all(bind=sync_engine)
    yield


@pytest.fixture()
def app():
    from main import app as fastapi_app
    return fastapi_app


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
async def session():
    async with AsyncSessionLocal() as s:
        yield s


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def make_student(client):
    """Register a student over HTTP and log them in"""
    counter = itertools.count(1)

    def _make(**overrides):
        n = next(counter)
        data = {
            "name": f"Student {n}",
            "student_id": f"STU-{n:03d}",
            "batch": "BCR54",
            "phone": f"98765432{n:02d}",
            "email": f"student{n}@example.com",
            "password": "password123",
        }
        data.update(overrides)
        r = client.post("/auth/register", json=data)
        assert r.status_code == 201, r.text

        r = client.post(
            "/auth/login/student",
            json={"student_id": data["student_id"], "password": data["password"]},
        )
        assert r.status_code == 200, r.text
        body = r.json()
        return {
            **data,
            "id": body["profile"]["id"],
            "token": body["access_token"],
            "headers": auth_headers(body["access_token"]),
        }

    return _make


@pytest.fixture()
def admin(client):
    """Provision an admin directly in the store, then log in"""
    with SessionLocal() as db:
        db.add(Profile(
            email=ADMIN_EMAIL,
            hashed_password=get_password_hash(ADMIN_PASSWORD),
            name="Ravi Menon",
            role=ProfileRole.ADMIN,
        ))
        db.commit()

    r = client.post("/auth/login/admin", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert r.status_code == 200, r.text
    body = r.json()
    return {
        "id": body["profile"]["id"],
        "token": body["access_token"],
        "headers": auth_headers(body["access_token"]),
    }


@pytest.fixture()
def make_complaint(client):
    def _make(student, description="Room lights not working", category="electrical", is_emergency=False):
        r = client.post(
            "/complaints",
            json={"category": category, "description": description, "is_emergency": is_emergency},
            headers=student["headers"],
        )
        assert r.status_code == 201, r.text
        return r.json()

    return _make


@pytest.fixture()
async def people(session):
    """A student and an admin created through the profile service"""
    service = get_profile_service()
    admin = await service.provision_admin(ADMIN_EMAIL, "Ravi Menon", ADMIN_PASSWORD, session)
    student = await service.register_student(
        StudentRegister(
            name="Anu Joseph",
            student_id="BRO2024-117",
            batch="BCR54",
            phone="9876543210",
            email="anu@example.com",
            password="securePassword123",
        ),
        session,
    )
    return student, admin
